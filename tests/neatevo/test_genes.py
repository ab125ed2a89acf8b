from __future__ import annotations

import pytest
from neatevo.genes import Allele, Gene, GeneType
from neatevo.vector import Interval, Vector, VectorElement, VectorMetadata

WEIGHT = VectorMetadata((VectorElement("weight", Interval(-5.0, 5.0)),))
LAYER = VectorMetadata((VectorElement("layer", Interval(0.0, 3.0), is_integer=True),))


def gene_vector(value: float = 1.0) -> Vector:
    return Vector(LAYER, [value], mutable=False)


def test_gene_type_coerce() -> None:
    assert GeneType.coerce("SYNAPSE") is GeneType.SYNAPSE
    with pytest.raises(ValueError):
        GeneType.coerce("axon")
    with pytest.raises(TypeError):
        GeneType.coerce(3)  # type: ignore[arg-type]


def test_neuron_factory_tags_kind() -> None:
    gene = Gene.neuron(4, "neuron_hidden", gene_vector())
    assert gene.is_neuron
    assert not gene.is_synapse
    assert gene.types == frozenset({GeneType.NEURON, GeneType.NEURON_HIDDEN})
    with pytest.raises(ValueError):
        Gene.neuron(5, GeneType.SYNAPSE, gene_vector())


def test_synapse_requires_endpoints() -> None:
    gene = Gene.synapse(7, 1, 2, gene_vector())
    assert (gene.source_id, gene.destination_id) == (1, 2)
    with pytest.raises(ValueError):
        Gene(id=8, types=frozenset({GeneType.SYNAPSE}), vector=gene_vector())
    with pytest.raises(ValueError):
        Gene(
            id=9,
            types=frozenset({GeneType.NEURON}),
            vector=gene_vector(),
            source_id=1,
            destination_id=2,
        )


def test_gene_rejects_mutable_vector() -> None:
    with pytest.raises(ValueError):
        Gene.neuron(1, GeneType.NEURON_INPUT, Vector(LAYER, [1.0]))


def test_gene_equality_uses_parameter_vector() -> None:
    first = Gene.neuron(1, GeneType.NEURON_HIDDEN, gene_vector(2.0))
    second = Gene.neuron(2, GeneType.NEURON_HIDDEN, gene_vector(2.0))
    third = Gene.neuron(3, GeneType.NEURON_HIDDEN, gene_vector(1.0))
    assert first == second
    assert hash(first) == hash(second)
    assert first != third


def test_allele_requires_mutable_vector() -> None:
    gene = Gene.synapse(3, 1, 2, gene_vector())
    with pytest.raises(ValueError):
        Allele(gene, Vector(WEIGHT, [0.0], mutable=False))


def test_allele_ordering_and_copy() -> None:
    low = Gene.synapse(3, 1, 2, gene_vector())
    high = Gene.synapse(9, 1, 2, gene_vector())
    a = Allele(high, Vector(WEIGHT, [0.5]))
    b = Allele(low, Vector(WEIGHT, [0.5]))
    c = Allele(low, Vector(WEIGHT, [0.1]), enabled=False)
    assert sorted([a, c, b]) == [b, c, a]

    clone = c.copy()
    assert clone.gene is c.gene
    assert clone.id != c.id
    assert not clone.enabled
    assert clone.genotype_id is None
    clone.vector.set(0, 2.0)
    assert c.vector[0] == pytest.approx(0.1)


def test_allele_back_reference_is_set_once() -> None:
    allele = Allele(Gene.synapse(3, 1, 2, gene_vector()), Vector(WEIGHT))
    allele.attach(10)
    with pytest.raises(ValueError):
        allele.attach(11)
    with pytest.raises(ValueError):
        allele.detach(11)
    allele.detach(10)
    assert allele.genotype_id is None


def test_values_by_label_merges_gene_and_allele() -> None:
    allele = Allele(Gene.synapse(3, 1, 2, gene_vector(2.0)), Vector(WEIGHT, [-1.5]))
    assert allele.values_by_label() == {"layer": 2.0, "weight": -1.5}
    other = Allele(Gene.synapse(3, 1, 2, gene_vector(2.0)), Vector(WEIGHT, [1.5]))
    assert allele.difference(other) == pytest.approx(3.0)
    assert allele.difference(other, normalise=True) == pytest.approx(0.3)
