from __future__ import annotations

from random import Random

import pytest
from neatevo.genes import Allele, Gene, GeneType
from neatevo.genotype import Genotype
from neatevo.ids import IDFactory
from neatevo.population import Individual
from neatevo.recombination import Recombiner
from neatevo.topology import Topology, path_exists
from neatevo.vector import EMPTY_METADATA, Interval, Vector, VectorElement, VectorMetadata

WEIGHT = VectorMetadata((VectorElement("weight", Interval(-5.0, 5.0)),))
NEURONS = {1: GeneType.NEURON_INPUT, 3: GeneType.NEURON_OUTPUT, 6: GeneType.NEURON_HIDDEN, 7: GeneType.NEURON_HIDDEN}


def build_genotype(
    genotype_id: int,
    synapses: dict[int, tuple[int, int, float]],
    *,
    disabled: tuple[int, ...] = (),
) -> Genotype:
    alleles = [
        Allele(Gene.neuron(gene_id, kind, Vector(EMPTY_METADATA, mutable=False)), Vector(EMPTY_METADATA))
        for gene_id, kind in NEURONS.items()
    ]
    for gene_id, (source, destination, weight) in synapses.items():
        gene = Gene.synapse(gene_id, source, destination, Vector(EMPTY_METADATA, mutable=False))
        alleles.append(Allele(gene, Vector(WEIGHT, [weight]), enabled=gene_id not in disabled))
    return Genotype(genotype_id, alleles)


def build_recombiner(seed: int = 0, topology: Topology = Topology.FEED_FORWARD) -> Recombiner:
    return Recombiner(topology, IDFactory(100), Random(seed))


def test_needs_two_parents() -> None:
    parent = Individual(0, build_genotype(0, {}))
    with pytest.raises(ValueError):
        build_recombiner().recombine([parent])


def test_dominant_parent_defines_gene_set() -> None:
    strong = Individual(0, build_genotype(0, {10: (1, 6, 1.0), 12: (6, 3, 0.5)}), rank=2.0)
    weak = Individual(1, build_genotype(1, {10: (1, 6, -1.0), 13: (1, 3, 0.0)}), rank=1.0)
    for seed in range(5):
        child = build_recombiner(seed).recombine([weak, strong])
        assert child.gene_ids == strong.genotype.gene_ids
        assert child.parent_ids == (0, 1)
        assert child.id == 100


def test_equal_ranks_take_union_without_cycles_or_duplicates() -> None:
    first = Individual(0, build_genotype(0, {10: (6, 7, 1.0), 12: (1, 3, 0.5)}), rank=1.0)
    second = Individual(1, build_genotype(1, {11: (7, 6, 1.0), 13: (1, 3, 0.0), 14: (1, 6, 2.0)}), rank=1.0)

    child = build_recombiner().recombine([first, second])

    assert child.gene_ids == (1, 3, 6, 7, 10, 12, 14)
    table = child.synapse_table()
    assert not any(
        path_exists(destination, source, table)
        for source, destinations in table.items()
        for destination in destinations
    )


def test_recurrent_union_keeps_cycles() -> None:
    first = Individual(0, build_genotype(0, {10: (6, 7, 1.0)}), rank=1.0)
    second = Individual(1, build_genotype(1, {11: (7, 6, 1.0)}), rank=1.0)
    child = build_recombiner(topology=Topology.RECURRENT).recombine([first, second])
    assert child.has_gene(10)
    assert child.has_gene(11)


def test_inherited_values_stay_between_parents() -> None:
    first = Individual(0, build_genotype(0, {10: (1, 3, -2.0)}), rank=1.0)
    second = Individual(1, build_genotype(1, {10: (1, 3, 3.0)}), rank=1.0)
    third = Individual(2, build_genotype(2, {10: (1, 3, 1.0)}), rank=1.0)
    seen = set()
    for seed in range(30):
        child = build_recombiner(seed).recombine([first, second, third])
        value = child.get_allele(10).vector[0]  # type: ignore[union-attr]
        assert -2.0 <= value <= 3.0
        seen.add(round(value, 6))
        assert child.parent_ids == (0, 1, 2)
    assert len(seen) > 3


def test_enabled_flag_comes_from_a_parent() -> None:
    first = Individual(0, build_genotype(0, {10: (1, 3, 0.0)}, disabled=(10,)), rank=1.0)
    second = Individual(1, build_genotype(1, {10: (1, 3, 0.0)}, disabled=(10,)), rank=1.0)
    child = build_recombiner().recombine([first, second])
    assert not child.get_allele(10).enabled  # type: ignore[union-attr]

    mixed = Individual(2, build_genotype(2, {10: (1, 3, 0.0)}), rank=1.0)
    flags = {
        build_recombiner(seed).recombine([first, mixed]).get_allele(10).enabled  # type: ignore[union-attr]
        for seed in range(20)
    }
    assert flags == {True, False}


def test_child_alleles_are_independent_of_parents() -> None:
    first = Individual(0, build_genotype(0, {10: (1, 3, 1.0)}), rank=1.0)
    second = Individual(1, build_genotype(1, {10: (1, 3, 1.0)}), rank=1.0)
    child = build_recombiner().recombine([first, second])
    child.get_allele(10).vector.set(0, -4.0)  # type: ignore[union-attr]
    assert first.genotype.get_allele(10).vector[0] == 1.0  # type: ignore[union-attr]
    assert second.genotype.get_allele(10).vector[0] == 1.0  # type: ignore[union-attr]
