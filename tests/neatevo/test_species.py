from __future__ import annotations

import pytest
from neatevo.genes import Allele, Gene, GeneType
from neatevo.genotype import Genotype
from neatevo.population import Individual, Population
from neatevo.species import (
    DistanceConfig,
    Species,
    assign_member,
    check_speciation_integrity,
    compatibility_distance,
    release_departed,
)
from neatevo.vector import EMPTY_METADATA, Interval, Vector, VectorElement, VectorMetadata

WEIGHT = VectorMetadata((VectorElement("weight", Interval(-5.0, 5.0)),))


def build_genotype(genotype_id: int, synapses: dict[int, float]) -> Genotype:
    alleles = [
        Allele(
            Gene.neuron(gene_id, kind, Vector(EMPTY_METADATA, mutable=False)),
            Vector(EMPTY_METADATA),
        )
        for gene_id, kind in (
            (1, GeneType.NEURON_INPUT),
            (2, GeneType.NEURON_INPUT),
            (3, GeneType.NEURON_OUTPUT),
        )
    ]
    for gene_id, weight in synapses.items():
        gene = Gene.synapse(gene_id, 1, 3, Vector(EMPTY_METADATA, mutable=False))
        alleles.append(Allele(gene, Vector(WEIGHT, [weight])))
    return Genotype(genotype_id, alleles)


def test_distance_counts_disjoint_excess_and_params() -> None:
    left = build_genotype(0, {4: 1.0, 6: 0.0})
    right = build_genotype(1, {4: -1.0, 5: 0.0, 7: 5.0, 8: -5.0})

    assert compatibility_distance(left, right) == pytest.approx(4.08)
    assert compatibility_distance(right, left) == pytest.approx(4.08)

    raw = DistanceConfig(normalise_parameter_values=False)
    assert compatibility_distance(left, right, raw) == pytest.approx(4.8)

    weighted = DistanceConfig(excess_factor=2.0, disjoint_factor=0.5, param_factor=1.0)
    assert compatibility_distance(left, right, weighted) == pytest.approx(4 + 1 + 0.2)


def test_distance_mismatch_uses_allele_values() -> None:
    left = build_genotype(0, {4: 1.0, 6: 0.0})
    right = build_genotype(1, {4: -1.0, 5: 0.0, 7: 5.0, 8: -5.0})
    config = DistanceConfig(gene_mismatch_use_values=True)
    assert compatibility_distance(left, right, config) == pytest.approx(2.08)


def test_distance_identity_and_empty_genotypes() -> None:
    genotype = build_genotype(0, {4: 1.0, 6: 0.0})
    assert compatibility_distance(genotype, genotype) == 0.0
    assert compatibility_distance(genotype, genotype.copy(5)) == 0.0
    empty = Genotype(9)
    assert compatibility_distance(empty, genotype) == pytest.approx(5.0)
    assert compatibility_distance(genotype, empty) == pytest.approx(5.0)
    assert compatibility_distance(empty, Genotype(10)) == 0.0


def test_membership_keeps_back_references() -> None:
    first = Species(0, Genotype(0))
    second = Species(1, Genotype(1))
    individual = Individual(5, Genotype(5))

    first.add_member(individual)
    assert individual.species_id == 0
    assert individual in first
    with pytest.raises(ValueError):
        second.add_member(individual)
    with pytest.raises(ValueError):
        second.remove_member(individual)

    second.transfer_member(individual, first)
    assert individual.species_id == 1
    assert first.is_empty
    assert second.size == 1

    assert not assign_member(individual, second, {0: first, 1: second})
    assert assign_member(individual, first, {0: first, 1: second})
    assert individual.species_id == 0

    first.clear()
    assert individual.species_id is None
    assert len(first) == 0


def test_integrity_check_reports_problems() -> None:
    individuals = [Individual(i, Genotype(i)) for i in range(3)]
    full = Species(0, Genotype(0))
    for individual in individuals[:2]:
        full.add_member(individual)
    empty = Species(1, Genotype(1))

    problems = check_speciation_integrity(individuals, [full, empty])
    assert any("Species 1 is empty" in problem for problem in problems)
    assert any("Individual 2 has no species" in problem for problem in problems)

    full.add_member(individuals[2])
    assert check_speciation_integrity(individuals, [full]) == []


def test_release_departed_drops_removed_individuals() -> None:
    population = Population(desired_size=2)
    staying = Individual(1, Genotype(1))
    leaving = Individual(2, Genotype(2))
    population.add(staying)
    population.add(leaving)
    species = Species(0, Genotype(0))
    species.add_member(staying)
    species.add_member(leaving)

    population.remove(2)
    assert release_departed(population, [species]) == 1
    assert species.members == (staying,)
    assert leaving.species_id is None
