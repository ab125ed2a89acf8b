from __future__ import annotations

from random import Random

import pytest
from neatevo.config import EvolverConfig
from neatevo.evolver import Evolver
from neatevo.genes import GeneType
from neatevo.population import Individual, Population
from neatevo.species import Species, check_speciation_integrity
from neatevo.speciators import KMeansSpeciator, ThresholdSpeciator
from neatevo.topology import path_exists


def build_evolver(**overrides: object) -> Evolver:
    settings: dict[str, object] = {
        "population_size": 12,
        "seed": 3,
        "input_count": 2,
        "output_count": 1,
        "neuron_add_rate": 0.5,
        "synapse_add_rate": 0.5,
    }
    settings.update(overrides)
    return Evolver(EvolverConfig(**settings))  # type: ignore[arg-type]


def is_acyclic(genotype) -> bool:  # type: ignore[no-untyped-def]
    table = genotype.synapse_table()
    return not any(
        path_exists(destination, source, table)
        for source, destinations in table.items()
        for destination in destinations
    )


def test_create_genotype_wires_inputs_to_outputs() -> None:
    evolver = build_evolver()
    genotype = evolver.create_genotype()
    assert len(genotype.alleles_of_type(GeneType.NEURON_INPUT)) == 2
    assert len(genotype.alleles_of_type(GeneType.NEURON_OUTPUT)) == 1
    assert len(genotype.synapses()) == 2
    for allele in genotype.alleles_of_type(GeneType.NEURON_INPUT):
        assert allele.vector.get("bias") == 0.0
    other = evolver.create_genotype()
    assert other.gene_ids == genotype.gene_ids
    assert other.id != genotype.id


def test_seed_population_publishes_genotypes() -> None:
    evolver = build_evolver()
    population = evolver.seed_population()
    assert len(population) == 12
    assert all(individual.genotype.published for individual in population)
    genotype = population.members[0].genotype
    with pytest.raises(RuntimeError):
        genotype.remove_allele(genotype.alleles[0])


def test_mutation_keeps_genes_unique_and_acyclic() -> None:
    evolver = build_evolver(neuron_add_rate=1.0, neuron_add_maximum=2, synapse_add_maximum=3)
    genotypes = [evolver.create_genotype() for _ in range(5)]
    for _ in range(10):
        for genotype in genotypes:
            evolver.mutate(genotype)
            assert len(set(genotype.gene_ids)) == len(genotype)
            assert is_acyclic(genotype)
    assert any(genotype.alleles_of_type(GeneType.NEURON_HIDDEN) for genotype in genotypes)


def test_mutate_all_runs_in_parallel() -> None:
    with build_evolver(workers=4, neuron_add_rate=1.0, synapse_add_rate=0.0) as evolver:
        genotypes = [evolver.create_genotype() for _ in range(16)]
        evolver.mutate_all(genotypes)

    hidden_by_split: dict[int, int] = {}
    for genotype in genotypes:
        (hidden,) = genotype.alleles_of_type(GeneType.NEURON_HIDDEN)
        (split,) = [allele for allele in genotype.synapses().values() if not allele.enabled]
        assert hidden_by_split.setdefault(split.gene.id, hidden.gene.id) == hidden.gene.id
    assert len(set(hidden_by_split.values())) == len(hidden_by_split)


def test_offspring_cycle_through_speciation() -> None:
    evolver = build_evolver(neuron_add_rate=1.0)
    population = evolver.seed_population()
    species_list: list[Species] = []
    evolver.speciate(population, species_list)
    assert check_speciation_integrity(population.members, species_list) == []

    rng = Random(0)
    parents = list(population.members)
    for individual in parents:
        individual.rank = rng.random()
    next_generation = Population(desired_size=12)
    for index in range(12):
        mother, father = rng.sample(parents, 2)
        child = evolver.recombine([mother, father])
        evolver.mutate(child)
        next_generation.add(Individual(1000 + index, child))
        assert is_acyclic(child)

    evolver.speciate(next_generation, species_list, generation=1)
    assert check_speciation_integrity(next_generation.members, species_list) == []


def test_copy_genotype_is_editable() -> None:
    evolver = build_evolver()
    population = evolver.seed_population(3)
    source = population.members[0].genotype
    copy = evolver.copy_genotype(source)
    assert not copy.published
    assert copy.parent_ids == (source.id,)
    assert evolver.distance(source, copy) == 0.0


def test_speciation_method_selects_speciator() -> None:
    assert isinstance(build_evolver().speciator, ThresholdSpeciator)
    kmeans = build_evolver(speciation="kmeans", species_count=3)
    assert isinstance(kmeans.speciator, KMeansSpeciator)
    population = kmeans.seed_population()
    for genotype in [individual.genotype for individual in population]:
        assert genotype.published
    species_list: list[Species] = []
    kmeans.speciate(population, species_list)
    assert len(species_list) <= 3
    assert check_speciation_integrity(population.members, species_list) == []
