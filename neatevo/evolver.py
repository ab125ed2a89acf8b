"""Evolver facade wiring the registry, mutators, recombiner and speciator."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from random import Random

from .config import EvolverConfig
from .genes import Allele, GeneType
from .genotype import Genotype
from .ids import IDFactory
from .innovations import InnovationRegistry
from .mutators import AlleleMutator, Mutator, NeuronAddMutator, SynapseAddMutator
from .parallel import Parallel
from .population import Individual, Population
from .recombination import Recombiner
from .species import Species, check_speciation_integrity, compatibility_distance
from .speciators import KMeansSpeciator, Speciator, ThresholdSpeciator
from .topology import NetworkShape

logger = logging.getLogger(__name__)


class Evolver:
    """Genetic operators over a shared innovation registry.

    The evolver does not run generations itself; callers evaluate, rank and
    select individuals, then use ``mutate``, ``recombine`` and ``speciate``.
    """

    def __init__(
        self,
        config: EvolverConfig | None = None,
        shape: NetworkShape | None = None,
        *,
        rng: Random | None = None,
        ids: IDFactory | None = None,
        parallel: Parallel | None = None,
    ) -> None:
        self.config = config or EvolverConfig()
        self.shape = shape or self.config.network_shape()
        self.rng = rng or Random(self.config.seed)
        self.ids = ids or IDFactory()
        self.parallel = parallel or Parallel(self.config.workers)
        self.registry = InnovationRegistry(self.shape, self.ids, self.rng)
        self.mutators: tuple[Mutator, ...] = (
            AlleleMutator(self.config.allele_mutation_config()),
            NeuronAddMutator(self.config.neuron_add_config(), self.registry),
            SynapseAddMutator(
                self.config.synapse_add_config(), self.registry, self.shape.topology
            ),
        )
        self.recombiner = Recombiner(self.shape.topology, self.ids, self.rng)
        self.distance_config = self.config.distance_config()
        self.speciator = self._build_speciator()

    def _build_speciator(self) -> Speciator:
        if self.config.speciation == "kmeans":
            return KMeansSpeciator(
                self.distance_config,
                self.config.kmeans_config(),
                self.parallel,
                self.rng,
            )
        return ThresholdSpeciator(
            self.distance_config,
            self.config.threshold_config(),
            self.parallel,
        )

    def mutate(self, genotype: Genotype) -> int:
        """Apply every mutator in order and return the total change count."""
        return sum(mutator.mutate(genotype, self.rng) for mutator in self.mutators)

    def mutate_all(self, genotypes: Iterable[Genotype]) -> None:
        self.parallel.for_each(genotypes, self.mutate)

    def recombine(self, parents: Sequence[Individual]) -> Genotype:
        return self.recombiner.recombine(parents)

    def speciate(
        self,
        population: Population,
        species_list: list[Species],
        generation: int = 0,
    ) -> None:
        """Partition ``population`` into ``species_list`` in place."""
        self.speciator.speciate(population, species_list, generation)
        problems = check_speciation_integrity(population.members, species_list)
        if problems:
            msg = "Speciation left an inconsistent partition: " + "; ".join(problems)
            raise RuntimeError(msg)

    def distance(self, left: Genotype, right: Genotype) -> float:
        return compatibility_distance(left, right, self.distance_config)

    def create_genotype(self) -> Genotype:
        """Minimal genotype: every input wired to every output."""
        inputs = [
            self.registry.new_seed_neuron_allele(GeneType.NEURON_INPUT, index)
            for index in range(self.shape.input_count)
        ]
        outputs = [
            self.registry.new_seed_neuron_allele(GeneType.NEURON_OUTPUT, index)
            for index in range(self.shape.output_count)
        ]
        synapses = [
            self.registry.new_seed_synapse_allele(source.gene.id, destination.gene.id)
            for source in inputs
            for destination in outputs
        ]
        alleles = [*inputs, *outputs, *synapses]
        for allele in alleles:
            self._randomise(allele)
        return Genotype(self.ids(), alleles)

    def _randomise(self, allele: Allele) -> None:
        metadata = allele.vector.metadata
        for index in range(metadata.size):
            if GeneType.NEURON_INPUT in allele.gene.types and metadata.label(index) == "bias":
                continue
            allele.vector.set(index, metadata.bound(index).random(self.rng))

    def seed_population(self, size: int | None = None) -> Population:
        size = self.config.population_size if size is None else size
        population = Population(desired_size=size)
        for _ in range(size):
            population.add(Individual(self.ids(), self.create_genotype()))
        logger.info(
            "Seeded population of %d genotypes (%d inputs, %d outputs)",
            size,
            self.shape.input_count,
            self.shape.output_count,
        )
        return population

    def copy_genotype(self, genotype: Genotype) -> Genotype:
        """Editable copy under a new id, e.g. for mutating a selected parent."""
        return genotype.copy(self.ids())

    def close(self) -> None:
        self.parallel.shutdown()

    def __enter__(self) -> Evolver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Evolver"]
