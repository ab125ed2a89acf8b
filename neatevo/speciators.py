"""Speciation strategies: distance threshold and k-means clustering."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from random import Random

from .genes import Allele
from .genotype import Genotype
from .ids import IDFactory
from .parallel import Parallel
from .population import Individual, Population
from .species import (
    DistanceConfig,
    Species,
    assign_member,
    compatibility_distance,
    release_departed,
)
from .vector import Vector

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SpeciatorStats:
    """Summary of the most recent speciation call."""

    threshold: float | None = None
    added: int = 0
    removed: int = 0
    reassigned: int = 0
    iterations: int = 0


def compute_centroid(genotypes: Sequence[Genotype], genotype_id: int) -> Genotype:
    """Average each gene's allele values over the genotypes that carry it.

    The centroid of a single genotype is that genotype.
    """
    if not genotypes:
        msg = "Cannot compute the centroid of no genotypes."
        raise ValueError(msg)
    if len(genotypes) == 1:
        return genotypes[0]

    carriers: dict[int, list[Allele]] = {}
    for genotype in genotypes:
        for allele in genotype:
            carriers.setdefault(allele.gene.id, []).append(allele)

    alleles = []
    for gene_id in sorted(carriers):
        group = carriers[gene_id]
        enabled = 2 * sum(allele.enabled for allele in group) >= len(group)
        vector = Vector.average([allele.vector for allele in group])
        alleles.append(Allele(group[0].gene, vector, enabled=enabled))
    return Genotype(genotype_id, alleles)


class Speciator:
    """Shared plumbing for speciation strategies."""

    def __init__(
        self,
        distance_config: DistanceConfig | None = None,
        parallel: Parallel | None = None,
        ids: IDFactory | None = None,
    ) -> None:
        self.distance_config = distance_config or DistanceConfig()
        self.parallel = parallel or Parallel(workers=1)
        self.ids = ids or IDFactory()
        self.last_stats = SpeciatorStats()

    def distance(self, left: Genotype, right: Genotype) -> float:
        return compatibility_distance(left, right, self.distance_config)

    def speciate(
        self,
        population: Population,
        species_list: list[Species],
        generation: int = 0,
    ) -> None:
        raise NotImplementedError

    def _species_index(self, species_list: Sequence[Species]) -> dict[int, Species]:
        return {species.id: species for species in species_list}


@dataclass(frozen=True, slots=True)
class ThresholdSpeciatorConfig:
    """Configuration for threshold speciation.

    Attributes:
        threshold: Initial compatibility threshold.
        target: Desired number of species; 0 derives it from the population
            size, a negative value disables threshold adjustment.
        adjust_factor: Fraction of the relative count error applied per
            adjustment.
        max_forced_adjustments: Consecutive earliest-possible adjustments
            after which every assignment is discarded.
    """

    threshold: float = 3.0
    target: int = 0
    adjust_factor: float = 0.1
    max_forced_adjustments: int = 3

    def __post_init__(self) -> None:
        if self.threshold <= 0:
            msg = "threshold must be positive."
            raise ValueError(msg)
        if not 0.0 < self.adjust_factor <= 1.0:
            msg = "adjust_factor must be in (0, 1]."
            raise ValueError(msg)
        if self.max_forced_adjustments <= 0:
            msg = "max_forced_adjustments must be positive."
            raise ValueError(msg)


class ThresholdSpeciator(Speciator):
    """Assign each individual to the closest species within a distance threshold."""

    def __init__(
        self,
        distance_config: DistanceConfig | None = None,
        config: ThresholdSpeciatorConfig | None = None,
        parallel: Parallel | None = None,
        ids: IDFactory | None = None,
    ) -> None:
        super().__init__(distance_config, parallel, ids)
        self.config = config or ThresholdSpeciatorConfig()
        self.threshold = self.config.threshold
        self._threshold_used = self.threshold
        self._last_adjusted_generation = 0
        self._forced_adjustments = 0
        self._repartition = False

    def target_count(self, population_size: int) -> int:
        if self.config.target != 0:
            return self.config.target
        return max(1, round(population_size**0.6))

    def adjust_interval(self, population_size: int) -> int:
        return max(1, round(population_size**0.333))

    def speciate(
        self,
        population: Population,
        species_list: list[Species],
        generation: int = 0,
    ) -> None:
        """Update ``species_list`` in place so every individual has a species."""
        stats = SpeciatorStats()
        stats.reassigned += release_departed(population, species_list)
        if self._repartition:
            for species in species_list:
                species.clear()
            self._repartition = False
        species_by_id = self._species_index(species_list)
        ranked = population.ranked()

        if self.threshold != self._threshold_used:
            stats.reassigned += self._release_mismatched(ranked, species_by_id)
            self._threshold_used = self.threshold

        for individual in ranked:
            if individual.species_id is not None:
                continue
            species = self._closest_within_threshold(individual, species_list)
            if species is None:
                species = Species(self.ids(), individual.genotype.copy())
                species_list.append(species)
                stats.added += 1
            species.add_member(individual)

        before = len(species_list)
        species_list[:] = [species for species in species_list if not species.is_empty]
        stats.removed = before - len(species_list)

        self._adjust_threshold(population.desired_size, len(species_list), generation)
        stats.threshold = self.threshold
        stats.iterations = 1
        self.last_stats = stats
        logger.debug(
            "Threshold speciation gen %d: %d species (+%d/-%d), threshold %.4f",
            generation,
            len(species_list),
            stats.added,
            stats.removed,
            self.threshold,
        )

    def _matches(self, individual: Individual, species: Species) -> bool:
        return self.distance(individual.genotype, species.representative) < self.threshold

    def _release_mismatched(
        self,
        individuals: Sequence[Individual],
        species_by_id: dict[int, Species],
    ) -> int:
        stale: list[Individual] = []
        lock = threading.Lock()

        def check(individual: Individual) -> None:
            if individual.species_id is None:
                return
            if not self._matches(individual, species_by_id[individual.species_id]):
                with lock:
                    stale.append(individual)

        self.parallel.for_each(individuals, check)
        for individual in sorted(stale, key=lambda ind: ind.id):
            species_by_id[individual.species_id].remove_member(individual)
        return len(stale)

    def _closest_within_threshold(
        self,
        individual: Individual,
        species_list: Sequence[Species],
    ) -> Species | None:
        closest: Species | None = None
        closest_distance = self.threshold
        for species in species_list:
            distance = self.distance(individual.genotype, species.representative)
            if distance < closest_distance:
                closest = species
                closest_distance = distance
        return closest

    def _adjust_threshold(self, population_size: int, count: int, generation: int) -> None:
        if self.config.target < 0:
            return
        target = self.target_count(population_size)
        interval = self.adjust_interval(population_size)
        elapsed = generation - self._last_adjusted_generation
        if elapsed <= interval:
            return
        if count == target:
            self._forced_adjustments = 0
            return

        previous = self.threshold
        self.threshold *= 1.0 + (count / target - 1.0) * self.config.adjust_factor
        self._last_adjusted_generation = generation
        if elapsed == interval + 1:
            self._forced_adjustments += 1
        else:
            self._forced_adjustments = 0
        logger.debug(
            "Species count %d (target %d): threshold %.4f -> %.4f",
            count,
            target,
            previous,
            self.threshold,
        )
        if self._forced_adjustments >= self.config.max_forced_adjustments:
            # Applied at the start of the next call so this partition stays complete.
            self._repartition = True
            self._forced_adjustments = 0


@dataclass(frozen=True, slots=True)
class KMeansSpeciatorConfig:
    """Configuration for k-means speciation.

    ``species_count`` of 0 derives the count from the population size.
    """

    species_count: int = 0
    max_iterations: int = 5

    def __post_init__(self) -> None:
        if self.species_count < 0:
            msg = "species_count must be >= 0."
            raise ValueError(msg)
        if self.max_iterations <= 0:
            msg = "max_iterations must be positive."
            raise ValueError(msg)


class KMeansSpeciator(Speciator):
    """Partition the population into a fixed number of clusters."""

    def __init__(
        self,
        distance_config: DistanceConfig | None = None,
        config: KMeansSpeciatorConfig | None = None,
        parallel: Parallel | None = None,
        rng: Random | None = None,
        ids: IDFactory | None = None,
    ) -> None:
        super().__init__(distance_config, parallel, ids)
        self.config = config or KMeansSpeciatorConfig()
        self.rng = rng or Random()

    def species_count(self, population_size: int) -> int:
        if self.config.species_count:
            return self.config.species_count
        return max(1, round(population_size**0.6))

    def speciate(
        self,
        population: Population,
        species_list: list[Species],
        generation: int = 0,
    ) -> None:
        """Update ``species_list`` in place with k-means clustering."""
        stats = SpeciatorStats()
        release_departed(population, species_list)
        individuals = sorted(population.members, key=lambda ind: ind.id)
        if not individuals:
            for species in species_list:
                species.clear()
            stats.removed = len(species_list)
            species_list.clear()
            self.last_stats = stats
            return

        count = min(self.species_count(population.desired_size), len(individuals))
        if len(species_list) != count:
            stats.removed = len(species_list)
            for species in species_list:
                species.clear()
            species_list.clear()
            for _ in range(count):
                seed = individuals[self.rng.randrange(len(individuals))]
                species_list.append(Species(self.ids(), seed.genotype))
            stats.added = count

        species_by_id = self._species_index(species_list)
        self._update_centroids(species_list)
        stats.reassigned += self._reassign(individuals, species_list, species_by_id)[0]
        self._update_centroids(species_list)

        empty = [species for species in species_list if species.is_empty]
        for iteration in range(1, self.config.max_iterations + 1):
            stats.iterations = iteration
            moved, modified = self._reassign(individuals, species_list, species_by_id)
            stats.reassigned += moved
            touched = [species_by_id[species_id] for species_id in sorted(modified)]
            empty_ids = {species.id for species in empty if species.is_empty}
            empty_ids.update(species.id for species in touched if species.is_empty)
            empty = [species_by_id[species_id] for species_id in sorted(empty_ids)]
            if empty:
                touched.extend(self._refill(individuals, empty, species_by_id))
                empty = [species for species in empty if species.is_empty]
            self._update_centroids(touched)
            if not touched:
                break

        before = len(species_list)
        species_list[:] = [species for species in species_list if not species.is_empty]
        stats.removed += before - len(species_list)
        self.last_stats = stats
        logger.debug(
            "K-means speciation gen %d: %d species after %d iterations, %d moves",
            generation,
            len(species_list),
            stats.iterations,
            stats.reassigned,
        )

    def _closest(self, individual: Individual, species_list: Sequence[Species]) -> Species:
        best: Species | None = None
        best_distance = math.inf
        for species in species_list:
            distance = self.distance(individual.genotype, species.representative)
            if distance < best_distance or (
                distance == best_distance and species.id == individual.species_id
            ):
                best = species
                best_distance = distance
        if best is None:
            msg = "No species to assign individuals to."
            raise RuntimeError(msg)
        return best

    def _reassign(
        self,
        individuals: Sequence[Individual],
        species_list: Sequence[Species],
        species_by_id: dict[int, Species],
    ) -> tuple[int, set[int]]:
        modified: set[int] = set()
        lock = threading.Lock()

        def reassign(individual: Individual) -> None:
            closest = self._closest(individual, species_list)
            previous = individual.species_id
            if assign_member(individual, closest, species_by_id):
                with lock:
                    modified.add(closest.id)
                    if previous is not None:
                        modified.add(previous)

        moved_before = {individual.id: individual.species_id for individual in individuals}
        self.parallel.for_each(individuals, reassign)
        moved = sum(
            1
            for individual in individuals
            if moved_before[individual.id] != individual.species_id
        )
        return moved, modified

    def _refill(
        self,
        individuals: Sequence[Individual],
        empty: Sequence[Species],
        species_by_id: dict[int, Species],
    ) -> list[Species]:
        """Seed empty species with the individuals farthest from their centroid."""
        outliers = sorted(
            individuals,
            key=lambda ind: self.distance(
                ind.genotype, species_by_id[ind.species_id].representative
            ),
            reverse=True,
        )
        candidates = iter(outliers)
        touched: list[Species] = []
        for target in empty:
            for individual in candidates:
                source = species_by_id[individual.species_id]
                if source.size > 1:
                    break
            else:
                break
            target.transfer_member(individual, source)
            target.representative = individual.genotype
            touched.extend((source, target))
        return touched

    def _cost(self, centroid: Genotype, genotypes: Sequence[Genotype]) -> float:
        return math.fsum(self.distance(genotype, centroid) for genotype in genotypes)

    def _update_centroids(self, species_list: Sequence[Species]) -> None:
        """Replace each representative by its members' centroid when that is closer.

        A centroid that does not lower the summed member distance is
        discarded, so reassignment and centroid updates never increase the
        total distance and the iteration settles on a fixed point.
        """
        unique = {species.id: species for species in species_list if not species.is_empty}

        def update(species: Species) -> None:
            members = sorted(species.members, key=lambda member: member.id)
            genotypes = [member.genotype for member in members]
            candidate = compute_centroid(genotypes, species.id)
            if self._cost(candidate, genotypes) < self._cost(species.representative, genotypes):
                species.representative = candidate

        self.parallel.for_each(unique.values(), update)


__all__ = [
    "KMeansSpeciator",
    "KMeansSpeciatorConfig",
    "Speciator",
    "SpeciatorStats",
    "ThresholdSpeciator",
    "ThresholdSpeciatorConfig",
    "compute_centroid",
]
