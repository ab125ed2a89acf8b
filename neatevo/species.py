"""Species bookkeeping and the compatibility distance between genotypes."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .genes import Allele
from .genotype import Genotype
from .population import Individual, Population


@dataclass(frozen=True, slots=True)
class DistanceConfig:
    """Coefficients for the compatibility distance."""

    excess_factor: float = 1.0
    disjoint_factor: float = 1.0
    param_factor: float = 0.4
    normalise_parameter_values: bool = True
    gene_mismatch_use_values: bool = False

    def __post_init__(self) -> None:
        if self.excess_factor < 0 or self.disjoint_factor < 0 or self.param_factor < 0:
            msg = "Distance coefficients must be non-negative."
            raise ValueError(msg)


def _mismatch_value(allele: Allele, config: DistanceConfig) -> float:
    if not config.gene_mismatch_use_values or len(allele.vector) == 0:
        return 1.0
    value = allele.vector[0]
    if config.normalise_parameter_values:
        return allele.vector.metadata.bound(0).translate_to_unit(value)
    return value


def compatibility_distance(
    left: Genotype,
    right: Genotype,
    config: DistanceConfig | None = None,
) -> float:
    """Compute the NEAT compatibility distance between two genotypes.

    Genes present in only one genotype are disjoint while inside the other's
    gene id range and excess beyond it. Shared genes contribute the
    difference of their allele values.
    """
    config = config or DistanceConfig()
    alleles_left = left.alleles
    alleles_right = right.alleles
    if not alleles_left or not alleles_right:
        remaining = alleles_left or alleles_right
        return config.excess_factor * sum(_mismatch_value(a, config) for a in remaining)

    index_left = 0
    index_right = 0
    disjoint = 0.0
    excess = 0.0
    params = 0.0
    normalise = config.normalise_parameter_values

    while index_left < len(alleles_left) and index_right < len(alleles_right):
        allele_left = alleles_left[index_left]
        allele_right = alleles_right[index_right]
        if allele_left.gene.id == allele_right.gene.id:
            params += allele_left.difference(allele_right, normalise)
            index_left += 1
            index_right += 1
        elif allele_left.gene.id < allele_right.gene.id:
            disjoint += _mismatch_value(allele_left, config)
            index_left += 1
        else:
            disjoint += _mismatch_value(allele_right, config)
            index_right += 1

    for allele in alleles_left[index_left:]:
        excess += _mismatch_value(allele, config)
    for allele in alleles_right[index_right:]:
        excess += _mismatch_value(allele, config)

    return (
        config.excess_factor * excess
        + config.disjoint_factor * disjoint
        + config.param_factor * params
    )


@dataclass(slots=True, eq=False)
class Species:
    """A group of similar individuals around a representative genotype."""

    id: int
    representative: Genotype
    _members: dict[int, Individual] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def add_member(self, individual: Individual) -> None:
        with self._lock:
            if individual.species_id is not None:
                msg = (
                    f"Individual {individual.id} already belongs to species "
                    f"{individual.species_id}."
                )
                raise ValueError(msg)
            self._members[individual.id] = individual
            individual.species_id = self.id

    def remove_member(self, individual: Individual) -> None:
        with self._lock:
            if individual.species_id != self.id or individual.id not in self._members:
                msg = f"Individual {individual.id} is not a member of species {self.id}."
                raise ValueError(msg)
            del self._members[individual.id]
            individual.species_id = None

    def transfer_member(self, individual: Individual, source: Species) -> None:
        """Move ``individual`` from ``source`` into this species."""
        if source is self:
            return
        source.remove_member(individual)
        self.add_member(individual)

    def clear(self) -> None:
        """Detach every member."""
        with self._lock:
            for individual in self._members.values():
                individual.species_id = None
            self._members.clear()

    @property
    def members(self) -> tuple[Individual, ...]:
        with self._lock:
            return tuple(self._members.values())

    @property
    def size(self) -> int:
        return len(self._members)

    @property
    def is_empty(self) -> bool:
        return not self._members

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, individual: object) -> bool:
        return isinstance(individual, Individual) and self._members.get(individual.id) is individual


def assign_member(
    individual: Individual,
    target: Species,
    species_by_id: Mapping[int, Species],
) -> bool:
    """Put ``individual`` in ``target``, leaving its current species first.

    Returns:
        True when the individual changed species.
    """
    if individual.species_id == target.id:
        return False
    if individual.species_id is None:
        target.add_member(individual)
    else:
        target.transfer_member(individual, species_by_id[individual.species_id])
    return True


def release_departed(population: Population, species_list: Iterable[Species]) -> int:
    """Drop members that are no longer part of ``population``."""
    released = 0
    for species in species_list:
        for member in species.members:
            if member.id not in population or population.get(member.id) is not member:
                species.remove_member(member)
                released += 1
    return released


def check_speciation_integrity(
    individuals: Iterable[Individual],
    species_list: Sequence[Species],
) -> list[str]:
    """Describe every violation of the speciation invariants.

    Every individual must belong to exactly one species whose id matches its
    back-reference, and no species may be empty. An empty list means the
    partition is consistent.
    """
    problems: list[str] = []
    owners: dict[int, list[int]] = {}
    for species in species_list:
        if species.is_empty:
            problems.append(f"Species {species.id} is empty.")
        for member in species.members:
            owners.setdefault(member.id, []).append(species.id)
            if member.species_id != species.id:
                problems.append(
                    f"Individual {member.id} is in species {species.id} "
                    f"but points to {member.species_id}."
                )
    for individual in individuals:
        found = owners.get(individual.id, [])
        if not found:
            problems.append(f"Individual {individual.id} has no species.")
        elif len(found) > 1:
            problems.append(f"Individual {individual.id} is in species {found}.")
    return problems


__all__ = [
    "DistanceConfig",
    "Species",
    "assign_member",
    "check_speciation_integrity",
    "compatibility_distance",
    "release_departed",
]
