"""Individuals and the population arena that owns them."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .genotype import Genotype


@dataclass(slots=True, eq=False)
class Individual:
    """A ranked member of the population wrapping one genotype."""

    id: int
    genotype: Genotype
    rank: float = 0.0
    species_id: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.id < 0:
            msg = "Individual id must be non-negative."
            raise ValueError(msg)

    def __lt__(self, other: Individual) -> bool:
        return (self.rank, self.id) < (other.rank, other.id)


@dataclass(slots=True)
class Population:
    """Arena of individuals keyed by id."""

    desired_size: int
    _members: dict[int, Individual] = field(default_factory=dict, init=False, repr=False)
    _by_genotype: dict[int, Individual] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.desired_size <= 0:
            msg = "desired_size must be positive."
            raise ValueError(msg)

    def add(self, individual: Individual) -> None:
        """Add ``individual`` and publish its genotype."""
        if individual.id in self._members:
            msg = f"Population already contains individual {individual.id}."
            raise ValueError(msg)
        if individual.genotype.id in self._by_genotype:
            msg = f"Genotype {individual.genotype.id} already belongs to an individual."
            raise ValueError(msg)
        individual.genotype.publish()
        self._members[individual.id] = individual
        self._by_genotype[individual.genotype.id] = individual

    def remove(self, individual_id: int) -> Individual:
        try:
            individual = self._members.pop(individual_id)
        except KeyError as error:
            msg = f"Unknown individual {individual_id}."
            raise KeyError(msg) from error
        del self._by_genotype[individual.genotype.id]
        return individual

    def get(self, individual_id: int) -> Individual:
        try:
            return self._members[individual_id]
        except KeyError as error:
            msg = f"Unknown individual {individual_id}."
            raise KeyError(msg) from error

    def by_genotype(self, genotype_id: int) -> Individual:
        try:
            return self._by_genotype[genotype_id]
        except KeyError as error:
            msg = f"No individual holds genotype {genotype_id}."
            raise KeyError(msg) from error

    @property
    def members(self) -> tuple[Individual, ...]:
        return tuple(self._members.values())

    def ranked(self) -> list[Individual]:
        """Members ordered best first (higher rank, then lower id)."""
        return sorted(self._members.values(), key=lambda ind: (-ind.rank, ind.id))

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Individual]:
        return iter(tuple(self._members.values()))

    def __contains__(self, individual_id: object) -> bool:
        return individual_id in self._members


__all__ = ["Individual", "Population"]
