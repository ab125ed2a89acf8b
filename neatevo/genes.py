"""Gene and allele primitives for NEAT genotypes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .ids import IDFactory
from .vector import Vector


class GeneType(str, Enum):
    """Tags describing what a gene encodes."""

    NEURON = "neuron"
    NEURON_INPUT = "neuron_input"
    NEURON_HIDDEN = "neuron_hidden"
    NEURON_OUTPUT = "neuron_output"
    SYNAPSE = "synapse"

    @classmethod
    def coerce(cls, value: GeneType | str) -> GeneType:
        """Coerce a string or GeneType into a GeneType instance."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            msg = f"Unsupported gene type value: {value!r}"
            raise TypeError(msg)
        try:
            return cls(value.lower())
        except ValueError as error:
            valid = ", ".join(member.value for member in cls)
            msg = f"Invalid gene type {value!r}. Expected one of: {valid}"
            raise ValueError(msg) from error


NEURON_KINDS = frozenset(
    {GeneType.NEURON_INPUT, GeneType.NEURON_HIDDEN, GeneType.NEURON_OUTPUT}
)


@dataclass(frozen=True, slots=True, eq=False)
class Gene:
    """Immutable structural unit identified by its innovation number.

    Two genes compare equal when their parameter vectors are equal; this is
    what the innovation registry relies on to reuse genes. Genotypes index
    genes by ``id`` instead.
    """

    id: int
    types: frozenset[GeneType]
    vector: Vector
    source_id: int | None = None
    destination_id: int | None = None

    def __post_init__(self) -> None:
        if self.id < 0:
            msg = "Gene id must be non-negative."
            raise ValueError(msg)
        types = frozenset(GeneType.coerce(value) for value in self.types)
        if not types:
            msg = "A gene needs at least one type."
            raise ValueError(msg)
        if GeneType.NEURON in types and GeneType.SYNAPSE in types:
            msg = "A gene cannot be both a neuron and a synapse."
            raise ValueError(msg)
        object.__setattr__(self, "types", types)
        if self.vector.mutable:
            msg = "Gene parameter vectors must be immutable."
            raise ValueError(msg)
        if GeneType.SYNAPSE in types:
            for name, value in (
                ("source_id", self.source_id),
                ("destination_id", self.destination_id),
            ):
                if value is None or value < 0:
                    msg = f"Synapse gene {self.id} needs a non-negative {name}."
                    raise ValueError(msg)
        elif self.source_id is not None or self.destination_id is not None:
            msg = f"Only synapse genes have endpoints (gene {self.id})."
            raise ValueError(msg)

    @classmethod
    def neuron(cls, gene_id: int, kind: GeneType | str, vector: Vector) -> Gene:
        """Create a neuron gene of the given input, hidden or output kind."""
        kind = GeneType.coerce(kind)
        if kind not in NEURON_KINDS:
            msg = f"{kind.value!r} is not a neuron kind."
            raise ValueError(msg)
        return cls(id=gene_id, types=frozenset({GeneType.NEURON, kind}), vector=vector)

    @classmethod
    def synapse(
        cls,
        gene_id: int,
        source_id: int,
        destination_id: int,
        vector: Vector,
    ) -> Gene:
        return cls(
            id=gene_id,
            types=frozenset({GeneType.SYNAPSE}),
            vector=vector,
            source_id=source_id,
            destination_id=destination_id,
        )

    @property
    def is_neuron(self) -> bool:
        return GeneType.NEURON in self.types

    @property
    def is_synapse(self) -> bool:
        return GeneType.SYNAPSE in self.types

    def has_type(self, gene_type: GeneType | str) -> bool:
        return GeneType.coerce(gene_type) in self.types

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Gene):
            return NotImplemented
        return self.vector == other.vector

    def __hash__(self) -> int:
        return hash(self.vector)


_ALLELE_IDS = IDFactory()


@dataclass(slots=True, eq=False)
class Allele:
    """A genotype's concrete, mutable instance of a gene."""

    gene: Gene
    vector: Vector
    enabled: bool = True
    id: int = field(default_factory=_ALLELE_IDS)
    genotype_id: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if not self.vector.mutable:
            msg = "Allele parameter vectors must be mutable."
            raise ValueError(msg)
        self.enabled = bool(self.enabled)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.gene.id, self.id)

    def __lt__(self, other: Allele) -> bool:
        return self.sort_key < other.sort_key

    def attach(self, genotype_id: int) -> None:
        """Record the owning genotype; an allele belongs to at most one."""
        if self.genotype_id is not None:
            msg = (
                f"Allele {self.id} already belongs to genotype {self.genotype_id}; "
                f"cannot attach it to genotype {genotype_id}."
            )
            raise ValueError(msg)
        self.genotype_id = genotype_id

    def detach(self, genotype_id: int) -> None:
        if self.genotype_id != genotype_id:
            msg = f"Allele {self.id} does not belong to genotype {genotype_id}."
            raise ValueError(msg)
        self.genotype_id = None

    def copy(self) -> Allele:
        """Return a detached allele of the same gene with copied values."""
        return Allele(gene=self.gene, vector=self.vector.copy(mutable=True), enabled=self.enabled)

    def difference(self, other: Allele, normalise: bool = False) -> float:
        return self.vector.difference(other.vector, normalise)

    def values_by_label(self) -> dict[str, float]:
        """Gene and allele parameters merged into one label map."""
        values = self.gene.vector.as_dict()
        values.update(self.vector.as_dict())
        return values


__all__ = [
    "Allele",
    "Gene",
    "GeneType",
    "NEURON_KINDS",
]
