"""Network shape descriptors and graph helpers for cycle avoidance."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import Any

from .vector import EMPTY_METADATA, Vector, VectorMetadata

SynapseTable = Mapping[int, Collection[int]]

DEFAULT_NEURON_PARAMS: dict[str, Any] = {
    "allele": {"bias": {"min": -1.0, "max": 1.0}},
}
DEFAULT_SYNAPSE_PARAMS: dict[str, Any] = {
    "allele": {"weight": {"min": -5.0, "max": 5.0}},
}


class Topology(str, Enum):
    """Permitted connectivity of evolved networks."""

    FEED_FORWARD = "feed_forward"
    RECURRENT = "recurrent"

    @classmethod
    def coerce(cls, value: Topology | str) -> Topology:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            msg = f"Unsupported topology value: {value!r}"
            raise TypeError(msg)
        try:
            return cls(value.lower().replace("-", "_"))
        except ValueError as error:
            valid = ", ".join(member.value for member in cls)
            msg = f"Invalid topology {value!r}. Expected one of: {valid}"
            raise ValueError(msg) from error


@dataclass(frozen=True, slots=True)
class ParametrisedGeneType:
    """Parameter layout shared by all genes and alleles of one kind.

    Attributes:
        params_gene: Parameters fixed when a gene is created.
        params_allele: Parameters each genotype may tune independently.
        params_type: Parameters shared by the whole kind.
    """

    params_gene: VectorMetadata = EMPTY_METADATA
    params_allele: VectorMetadata = EMPTY_METADATA
    params_type: VectorMetadata = EMPTY_METADATA

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for metadata in (self.params_gene, self.params_allele, self.params_type):
            for label in metadata.labels:
                if label in seen:
                    msg = f"Parameter label {label!r} is used more than once."
                    raise ValueError(msg)
                seen.add(label)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> ParametrisedGeneType:
        """Build from ``{"gene": ..., "allele": ..., "type": ...}`` metadata maps."""
        mapping = mapping or {}
        if not isinstance(mapping, Mapping):
            msg = "Gene type parameters must be a mapping."
            raise ValueError(msg)
        unknown = set(mapping) - {"gene", "allele", "type"}
        if unknown:
            msg = f"Unknown parameter groups: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        return cls(
            params_gene=VectorMetadata.from_mapping(mapping.get("gene")),
            params_allele=VectorMetadata.from_mapping(mapping.get("allele")),
            params_type=VectorMetadata.from_mapping(mapping.get("type")),
        )

    def create_gene_vector(self, rng: Random) -> Vector:
        """Immutable gene parameters sampled uniformly inside their bounds."""
        return Vector.random(self.params_gene, rng, mutable=False)

    def create_allele_vector(self) -> Vector:
        return Vector.zeros(self.params_allele)

    def create_type_vector(self) -> Vector:
        return Vector.zeros(self.params_type)


@dataclass(frozen=True, slots=True)
class NetworkShape:
    """Neuron and synapse parameter layouts plus input/output arity."""

    neuron: ParametrisedGeneType = field(
        default_factory=lambda: ParametrisedGeneType.from_mapping(DEFAULT_NEURON_PARAMS)
    )
    synapse: ParametrisedGeneType = field(
        default_factory=lambda: ParametrisedGeneType.from_mapping(DEFAULT_SYNAPSE_PARAMS)
    )
    topology: Topology = Topology.FEED_FORWARD
    input_count: int = 1
    output_count: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "topology", Topology.coerce(self.topology))
        if self.input_count <= 0:
            msg = "input_count must be positive."
            raise ValueError(msg)
        if self.output_count <= 0:
            msg = "output_count must be positive."
            raise ValueError(msg)

    @property
    def feed_forward(self) -> bool:
        return self.topology is Topology.FEED_FORWARD


def path_exists(start: int, end: int, synapses: SynapseTable) -> bool:
    """Return True if ``end`` is reachable from ``start`` along ``synapses``."""
    stack = [start]
    visited: set[int] = set()
    while stack:
        current = stack.pop()
        if current == end:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(
            destination
            for destination in synapses.get(current, ())
            if destination not in visited
        )
    return False


def synapse_would_create_cycle(
    source: int,
    destination: int,
    synapses: SynapseTable,
) -> bool:
    """Adding ``source -> destination`` closes a cycle iff source is reachable from destination."""
    return path_exists(destination, source, synapses)


__all__ = [
    "DEFAULT_NEURON_PARAMS",
    "DEFAULT_SYNAPSE_PARAMS",
    "NetworkShape",
    "ParametrisedGeneType",
    "SynapseTable",
    "Topology",
    "path_exists",
    "synapse_would_create_cycle",
]
