"""Structural and parametric mutation operators for genotypes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from random import Random
from types import MappingProxyType
from typing import Protocol

from .genes import Allele, GeneType
from .genotype import Genotype
from .innovations import InnovationRegistry
from .topology import Topology, synapse_would_create_cycle
from .vector import Vector


class Mutator(Protocol):
    """Anything that edits a genotype in place and reports how much it changed."""

    def mutate(self, genotype: Genotype, rng: Random) -> int: ...


def _check_rate(label: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        msg = f"{label} must be in [0, 1]."
        raise ValueError(msg)


def weight_index(vector: Vector) -> int | None:
    """Position of the synapse weight: the ``weight`` element, else element 0."""
    if vector.metadata.has_label("weight"):
        return vector.metadata.index_of("weight")
    return 0 if len(vector) else None


@dataclass(frozen=True, slots=True)
class NeuronAddConfig:
    """Configuration for the add-neuron mutation."""

    maximum: int = 1
    apply_rate: float = 1.0

    def __post_init__(self) -> None:
        if self.maximum <= 0:
            msg = "maximum must be positive."
            raise ValueError(msg)
        _check_rate("apply_rate", self.apply_rate)


class NeuronAddMutator:
    """Split enabled synapses by inserting hidden neurons."""

    def __init__(self, config: NeuronAddConfig, registry: InnovationRegistry) -> None:
        self.config = config
        self.registry = registry

    def mutate(self, genotype: Genotype, rng: Random) -> int:
        """Insert up to a random number of neurons.

        Returns:
            The number of neurons added; running out of candidate synapses is
            not an error.
        """
        if rng.random() >= self.config.apply_rate:
            return 0
        target = rng.randint(1, self.config.maximum)
        candidates = genotype.enabled_synapses()
        rng.shuffle(candidates)

        added = 0
        for synapse in candidates:
            if added >= target:
                break
            neuron = self.registry.new_neuron_allele(genotype, synapse.gene.id)
            if genotype.has_gene(neuron.gene.id):
                continue
            genotype.add_allele(neuron)

            gene = synapse.gene
            incoming = self.registry.new_synapse_allele(genotype, gene.source_id, neuron.gene.id)
            outgoing = self.registry.new_synapse_allele(genotype, neuron.gene.id, gene.destination_id)
            index = weight_index(incoming.vector)
            if index is not None:
                incoming.vector.set(index, 1.0)
            outgoing.vector.set_values(synapse.vector)
            genotype.add_allele(incoming)
            genotype.add_allele(outgoing)
            synapse.enabled = False
            added += 1
        return added


class SynapseAddMode(str, Enum):
    """How the add-synapse mutation picks new connections."""

    FIXED = "fixed"
    ANY = "any"

    @classmethod
    def coerce(cls, value: SynapseAddMode | str) -> SynapseAddMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as error:
            valid = ", ".join(member.value for member in cls)
            msg = f"Invalid synapse add mode {value!r}. Expected one of: {valid}"
            raise ValueError(msg) from error


@dataclass(frozen=True, slots=True)
class SynapseAddConfig:
    """Configuration for the add-synapse mutation.

    Attributes:
        mode: ``fixed`` adds a bounded number of synapses, ``any`` considers
            every unconnected neuron pair.
        fixed_maximum: Upper bound of the uniformly drawn attempt count.
        fixed_apply_rate: Probability that each fixed-mode attempt runs.
        any_apply_rate: Probability that ``any`` mode adds a given pair.
    """

    mode: SynapseAddMode = SynapseAddMode.FIXED
    fixed_maximum: int = 1
    fixed_apply_rate: float = 1.0
    any_apply_rate: float = 0.05

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", SynapseAddMode.coerce(self.mode))
        if self.fixed_maximum <= 0:
            msg = "fixed_maximum must be positive."
            raise ValueError(msg)
        _check_rate("fixed_apply_rate", self.fixed_apply_rate)
        _check_rate("any_apply_rate", self.any_apply_rate)


class SynapseAddMutator:
    """Connect previously unconnected neurons."""

    def __init__(
        self,
        config: SynapseAddConfig,
        registry: InnovationRegistry,
        topology: Topology | str = Topology.FEED_FORWARD,
    ) -> None:
        self.config = config
        self.registry = registry
        self.topology = Topology.coerce(topology)

    def mutate(self, genotype: Genotype, rng: Random) -> int:
        """Add synapses according to the configured mode and return how many."""
        feed_forward = self.topology is Topology.FEED_FORWARD
        neurons = genotype.neurons()
        sources = [
            gene_id
            for gene_id, allele in neurons.items()
            if not feed_forward or GeneType.NEURON_OUTPUT not in allele.gene.types
        ]
        destinations = [
            gene_id
            for gene_id, allele in neurons.items()
            if GeneType.NEURON_INPUT not in allele.gene.types
        ]
        synapses = genotype.synapse_table()
        if self.config.mode is SynapseAddMode.FIXED:
            return self._mutate_fixed(genotype, rng, sources, destinations, synapses)
        return self._mutate_any(genotype, rng, sources, destinations, synapses)

    def _mutate_fixed(
        self,
        genotype: Genotype,
        rng: Random,
        sources: list[int],
        destinations: list[int],
        synapses: dict[int, set[int]],
    ) -> int:
        attempts = rng.randint(1, self.config.fixed_maximum)
        added = 0
        for _ in range(attempts):
            if rng.random() >= self.config.fixed_apply_rate:
                continue
            rng.shuffle(sources)
            rng.shuffle(destinations)
            pair = next(
                (
                    (source, destination)
                    for source in sources
                    for destination in destinations
                    if self._permissible(source, destination, synapses)
                ),
                None,
            )
            if pair is None:
                # Remaining attempts are abandoned once one finds no free pair.
                break
            self._add(genotype, pair[0], pair[1], synapses)
            added += 1
        return added

    def _mutate_any(
        self,
        genotype: Genotype,
        rng: Random,
        sources: Iterable[int],
        destinations: list[int],
        synapses: dict[int, set[int]],
    ) -> int:
        added = 0
        for source in sources:
            for destination in destinations:
                if destination in synapses.get(source, ()):
                    continue
                if rng.random() >= self.config.any_apply_rate:
                    continue
                if self._permissible(source, destination, synapses):
                    self._add(genotype, source, destination, synapses)
                    added += 1
        return added

    def _permissible(
        self,
        source: int,
        destination: int,
        synapses: dict[int, set[int]],
    ) -> bool:
        if destination in synapses.get(source, ()):
            return False
        if self.topology is Topology.FEED_FORWARD:
            return not synapse_would_create_cycle(source, destination, synapses)
        return True

    def _add(
        self,
        genotype: Genotype,
        source: int,
        destination: int,
        synapses: dict[int, set[int]],
    ) -> None:
        allele = self.registry.new_synapse_allele(genotype, source, destination)
        genotype.add_allele(allele)
        synapses.setdefault(source, set()).add(destination)


class PerturbationType(str, Enum):
    """Distribution used to perturb allele parameter values."""

    NORMAL = "normal"
    UNIFORM = "uniform"

    @classmethod
    def coerce(cls, value: PerturbationType | str) -> PerturbationType:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as error:
            valid = ", ".join(member.value for member in cls)
            msg = f"Invalid perturbation type {value!r}. Expected one of: {valid}"
            raise ValueError(msg) from error


@dataclass(frozen=True, slots=True)
class AlleleMutationConfig:
    """Configuration for perturbing allele parameter values."""

    allele_apply_rate: float = 0.25
    value_apply_rate: float = 0.25
    perturbation: PerturbationType = PerturbationType.NORMAL
    magnitude: float = 1.0
    normalise_magnitude: bool = True
    value_scaling: Mapping[str, float] = field(default_factory=dict)
    kinds: frozenset[GeneType] | None = None

    def __post_init__(self) -> None:
        _check_rate("allele_apply_rate", self.allele_apply_rate)
        _check_rate("value_apply_rate", self.value_apply_rate)
        object.__setattr__(self, "perturbation", PerturbationType.coerce(self.perturbation))
        if self.magnitude < 0.0:
            msg = "magnitude must be non-negative."
            raise ValueError(msg)
        scaling = {str(label): float(value) for label, value in dict(self.value_scaling).items()}
        object.__setattr__(self, "value_scaling", MappingProxyType(scaling))
        if self.kinds is not None:
            kinds = frozenset(GeneType.coerce(kind) for kind in self.kinds)
            object.__setattr__(self, "kinds", kinds)


class AlleleMutator:
    """Perturb allele values; writes are clamped by the vector bounds."""

    def __init__(self, config: AlleleMutationConfig | None = None) -> None:
        self.config = config or AlleleMutationConfig()

    def mutate(self, genotype: Genotype, rng: Random) -> int:
        """Returns the number of alleles with at least one perturbed value."""
        config = self.config
        mutated = 0
        for allele in genotype:
            if config.kinds is not None and not (config.kinds & allele.gene.types):
                continue
            if rng.random() >= config.allele_apply_rate:
                continue
            changed = False
            for index in range(len(allele.vector)):
                if rng.random() >= config.value_apply_rate:
                    continue
                if not self._may_mutate(allele, index):
                    continue
                allele.vector.set(index, allele.vector[index] + self._perturbation(allele, index, rng))
                changed = True
            mutated += changed
        return mutated

    @staticmethod
    def _may_mutate(allele: Allele, index: int) -> bool:
        # Input neurons only relay their input.
        label = allele.vector.metadata.label(index)
        return not (label == "bias" and GeneType.NEURON_INPUT in allele.gene.types)

    def _perturbation(self, allele: Allele, index: int, rng: Random) -> float:
        config = self.config
        if config.perturbation is PerturbationType.NORMAL:
            delta = rng.gauss(0.0, 1.0)
        else:
            delta = rng.uniform(-1.0, 1.0)
        delta *= config.magnitude
        metadata = allele.vector.metadata
        if config.normalise_magnitude:
            delta *= metadata.bound(index).range
        return delta * config.value_scaling.get(metadata.label(index), 1.0)


__all__ = [
    "AlleleMutationConfig",
    "AlleleMutator",
    "Mutator",
    "NeuronAddConfig",
    "NeuronAddMutator",
    "PerturbationType",
    "SynapseAddConfig",
    "SynapseAddMode",
    "SynapseAddMutator",
    "weight_index",
]
