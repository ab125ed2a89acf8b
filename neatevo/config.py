"""Configuration loading for evolvers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .mutators import (
    AlleleMutationConfig,
    NeuronAddConfig,
    PerturbationType,
    SynapseAddConfig,
    SynapseAddMode,
)
from .species import DistanceConfig
from .speciators import KMeansSpeciatorConfig, ThresholdSpeciatorConfig
from .topology import (
    DEFAULT_NEURON_PARAMS,
    DEFAULT_SYNAPSE_PARAMS,
    NetworkShape,
    ParametrisedGeneType,
    Topology,
)

SPECIATION_METHODS = ("threshold", "kmeans")


@dataclass(slots=True)
class EvolverConfig:
    population_size: int = 100
    seed: int | None = None
    workers: int = 1
    input_count: int = 2
    output_count: int = 1
    topology: Topology = Topology.FEED_FORWARD
    speciation: str = "threshold"
    excess_factor: float = 1.0
    disjoint_factor: float = 1.0
    param_factor: float = 0.4
    normalise_parameter_values: bool = True
    gene_mismatch_use_values: bool = False
    speciation_threshold: float = 3.0
    speciation_target: int = 0
    threshold_adjust_factor: float = 0.1
    max_forced_adjustments: int = 3
    species_count: int = 0
    kmeans_max_iterations: int = 5
    neuron_add_maximum: int = 1
    neuron_add_rate: float = 0.03
    synapse_add_mode: SynapseAddMode = SynapseAddMode.FIXED
    synapse_add_maximum: int = 1
    synapse_add_rate: float = 0.05
    synapse_any_rate: float = 0.05
    allele_apply_rate: float = 0.25
    value_apply_rate: float = 0.25
    perturbation: PerturbationType = PerturbationType.NORMAL
    perturbation_magnitude: float = 0.1
    perturbation_normalise: bool = True
    value_scaling: dict[str, float] = field(default_factory=dict)
    neuron_params: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_NEURON_PARAMS))
    synapse_params: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SYNAPSE_PARAMS))

    def __post_init__(self) -> None:
        if self.population_size <= 0:
            msg = "population_size must be positive."
            raise ValueError(msg)
        if self.workers < 0:
            msg = "workers must be >= 0."
            raise ValueError(msg)
        self.topology = Topology.coerce(self.topology)
        self.synapse_add_mode = SynapseAddMode.coerce(self.synapse_add_mode)
        self.perturbation = PerturbationType.coerce(self.perturbation)
        self.speciation = str(self.speciation).lower().replace("-", "")
        if self.speciation not in SPECIATION_METHODS:
            msg = (
                f"Unknown speciation method {self.speciation!r}. "
                f"Expected one of: {', '.join(SPECIATION_METHODS)}"
            )
            raise ValueError(msg)

    def distance_config(self) -> DistanceConfig:
        return DistanceConfig(
            excess_factor=self.excess_factor,
            disjoint_factor=self.disjoint_factor,
            param_factor=self.param_factor,
            normalise_parameter_values=self.normalise_parameter_values,
            gene_mismatch_use_values=self.gene_mismatch_use_values,
        )

    def threshold_config(self) -> ThresholdSpeciatorConfig:
        return ThresholdSpeciatorConfig(
            threshold=self.speciation_threshold,
            target=self.speciation_target,
            adjust_factor=self.threshold_adjust_factor,
            max_forced_adjustments=self.max_forced_adjustments,
        )

    def kmeans_config(self) -> KMeansSpeciatorConfig:
        return KMeansSpeciatorConfig(
            species_count=self.species_count,
            max_iterations=self.kmeans_max_iterations,
        )

    def neuron_add_config(self) -> NeuronAddConfig:
        return NeuronAddConfig(
            maximum=self.neuron_add_maximum,
            apply_rate=self.neuron_add_rate,
        )

    def synapse_add_config(self) -> SynapseAddConfig:
        return SynapseAddConfig(
            mode=self.synapse_add_mode,
            fixed_maximum=self.synapse_add_maximum,
            fixed_apply_rate=self.synapse_add_rate,
            any_apply_rate=self.synapse_any_rate,
        )

    def allele_mutation_config(self) -> AlleleMutationConfig:
        return AlleleMutationConfig(
            allele_apply_rate=self.allele_apply_rate,
            value_apply_rate=self.value_apply_rate,
            perturbation=self.perturbation,
            magnitude=self.perturbation_magnitude,
            normalise_magnitude=self.perturbation_normalise,
            value_scaling=self.value_scaling,
        )

    def network_shape(self) -> NetworkShape:
        return NetworkShape(
            neuron=ParametrisedGeneType.from_mapping(self.neuron_params),
            synapse=ParametrisedGeneType.from_mapping(self.synapse_params),
            topology=self.topology,
            input_count=self.input_count,
            output_count=self.output_count,
        )


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        msg = f"Expected mapping in YAML file: {path}"
        raise ValueError(msg)
    return data


def load_evolver_config(path: Path | str) -> EvolverConfig:
    """Read an ``EvolverConfig`` from a YAML file; omitted keys keep their defaults."""
    path = Path(path)
    data = dict(_load_yaml(path))
    if "pop_size" in data and "population_size" not in data:
        data["population_size"] = data.pop("pop_size")
    known = {item.name for item in fields(EvolverConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        msg = f"Unknown keys in {path}: {', '.join(unknown)}"
        raise ValueError(msg)
    for name in ("neuron_params", "synapse_params", "value_scaling"):
        if name in data and not isinstance(data[name] or {}, Mapping):
            msg = f"'{name}' must be a mapping in {path}"
            raise ValueError(msg)
    if data.get("seed") is not None:
        data["seed"] = int(data["seed"])
    return EvolverConfig(**data)


__all__ = ["EvolverConfig", "SPECIATION_METHODS", "load_evolver_config"]
