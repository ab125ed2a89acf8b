"""NEAT genetic encoding, structural mutation, crossover and speciation."""

from __future__ import annotations

from .config import EvolverConfig, load_evolver_config
from .evolver import Evolver
from .genes import Allele, Gene, GeneType
from .genotype import Genotype
from .ids import IDFactory
from .innovations import InnovationRegistry
from .mutators import (
    AlleleMutationConfig,
    AlleleMutator,
    Mutator,
    NeuronAddConfig,
    NeuronAddMutator,
    PerturbationType,
    SynapseAddConfig,
    SynapseAddMode,
    SynapseAddMutator,
)
from .parallel import Parallel
from .population import Individual, Population
from .recombination import Recombiner
from .speciators import (
    KMeansSpeciator,
    KMeansSpeciatorConfig,
    SpeciatorStats,
    ThresholdSpeciator,
    ThresholdSpeciatorConfig,
    compute_centroid,
)
from .species import (
    DistanceConfig,
    Species,
    check_speciation_integrity,
    compatibility_distance,
)
from .topology import (
    NetworkShape,
    ParametrisedGeneType,
    Topology,
    path_exists,
    synapse_would_create_cycle,
)
from .vector import (
    MAXIMUM_INTEGER_VALUE,
    Interval,
    Vector,
    VectorElement,
    VectorMetadata,
)

__all__ = [
    "MAXIMUM_INTEGER_VALUE",
    "Interval",
    "Vector",
    "VectorElement",
    "VectorMetadata",
    "IDFactory",
    "Gene",
    "GeneType",
    "Allele",
    "Genotype",
    "Topology",
    "ParametrisedGeneType",
    "NetworkShape",
    "path_exists",
    "synapse_would_create_cycle",
    "InnovationRegistry",
    "Mutator",
    "NeuronAddConfig",
    "NeuronAddMutator",
    "SynapseAddMode",
    "SynapseAddConfig",
    "SynapseAddMutator",
    "PerturbationType",
    "AlleleMutationConfig",
    "AlleleMutator",
    "Individual",
    "Population",
    "DistanceConfig",
    "Species",
    "compatibility_distance",
    "check_speciation_integrity",
    "SpeciatorStats",
    "ThresholdSpeciatorConfig",
    "ThresholdSpeciator",
    "KMeansSpeciatorConfig",
    "KMeansSpeciator",
    "compute_centroid",
    "Recombiner",
    "Parallel",
    "Evolver",
    "EvolverConfig",
    "load_evolver_config",
]
