from __future__ import annotations

from random import Random

import pytest
from neatevo.topology import (
    NetworkShape,
    ParametrisedGeneType,
    Topology,
    path_exists,
    synapse_would_create_cycle,
)
from neatevo.vector import VectorMetadata


def test_path_exists_on_hand_built_graphs() -> None:
    chain = {1: {2}, 2: {3}, 3: {4}}
    assert path_exists(1, 4, chain)
    assert not path_exists(4, 1, chain)
    assert path_exists(2, 2, chain)

    diamond = {1: {2, 3}, 2: {4}, 3: {4}, 4: set()}
    assert path_exists(1, 4, diamond)
    assert not path_exists(2, 3, diamond)

    looped = {1: {2}, 2: {1, 3}}
    assert path_exists(1, 3, looped)
    assert not path_exists(3, 1, looped)


def test_synapse_would_create_cycle() -> None:
    synapses = {1: {2}, 2: {3}}
    assert synapse_would_create_cycle(3, 1, synapses)
    assert synapse_would_create_cycle(2, 2, synapses)
    assert not synapse_would_create_cycle(1, 3, synapses)
    assert not synapse_would_create_cycle(4, 1, synapses)


def test_parametrised_gene_type_vectors() -> None:
    gene_type = ParametrisedGeneType.from_mapping(
        {
            "gene": {"layer": {"min": 0, "max": 4, "int": True}},
            "allele": {"weight": {"min": -2, "max": 2}},
        }
    )
    gene_vector = gene_type.create_gene_vector(Random(1))
    assert not gene_vector.mutable
    assert 0.0 <= gene_vector[0] <= 4.0
    allele_vector = gene_type.create_allele_vector()
    assert allele_vector.mutable
    assert allele_vector.values == (0.0,)
    assert len(gene_type.create_type_vector()) == 0


def test_parametrised_gene_type_rejects_shared_labels() -> None:
    metadata = VectorMetadata.from_mapping({"weight": {}})
    with pytest.raises(ValueError):
        ParametrisedGeneType(params_gene=metadata, params_allele=metadata)
    with pytest.raises(ValueError):
        ParametrisedGeneType.from_mapping({"bogus": {}})


def test_network_shape_defaults_and_validation() -> None:
    shape = NetworkShape(input_count=3, output_count=2, topology="recurrent")
    assert shape.topology is Topology.RECURRENT
    assert not shape.feed_forward
    assert shape.synapse.params_allele.has_label("weight")
    assert shape.neuron.params_allele.has_label("bias")
    with pytest.raises(ValueError):
        NetworkShape(input_count=0)
