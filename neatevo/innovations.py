"""Population-wide registry that reuses genes for equivalent structural innovations."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from random import Random

from .genes import Allele, Gene, GeneType
from .genotype import Genotype
from .ids import IDFactory
from .topology import NetworkShape
from .vector import Vector

logger = logging.getLogger(__name__)

SynapseKey = tuple[int, int, Vector]
NeuronKey = tuple[int, Vector]


@dataclass(slots=True)
class InnovationRegistry:
    """Hands out alleles whose genes are shared across genotypes.

    Two requests for the same structural change (same endpoints, or the same
    split synapse) with equal gene parameters receive the same gene, so
    crossover and distance can align them by innovation number.
    """

    shape: NetworkShape
    ids: IDFactory = field(default_factory=IDFactory)
    rng: Random = field(default_factory=Random)
    _synapse_genes: dict[SynapseKey, Gene] = field(
        default_factory=dict, init=False, repr=False
    )
    _neuron_genes: dict[NeuronKey, Gene] = field(
        default_factory=dict, init=False, repr=False
    )
    _seed_neurons: dict[tuple[GeneType, int], Gene] = field(
        default_factory=dict, init=False, repr=False
    )
    _seed_synapses: dict[tuple[int, int], Gene] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def new_synapse_allele(
        self,
        genotype: Genotype,
        source_id: int,
        destination_id: int,
    ) -> Allele:
        """Return a fresh allele for a synapse between two neurons of ``genotype``.

        Args:
            genotype: Genotype the allele is destined for.
            source_id: Gene id of the presynaptic neuron.
            destination_id: Gene id of the postsynaptic neuron.

        Returns:
            A detached allele whose gene is reused when an equivalent synapse
            gene was created before.
        """
        for endpoint in (source_id, destination_id):
            allele = genotype.get_allele(endpoint)
            if allele is None or not allele.gene.is_neuron:
                msg = f"Genotype {genotype.id} has no neuron gene {endpoint}."
                raise KeyError(msg)

        vector = self.shape.synapse.create_gene_vector(self.rng)
        key = (source_id, destination_id, vector)
        with self._lock:
            gene = self._synapse_genes.get(key)
            if gene is None:
                gene = Gene.synapse(self.ids(), source_id, destination_id, vector)
                self._synapse_genes[key] = gene
                logger.debug(
                    "New synapse gene %d: %d -> %d", gene.id, source_id, destination_id
                )
        return Allele(gene, self.shape.synapse.create_allele_vector())

    def new_neuron_allele(self, genotype: Genotype, synapse_id: int) -> Allele:
        """Return a fresh hidden-neuron allele for splitting ``synapse_id``."""
        allele = genotype.get_allele(synapse_id)
        if allele is None or not allele.gene.is_synapse:
            msg = f"Genotype {genotype.id} has no synapse gene {synapse_id}."
            raise KeyError(msg)

        vector = self.shape.neuron.create_gene_vector(self.rng)
        key = (synapse_id, vector)
        with self._lock:
            gene = self._neuron_genes.get(key)
            if gene is None:
                gene = Gene.neuron(self.ids(), GeneType.NEURON_HIDDEN, vector)
                self._neuron_genes[key] = gene
                logger.debug("New neuron gene %d splitting synapse %d", gene.id, synapse_id)
        return Allele(gene, self.shape.neuron.create_allele_vector())

    def new_seed_neuron_allele(self, kind: GeneType | str, index: int) -> Allele:
        """Return an allele for the ``index``-th input or output neuron."""
        kind = GeneType.coerce(kind)
        if kind not in (GeneType.NEURON_INPUT, GeneType.NEURON_OUTPUT):
            msg = f"Seed neurons must be inputs or outputs, got {kind.value!r}."
            raise ValueError(msg)
        limit = (
            self.shape.input_count
            if kind is GeneType.NEURON_INPUT
            else self.shape.output_count
        )
        if not 0 <= index < limit:
            msg = f"{kind.value} index {index} is outside 0..{limit - 1}."
            raise ValueError(msg)
        with self._lock:
            gene = self._seed_neurons.get((kind, index))
            if gene is None:
                vector = self.shape.neuron.create_gene_vector(self.rng)
                gene = Gene.neuron(self.ids(), kind, vector)
                self._seed_neurons[(kind, index)] = gene
        return Allele(gene, self.shape.neuron.create_allele_vector())

    def new_seed_synapse_allele(self, source_id: int, destination_id: int) -> Allele:
        """Return an allele for one synapse of the initial wiring."""
        with self._lock:
            gene = self._seed_synapses.get((source_id, destination_id))
            if gene is None:
                vector = self.shape.synapse.create_gene_vector(self.rng)
                gene = Gene.synapse(self.ids(), source_id, destination_id, vector)
                self._seed_synapses[(source_id, destination_id)] = gene
                self._synapse_genes.setdefault((source_id, destination_id, vector), gene)
        return Allele(gene, self.shape.synapse.create_allele_vector())

    @property
    def synapse_gene_count(self) -> int:
        with self._lock:
            return len({gene.id for gene in self._synapse_genes.values()})

    @property
    def neuron_gene_count(self) -> int:
        with self._lock:
            return len(self._neuron_genes) + len(self._seed_neurons)

    def __len__(self) -> int:
        return self.synapse_gene_count + self.neuron_gene_count

    def lookup_synapse(self, source_id: int, destination_id: int) -> tuple[Gene, ...]:
        """All registered synapse genes connecting ``source_id`` to ``destination_id``."""
        with self._lock:
            genes = {
                gene.id: gene
                for (source, destination, _), gene in self._synapse_genes.items()
                if source == source_id and destination == destination_id
            }
        return tuple(genes[gene_id] for gene_id in sorted(genes))


__all__ = ["InnovationRegistry"]
