"""Multi-parent crossover producing a child genotype."""

from __future__ import annotations

from collections.abc import Sequence
from random import Random

from .genes import Allele, Gene
from .genotype import Genotype
from .ids import IDFactory
from .population import Individual
from .topology import Topology, synapse_would_create_cycle


class Recombiner:
    """Combine two or more parents into one child genotype.

    A strictly best-ranked parent dominates: the child inherits exactly its
    genes. Otherwise the child receives the union of all parents' genes,
    skipping synapses that duplicate an accepted endpoint pair or, in
    feed-forward networks, would close a cycle.
    """

    def __init__(
        self,
        topology: Topology | str = Topology.FEED_FORWARD,
        ids: IDFactory | None = None,
        rng: Random | None = None,
    ) -> None:
        self.topology = Topology.coerce(topology)
        self.ids = ids or IDFactory()
        self.rng = rng or Random()

    def recombine(self, parents: Sequence[Individual]) -> Genotype:
        if len(parents) < 2:
            msg = "Recombination needs at least two parents."
            raise ValueError(msg)
        ranked = sorted(parents, key=lambda parent: parent.rank, reverse=True)
        dominant = ranked[0].rank > ranked[1].rank

        carriers: dict[int, list[Allele]] = {}
        for parent in ranked:
            for allele in parent.genotype:
                carriers.setdefault(allele.gene.id, []).append(allele)
        gene_ids = ranked[0].genotype.gene_ids if dominant else sorted(carriers)

        child = Genotype(
            self.ids(),
            parent_ids=tuple(parent.genotype.id for parent in ranked),
        )
        synapses: dict[int, set[int]] = {}
        for gene_id in gene_ids:
            alleles = carriers[gene_id]
            gene = alleles[0].gene
            if gene.is_synapse and not dominant:
                if not self._accept_synapse(gene, child, synapses):
                    continue
                synapses.setdefault(gene.source_id, set()).add(gene.destination_id)
            child.add_allele(self._inherit(alleles))
        return child

    def _accept_synapse(
        self,
        gene: Gene,
        child: Genotype,
        synapses: dict[int, set[int]],
    ) -> bool:
        if not (child.has_gene(gene.source_id) and child.has_gene(gene.destination_id)):
            return False
        if gene.destination_id in synapses.get(gene.source_id, ()):
            return False
        if self.topology is Topology.FEED_FORWARD:
            return not synapse_would_create_cycle(gene.source_id, gene.destination_id, synapses)
        return True

    def _inherit(self, alleles: Sequence[Allele]) -> Allele:
        template = alleles[self.rng.randrange(len(alleles))]
        child = Allele(template.gene, template.vector.copy(mutable=True), enabled=template.enabled)
        if len(alleles) == 1 or self.rng.random() < 0.5:
            source = alleles[self.rng.randrange(len(alleles))]
            child.vector.set_values(source.vector)
            return child

        weights = [self.rng.random() for _ in alleles]
        total = sum(weights)
        if total == 0.0:
            weights = [1.0] * len(alleles)
            total = float(len(alleles))
        values = [
            sum(allele.vector[index] * weight for allele, weight in zip(alleles, weights)) / total
            for index in range(len(child.vector))
        ]
        child.vector.set_values(values)
        return child


__all__ = ["Recombiner"]
