"""Genotype container holding an ordered set of alleles."""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator

from .genes import Allele, GeneType


class Genotype:
    """Alleles sorted by ``(gene id, allele id)``, at most one per gene.

    A genotype is editable while it is being built or mutated. Once it joins a
    population it is published and further structural edits raise
    ``RuntimeError``.
    """

    __slots__ = ("id", "parent_ids", "_alleles", "_by_gene", "_published")

    def __init__(
        self,
        id: int,
        alleles: Iterable[Allele] = (),
        parent_ids: Iterable[int] = (),
    ) -> None:
        if id < 0:
            msg = "Genotype id must be non-negative."
            raise ValueError(msg)
        self.id = id
        self.parent_ids = tuple(parent_ids)
        self._alleles: list[Allele] = []
        self._by_gene: dict[int, Allele] = {}
        self._published = False
        for allele in alleles:
            self.add_allele(allele)

    def _ensure_editable(self) -> None:
        if self._published:
            msg = f"Genotype {self.id} is published and can no longer be modified."
            raise RuntimeError(msg)

    def add_allele(self, allele: Allele) -> None:
        """Insert ``allele`` keeping the allele order."""
        self._ensure_editable()
        gene_id = allele.gene.id
        if gene_id in self._by_gene:
            msg = f"Genotype {self.id} already contains gene {gene_id}."
            raise ValueError(msg)
        allele.attach(self.id)
        bisect.insort(self._alleles, allele)
        self._by_gene[gene_id] = allele

    def remove_allele(self, allele: Allele) -> None:
        self._ensure_editable()
        if self._by_gene.get(allele.gene.id) is not allele:
            msg = f"Allele {allele.id} is not part of genotype {self.id}."
            raise ValueError(msg)
        index = bisect.bisect_left(self._alleles, allele)
        del self._alleles[index]
        del self._by_gene[allele.gene.id]
        allele.detach(self.id)

    def publish(self) -> None:
        """Freeze the genotype structure."""
        self._published = True

    @property
    def published(self) -> bool:
        return self._published

    def get_allele(self, gene_id: int) -> Allele | None:
        return self._by_gene.get(gene_id)

    def has_gene(self, gene_id: int) -> bool:
        return gene_id in self._by_gene

    @property
    def alleles(self) -> tuple[Allele, ...]:
        return tuple(self._alleles)

    @property
    def gene_ids(self) -> tuple[int, ...]:
        return tuple(allele.gene.id for allele in self._alleles)

    def alleles_of_type(self, gene_type: GeneType | str) -> list[Allele]:
        gene_type = GeneType.coerce(gene_type)
        return [allele for allele in self._alleles if gene_type in allele.gene.types]

    def neurons(self) -> dict[int, Allele]:
        """Neuron alleles keyed by gene id, ascending."""
        return {a.gene.id: a for a in self._alleles if a.gene.is_neuron}

    def synapses(self) -> dict[int, Allele]:
        """Synapse alleles keyed by gene id, ascending."""
        return {a.gene.id: a for a in self._alleles if a.gene.is_synapse}

    def enabled_synapses(self) -> list[Allele]:
        return [a for a in self._alleles if a.gene.is_synapse and a.enabled]

    def synapse_table(self) -> dict[int, set[int]]:
        """Map each source neuron id to the destinations it connects to.

        Disabled synapses are included because recombination may re-enable
        them.
        """
        table: dict[int, set[int]] = {}
        for allele in self._alleles:
            gene = allele.gene
            if gene.is_synapse:
                table.setdefault(gene.source_id, set()).add(gene.destination_id)
        return table

    def copy(self, new_id: int | None = None) -> Genotype:
        """Return an editable clone with copied alleles.

        With ``new_id`` the clone records this genotype as its parent;
        without it the clone keeps this id and lineage.
        """
        if new_id is None:
            return Genotype(
                self.id,
                (allele.copy() for allele in self._alleles),
                parent_ids=self.parent_ids,
            )
        return Genotype(
            new_id,
            (allele.copy() for allele in self._alleles),
            parent_ids=(self.id,),
        )

    def __len__(self) -> int:
        return len(self._alleles)

    def __iter__(self) -> Iterator[Allele]:
        return iter(tuple(self._alleles))

    def __contains__(self, gene_id: object) -> bool:
        return gene_id in self._by_gene

    def __repr__(self) -> str:
        neurons = sum(1 for a in self._alleles if a.gene.is_neuron)
        return (
            f"Genotype(id={self.id}, neurons={neurons}, "
            f"synapses={len(self._alleles) - neurons})"
        )


__all__ = ["Genotype"]
