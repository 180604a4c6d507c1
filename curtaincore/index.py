"""Identifier index over gene names, accessions and primary IDs.

Building is a pure fold: each batch of rows folds into an :class:`IndexShard`,
shards merge by per-key union and the merged shard freezes into an
:class:`IdentifierIndex`.  Keys are upper-cased; the values are the primary
IDs that carry the key.
"""
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set

from uniprotparser.betaparser import UniprotSequence

from curtaincore.models import Row
from curtaincore.uniprot import UniprotStore, gene_names_of
from curtaincore.utils import log_time

logger = logging.getLogger(__name__)

GENE_SEPARATOR_REGEX = re.compile(r"[\s;\\]+")


def _add(bucket: Dict[str, Set[str]], key: str, primary_id: str) -> None:
    key = key.strip().upper()
    if key:
        bucket.setdefault(key, set()).add(primary_id)


@dataclass
class IndexShard:
    genes: Dict[str, Set[str]] = field(default_factory=dict)
    accessions: Dict[str, Set[str]] = field(default_factory=dict)
    split_ids: Dict[str, Set[str]] = field(default_factory=dict)
    display: Dict[str, str] = field(default_factory=dict)

    def add_row(
        self,
        row: Row,
        gene_column: str = "",
        accession_column: str = "",
        uniprot: Optional[UniprotStore] = None,
    ) -> None:
        pid = row.primary_id
        if not pid:
            return

        parts = [p.strip() for p in pid.split(";") if p.strip()]
        _add(self.split_ids, pid, pid)
        for part in parts:
            _add(self.split_ids, part, pid)
            us = UniprotSequence(part, True)
            if us.accession:
                _add(self.accessions, us.accession, pid)

        if accession_column:
            for acc in row.text(accession_column).split(";"):
                _add(self.accessions, acc, pid)

        gene = row.text(gene_column).strip() if gene_column else ""
        if gene:
            genes = [gene] + [g for g in GENE_SEPARATOR_REGEX.split(gene) if g]
        elif uniprot is not None:
            genes = gene_names_of(uniprot.get_record(pid))
        else:
            genes = []
        for g in genes:
            _add(self.genes, g, pid)
        if genes:
            self.display.setdefault(pid, genes[0])

    def merge(self, other: "IndexShard") -> "IndexShard":
        merged = IndexShard()
        for name in ("genes", "accessions", "split_ids"):
            bucket: Dict[str, Set[str]] = {}
            for source in (getattr(self, name), getattr(other, name)):
                for key, ids in source.items():
                    bucket.setdefault(key, set()).update(ids)
            setattr(merged, name, bucket)
        merged.display = {**other.display, **self.display}
        return merged

    def freeze(self) -> "IdentifierIndex":
        def frozen(bucket: Mapping[str, Set[str]]) -> Mapping[str, FrozenSet[str]]:
            return MappingProxyType({k: frozenset(v) for k, v in bucket.items()})

        return IdentifierIndex(
            genes=frozen(self.genes),
            accessions=frozen(self.accessions),
            split_ids=frozen(self.split_ids),
            display=MappingProxyType(dict(self.display)),
        )


@dataclass(frozen=True)
class IdentifierIndex:
    genes: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: MappingProxyType({}))
    accessions: Mapping[str, FrozenSet[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    split_ids: Mapping[str, FrozenSet[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    display: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def primary_ids(self) -> FrozenSet[str]:
        ids: Set[str] = set()
        for values in self.split_ids.values():
            ids.update(values)
        return frozenset(ids)

    def __len__(self) -> int:
        return len(self.primary_ids)


def merge_shards(shards: Iterable[IndexShard]) -> IndexShard:
    merged = IndexShard()
    for shard in shards:
        merged = merged.merge(shard)
    return merged


@log_time("Identifier index build")
def build_index(
    rows: Iterable[Row],
    gene_column: str = "",
    accession_column: str = "",
    uniprot: Optional[UniprotStore] = None,
) -> IdentifierIndex:
    """
    Build the identifier index for a dataset.

    Args:
        rows: Dataset rows
        gene_column: Column holding gene names
        accession_column: Column holding accessions (PTM data)
        uniprot: Records supplying gene names for rows without one

    Returns:
        Frozen index; building again from the same rows gives an equal index
    """
    shard = IndexShard()
    for row in rows:
        shard.add_row(row, gene_column, accession_column, uniprot)
    index = shard.freeze()
    logger.debug(
        f"Indexed {len(index)} proteins: {len(index.genes)} gene keys, "
        f"{len(index.accessions)} accession keys, {len(index.split_ids)} ID keys"
    )
    return index
