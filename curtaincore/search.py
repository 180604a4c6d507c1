import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Mapping, Optional, Set

from curtaincore.index import IdentifierIndex, build_index
from curtaincore.models import Row
from curtaincore.uniprot import UniprotStore

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class SearchType(Enum):
    PRIMARY_ID = "Primary ID"
    ACCESSION_ID = "Accession ID"
    GENE_NAME = "Gene Name"


class SearchMode(Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    BATCH = "batch"
    REGEX = "regex"


@dataclass(frozen=True)
class Suggestion:
    text: str
    match_type: str
    protein_count: int


@dataclass(frozen=True)
class SearchResult:
    query: str
    primary_ids: FrozenSet[str]
    matched_terms: tuple = ()

    @property
    def found(self) -> bool:
        return bool(self.primary_ids)


def _keyspace(index: IdentifierIndex, search_type: SearchType) -> Mapping[str, FrozenSet[str]]:
    if search_type is SearchType.GENE_NAME:
        return index.genes
    if search_type is SearchType.ACCESSION_ID:
        keys = dict(index.split_ids)
        for key, ids in index.accessions.items():
            keys[key] = keys.get(key, frozenset()) | ids
        return keys
    return index.split_ids


def _contains(keys: Mapping[str, FrozenSet[str]], term: str) -> Set[str]:
    found: Set[str] = set()
    for key, ids in keys.items():
        if term in key:
            found.update(ids)
    return found


class SearchEngine:
    """
    Search over one dataset.

    The engine only ever reads its current :class:`IdentifierIndex`;
    :meth:`rebuild` builds a new index and swaps it in.
    """

    def __init__(
        self,
        index: Optional[IdentifierIndex] = None,
        search_type: SearchType = SearchType.GENE_NAME,
    ):
        self.index = index or IdentifierIndex()
        self.search_type = search_type

    def rebuild(
        self,
        rows: Iterable[Row],
        gene_column: str = "",
        accession_column: str = "",
        uniprot: Optional[UniprotStore] = None,
    ) -> IdentifierIndex:
        self.index = build_index(rows, gene_column, accession_column, uniprot)
        return self.index

    def _keys(self, search_type: Optional[SearchType]) -> Mapping[str, FrozenSet[str]]:
        return _keyspace(self.index, search_type or self.search_type)

    def gene_name_for(self, primary_id: str) -> Optional[str]:
        return self.index.display.get(primary_id)

    def exact(self, term: str, search_type: Optional[SearchType] = None) -> Set[str]:
        key = term.strip().upper()
        if not key:
            return set()
        return set(self._keys(search_type).get(key, frozenset()))

    def partial(self, term: str, search_type: Optional[SearchType] = None) -> Set[str]:
        key = term.strip().upper()
        if len(key) < MIN_QUERY_LENGTH:
            return set()
        return _contains(self._keys(search_type), key)

    def typeahead(
        self, prefix: str, limit: int = 10, search_type: Optional[SearchType] = None
    ) -> List[Suggestion]:
        """
        Suggestions for a partially typed identifier.

        Args:
            prefix: Text typed so far; fewer than two characters gives nothing
            limit: Maximum number of suggestions
            search_type: Keyspace to search, defaults to the engine's

        Returns:
            Exact matches first, then partial matches in alphabetical order
        """
        key = prefix.strip().upper()
        if len(key) < MIN_QUERY_LENGTH or limit <= 0:
            return []
        keys = self._keys(search_type)
        matches = sorted(k for k in keys if key in k)
        matches.sort(key=lambda k: k != key)
        return [
            Suggestion(k, "exact" if k == key else "partial", len(keys[k]))
            for k in matches[:limit]
        ]

    def _resolve_term(self, term: str, search_type: Optional[SearchType]) -> Set[str]:
        found = self.exact(term, search_type)
        if not found:
            found = self.partial(term, search_type)
        return found

    def batch(self, text: str, search_type: Optional[SearchType] = None) -> List[SearchResult]:
        """
        One result per non-empty line of ``text``.

        The whole line is tried as one identifier first; only when that finds
        nothing is it split on ``;`` and every part resolved on its own.
        """
        results = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            found = self.exact(line, search_type)
            if found:
                results.append(SearchResult(line, frozenset(found), (line.upper(),)))
                continue
            terms = []
            for part in line.split(";"):
                part = part.strip().upper()
                if not part:
                    continue
                part_found = self._resolve_term(part, search_type)
                if part_found:
                    terms.append(part)
                    found.update(part_found)
            results.append(SearchResult(line, frozenset(found), tuple(terms)))
        return results

    def regex(self, pattern: str, search_type: Optional[SearchType] = None) -> Set[str]:
        try:
            compiled = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            logger.debug(f"Invalid search pattern {pattern!r}: {e}")
            return set()
        found: Set[str] = set()
        for key, ids in self._keys(search_type).items():
            if compiled.search(key):
                found.update(ids)
        return found

    def search(
        self,
        query: str,
        mode: SearchMode = SearchMode.EXACT,
        search_type: Optional[SearchType] = None,
    ) -> List[str]:
        if mode is SearchMode.EXACT:
            found = self.exact(query, search_type)
        elif mode is SearchMode.PARTIAL:
            found = self.partial(query, search_type)
        elif mode is SearchMode.BATCH:
            found = set()
            for result in self.batch(query, search_type):
                found.update(result.primary_ids)
        else:
            found = self.regex(query, search_type)
        return sorted(found)


def search(
    index: IdentifierIndex,
    query: str,
    mode: SearchMode = SearchMode.EXACT,
    search_type: SearchType = SearchType.GENE_NAME,
) -> List[str]:
    return SearchEngine(index, search_type).search(query, mode)


def typeahead(
    index: IdentifierIndex,
    prefix: str,
    limit: int = 10,
    search_type: SearchType = SearchType.GENE_NAME,
) -> List[Suggestion]:
    return SearchEngine(index, search_type).typeahead(prefix, limit)
