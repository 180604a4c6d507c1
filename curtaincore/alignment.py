"""Global sequence alignment and peptide mapping.

Scores: match +2, mismatch -1, gap -2 per position.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from curtaincore.utils import log_time

logger = logging.getLogger(__name__)

MATCH_SCORE = 2
MISMATCH_PENALTY = -1
GAP_PENALTY = -2
FUZZY_MATCH_THRESHOLD = 0.8

AMINO_ACIDS = frozenset("ACDEFGHIKLMNPQRSTVWYacdefghiklmnpqrstvwy")
BRACKET_REGEX = re.compile(r"\[[^\]]*\]")
PAREN_REGEX = re.compile(r"\([^)]*\)")
WHITESPACE_REGEX = re.compile(r"\s+")


@dataclass(frozen=True)
class AlignedSequencePair:
    experimental_sequence: str
    canonical_sequence: str
    experimental_aligned: str
    canonical_aligned: str
    experimental_position_map: Dict[int, int] = field(default_factory=dict)
    canonical_position_map: Dict[int, int] = field(default_factory=dict)
    score: int = 0

    def experimental_to_canonical(self, position: int) -> Optional[int]:
        """1-indexed experimental position -> 1-indexed canonical position, if aligned."""
        return self._translate(
            position, self.experimental_position_map, self.canonical_aligned
        )

    def canonical_to_experimental(self, position: int) -> Optional[int]:
        return self._translate(
            position, self.canonical_position_map, self.experimental_aligned
        )

    @staticmethod
    def _translate(position: int, position_map: Dict[int, int], other: str) -> Optional[int]:
        aligned_index = position_map.get(position)
        if aligned_index is None or other[aligned_index] == "-":
            return None
        return aligned_index + 1 - other[:aligned_index].count("-")


@dataclass(frozen=True)
class PTMPosition:
    position_in_peptide: int
    position_in_protein: int
    residue: str
    modification: str


def _letters(sequence: str) -> str:
    return "".join(c for c in sequence.upper() if c.isalpha())


def _score_matrix(seq1: str, seq2: str) -> np.ndarray:
    a = np.array(list(seq1))
    b = np.array(list(seq2))
    substitution = np.where(a[:, None] == b[None, :], MATCH_SCORE, MISMATCH_PENALTY)

    m, n = len(seq1), len(seq2)
    columns = np.arange(n + 1)
    dp = np.zeros((m + 1, n + 1), dtype=np.int64)
    dp[0, :] = columns * GAP_PENALTY
    dp[:, 0] = np.arange(m + 1) * GAP_PENALTY
    for i in range(1, m + 1):
        candidates = np.empty(n + 1, dtype=np.int64)
        candidates[0] = dp[i, 0]
        candidates[1:] = np.maximum(
            dp[i - 1, :-1] + substitution[i - 1], dp[i - 1, 1:] + GAP_PENALTY
        )
        # a run of left moves costs GAP_PENALTY per column
        dp[i] = np.maximum.accumulate(candidates + columns * -GAP_PENALTY) + (
            columns * GAP_PENALTY
        )
    return dp


def _position_map(aligned: str) -> Dict[int, int]:
    positions = {}
    position = 0
    for index, char in enumerate(aligned):
        if char != "-":
            position += 1
            positions[position] = index
    return positions


@log_time("Sequence alignment")
def align(experimental: str, canonical: str) -> AlignedSequencePair:
    """
    Needleman-Wunsch global alignment of two sequences.

    Both inputs are upper-cased and stripped of anything but letters.  On
    traceback a diagonal move wins ties, then a move up (gap in the canonical
    sequence), then a move left.

    Args:
        experimental: Experimental sequence
        canonical: Canonical (UniProt) sequence

    Returns:
        The aligned pair with 1-indexed position -> aligned index maps; if
        either sequence is empty the pair is returned unaligned with empty maps
    """
    seq1 = _letters(experimental)
    seq2 = _letters(canonical)
    if not seq1 or not seq2:
        return AlignedSequencePair(seq1, seq2, seq1, seq2)

    dp = _score_matrix(seq1, seq2)
    aligned1: List[str] = []
    aligned2: List[str] = []
    i, j = len(seq1), len(seq2)
    while i > 0 or j > 0:
        if i > 0 and j > 0:
            score = MATCH_SCORE if seq1[i - 1] == seq2[j - 1] else MISMATCH_PENALTY
            if dp[i, j] == dp[i - 1, j - 1] + score:
                aligned1.append(seq1[i - 1])
                aligned2.append(seq2[j - 1])
                i -= 1
                j -= 1
                continue
        if i > 0 and dp[i, j] == dp[i - 1, j] + GAP_PENALTY:
            aligned1.append(seq1[i - 1])
            aligned2.append("-")
            i -= 1
        else:
            aligned1.append("-")
            aligned2.append(seq2[j - 1])
            j -= 1

    experimental_aligned = "".join(reversed(aligned1))
    canonical_aligned = "".join(reversed(aligned2))
    return AlignedSequencePair(
        experimental_sequence=seq1,
        canonical_sequence=seq2,
        experimental_aligned=experimental_aligned,
        canonical_aligned=canonical_aligned,
        experimental_position_map=_position_map(experimental_aligned),
        canonical_position_map=_position_map(canonical_aligned),
        score=int(dp[-1, -1]),
    )


def clean_peptide(peptide: str) -> str:
    """``"_PEPT[Phospho]IDE_"`` -> ``"PEPTIDE"``; case is kept."""
    cleaned = BRACKET_REGEX.sub("", peptide)
    cleaned = PAREN_REGEX.sub("", cleaned)
    return "".join(c for c in cleaned if c in AMINO_ACIDS)


def _fuzzy_match(peptide: str, sequence: str) -> Optional[Tuple[int, int]]:
    length = len(peptide)
    if length == 0 or length > len(sequence):
        return None
    windows = np.lib.stride_tricks.sliding_window_view(np.array(list(sequence)), length)
    similarity = (windows == np.array(list(peptide))).sum(axis=1) / length
    best = int(np.argmax(similarity))
    if similarity[best] < FUZZY_MATCH_THRESHOLD:
        return None
    return best + 1, best + length


def map_peptide(peptide: str, canonical: str) -> Optional[Tuple[int, int]]:
    """
    Locate a peptide in a protein sequence.

    An exact case-insensitive match wins.  Otherwise every window of the
    peptide's length is scored by the fraction of identical positions and the
    best window scoring at least 0.8 is taken, the leftmost one on ties.

    Returns:
        1-indexed inclusive ``(start, end)``, or None when nothing matches
    """
    cleaned = clean_peptide(peptide).upper()
    sequence = WHITESPACE_REGEX.sub("", canonical).upper()
    if not cleaned or not sequence:
        return None
    index = sequence.find(cleaned)
    if index >= 0:
        return index + 1, index + len(cleaned)
    return _fuzzy_match(cleaned, sequence)


def extract_ptms(peptide: str, start: int) -> List[PTMPosition]:
    """
    Modifications annotated inline in a peptide, e.g. ``"PEPTS[Phospho]IDE"``.

    A bracketed or parenthesised annotation modifies the residue right before
    it; annotations before the first residue are ignored.

    Args:
        peptide: Annotated peptide
        start: 1-indexed protein position of the peptide's first residue
    """
    positions = []
    cleaned = clean_peptide(peptide)
    clean_pos = 0
    i = 0
    while i < len(peptide):
        char = peptide[i]
        if char in "[(":
            end = peptide.find("]" if char == "[" else ")", i + 1)
            if end >= 0:
                if clean_pos > 0:
                    positions.append(
                        PTMPosition(
                            position_in_peptide=clean_pos,
                            position_in_protein=start + clean_pos - 1,
                            residue=cleaned[clean_pos - 1],
                            modification=peptide[i + 1 : end],
                        )
                    )
                i = end + 1
                continue
        if char in AMINO_ACIDS:
            clean_pos += 1
        i += 1
    return positions
