"""PTM sites of one protein: experimental sites, aligned peptides and their
comparison against the modified residues UniProt already knows."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from curtaincore.alignment import PTMPosition, clean_peptide, extract_ptms, map_peptide
from curtaincore.classify import fold_change_value, passes_cutoffs, significance_value
from curtaincore.common import DEFAULT_COMPARISON
from curtaincore.models import DifferentialForm, Row, Settings
from curtaincore.uniprot import FeatureType, UniProtFeature
from curtaincore.values import is_finite, to_int, to_optional_float

logger = logging.getLogger(__name__)


class PTMComparisonType(Enum):
    MATCHED = "matched"
    NOVEL = "novel"
    KNOWN_ONLY = "knownOnly"
    NONE = "none"


@dataclass(frozen=True)
class ExperimentalPTMSite:
    primary_id: str
    position: int
    residue: str
    modification: Optional[str] = None
    peptide_sequence: Optional[str] = None
    fold_change: Optional[float] = None
    significance: Optional[float] = None
    is_significant: bool = False
    comparison: Optional[str] = None
    score: Optional[float] = None

    @property
    def id(self) -> str:
        return f"{self.primary_id}_{self.position}_{self.residue}"


@dataclass(frozen=True)
class AlignedPeptide:
    primary_id: str
    peptide_sequence: str
    start_position: int
    end_position: int
    ptm_positions: List[PTMPosition] = field(default_factory=list)
    is_significant: bool = False

    @property
    def id(self) -> str:
        return f"{self.primary_id}_{self.start_position}_{self.end_position}"


@dataclass(frozen=True)
class PTMSiteComparison:
    position: int
    residue: str
    is_experimental: bool
    is_known_uniprot: bool
    experimental_data: Optional[ExperimentalPTMSite] = None
    uniprot_feature: Optional[UniProtFeature] = None

    @property
    def comparison_type(self) -> PTMComparisonType:
        if self.is_experimental and self.is_known_uniprot:
            return PTMComparisonType.MATCHED
        if self.is_experimental:
            return PTMComparisonType.NOVEL
        if self.is_known_uniprot:
            return PTMComparisonType.KNOWN_ONLY
        return PTMComparisonType.NONE


def create_aligned_peptide(
    primary_id: str, peptide: str, canonical: str, significant: bool = False
) -> Optional[AlignedPeptide]:
    """Place a peptide on its protein; None when the peptide cannot be located."""
    location = map_peptide(peptide, canonical)
    if location is None:
        return None
    start, end = location
    return AlignedPeptide(
        primary_id=primary_id,
        peptide_sequence=clean_peptide(peptide),
        start_position=start,
        end_position=end,
        ptm_positions=extract_ptms(peptide, start),
        is_significant=significant,
    )


def _window_residue(window: str) -> str:
    window = window.strip()
    if not window:
        return "?"
    return window[len(window) // 2].upper()


def experimental_sites_from_rows(
    rows: Iterable[Row], form: DifferentialForm, settings: Settings
) -> List[ExperimentalPTMSite]:
    """
    Experimental PTM sites from the rows of a PTM dataset.

    Rows without a numeric position are skipped.  The residue is the centre of
    the sequence window, ``?`` when the dataset has none.
    """
    sites = []
    for row in rows:
        position = to_int(row.get(form.position))
        if position is None or position <= 0:
            continue
        fc = fold_change_value(row, form) if form.fold_change else float("nan")
        significance = significance_value(row, form) if form.significant else float("nan")
        significant = is_finite(fc) and is_finite(significance) and passes_cutoffs(
            fc, significance, settings
        )
        comparison = row.text(form.comparison).strip() if form.comparison else ""
        sites.append(
            ExperimentalPTMSite(
                primary_id=row.primary_id,
                position=position,
                residue=_window_residue(row.text(form.sequence_window)),
                peptide_sequence=row.text(form.peptide_sequence) or None,
                fold_change=fc if is_finite(fc) else None,
                significance=significance if is_finite(significance) else None,
                is_significant=significant,
                comparison=comparison or DEFAULT_COMPARISON,
                score=to_optional_float(row.get(form.score)),
            )
        )
    return sites


def compare_ptm_sites(
    sites: Sequence[ExperimentalPTMSite],
    features: Sequence[UniProtFeature],
    canonical: str,
) -> List[PTMSiteComparison]:
    """
    Match experimental sites against UniProt modified residues by position.

    Returns:
        One comparison per experimental site (matched or novel) plus one per
        UniProt site no experiment covers, sorted by position
    """
    modified = [f for f in features if f.feature_type is FeatureType.MODIFIED_RESIDUE]
    known = {f.start for f in modified}
    comparisons = []
    for site in sites:
        feature = next((f for f in modified if f.start == site.position), None)
        comparisons.append(
            PTMSiteComparison(
                position=site.position,
                residue=site.residue,
                is_experimental=True,
                is_known_uniprot=site.position in known,
                experimental_data=site,
                uniprot_feature=feature,
            )
        )
        known.discard(site.position)

    for feature in modified:
        if feature.start not in known:
            continue
        known.discard(feature.start)
        residue = canonical[feature.start - 1] if 0 < feature.start <= len(canonical) else "X"
        comparisons.append(
            PTMSiteComparison(
                position=feature.start,
                residue=residue,
                is_experimental=False,
                is_known_uniprot=True,
                uniprot_feature=feature,
            )
        )
    comparisons.sort(key=lambda c: c.position)
    logger.debug(f"Compared {len(sites)} experimental sites with {len(modified)} known sites")
    return comparisons
