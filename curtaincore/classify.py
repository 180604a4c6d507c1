"""Volcano plot classification.

Every differential row becomes a :class:`PlotPoint` that carries its group
names and their colors.  The work runs in three phases:

1. extract the numeric values and group names of every row;
2. run one color assignment pass over the full set of group names;
3. build the points.

Phase 3 only reads the color map that phase 2 produced, so a point's color
never depends on the order in which the rows arrive.
"""
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from curtaincore.colors import ColorCache
from curtaincore.common import (
    BACKGROUND_GROUP,
    BACKGROUND_GROUP_COLOR,
    DEFAULT_COMPARISON,
    FALLBACK_POINT_COLOR,
    UNASSIGNED_GROUP_COLOR,
)
from curtaincore.models import DifferentialForm, Row, SelectionMap, Settings, VolcanoAxis
from curtaincore.uniprot import UniprotStore, extract_gene_name
from curtaincore.utils import log_time
from curtaincore.values import is_finite

logger = logging.getLogger(__name__)

MIN_P_VALUE = 1e-300
COMPARISON_SUFFIX_REGEX = re.compile(r"\(([^)]*)\)[^(]*$")


def _neg_log10(p_value: float) -> float:
    if math.isnan(p_value) or p_value < 0:
        return math.nan
    return -math.log10(max(p_value, MIN_P_VALUE))


def _group_name(fc: float, neg_log_p: float, settings: Settings, comparison: str) -> str:
    if neg_log_p < _neg_log10(settings.p_cutoff):
        p_label = f"P-value > {settings.p_cutoff!r}"
    else:
        p_label = f"P-value <= {settings.p_cutoff!r}"
    if abs(fc) > settings.log2_fc_cutoff:
        fc_label = f"FC > {settings.log2_fc_cutoff!r}"
    else:
        fc_label = f"FC <= {settings.log2_fc_cutoff!r}"
    return f"{p_label};{fc_label} ({comparison})"


def significance_group(
    fc: float, p_value: float, settings: Settings, comparison: str = DEFAULT_COMPARISON
) -> str:
    """
    Synthetic group name of a point.

    >>> significance_group(2.0, 0.01, Settings(), "1")
    'P-value <= 0.05;FC > 0.6 (1)'

    Args:
        fc: Log2 fold change
        p_value: Untransformed p-value
        settings: Settings holding both cutoffs
        comparison: Comparison label appended in parentheses
    """
    return _group_name(fc, _neg_log10(p_value), settings, comparison or DEFAULT_COMPARISON)


def passes_cutoffs(fc: float, neg_log_p: float, settings: Settings) -> bool:
    return neg_log_p >= _neg_log10(settings.p_cutoff) and abs(fc) > settings.log2_fc_cutoff


def selection_applies(name: str, comparison: str) -> bool:
    """A selection named ``"Up (A vs B)"`` only covers rows of comparison ``A vs B``."""
    match = COMPARISON_SUFFIX_REGEX.search(name)
    if match is None:
        return True
    return match.group(1) == comparison


@dataclass(frozen=True)
class PlotPoint:
    primary_id: str
    gene: str
    x: float
    y: float
    comparison: str
    groups: Tuple[str, ...]
    colors: Tuple[str, ...]
    custom_text: str = ""

    @property
    def color(self) -> str:
        return self.colors[0] if self.colors else FALLBACK_POINT_COLOR


@dataclass
class ClassificationResult:
    points: List[PlotPoint]
    volcano_axis: VolcanoAxis
    color_map: Dict[str, str] = field(default_factory=dict)


@dataclass
class _Extracted:
    primary_id: str
    gene: str
    x: float
    y: float
    comparison: str
    explicit: List[str]
    synthetic: Optional[str]
    custom_text: str


def fold_change_value(row: Row, form: DifferentialForm) -> float:
    fc = row.number(form.fold_change)
    if form.transform_fc:
        fc = math.log2(fc) if fc > 0 else math.nan
    if form.reverse_fold_change:
        fc = -fc
    return fc


def significance_value(row: Row, form: DifferentialForm) -> float:
    value = row.number(form.significant)
    if form.transform_significant:
        return _neg_log10(value)
    return value


def _display_gene(
    row: Row, form: DifferentialForm, settings: Settings, uniprot: Optional[UniprotStore]
) -> str:
    if settings.fetch_uniprot and uniprot is not None:
        gene = extract_gene_name(uniprot.get_record(row.primary_id))
        if gene:
            return gene
    gene = row.text(form.gene_names).strip()
    return gene or row.primary_id


def _extract(
    rows: Iterable[Row],
    form: DifferentialForm,
    settings: Settings,
    selections: SelectionMap,
    uniprot: Optional[UniprotStore],
) -> List[_Extracted]:
    extracted = []
    for row in rows:
        if not row.primary_id:
            continue
        x = fold_change_value(row, form)
        y = significance_value(row, form)
        if not (is_finite(x) and is_finite(y)):
            continue
        comparison = row.text(form.comparison).strip() if form.comparison else ""
        comparison = comparison or DEFAULT_COMPARISON
        explicit = [
            name
            for name, selected in selections.get(row.primary_id, {}).items()
            if selected and selection_applies(name, comparison)
        ]
        synthetic = None
        if not explicit:
            if settings.background_color_grey:
                synthetic = BACKGROUND_GROUP
            else:
                synthetic = _group_name(x, y, settings, comparison)
        extracted.append(
            _Extracted(
                primary_id=row.primary_id,
                gene=_display_gene(row, form, settings, uniprot),
                x=x,
                y=y,
                comparison=comparison,
                explicit=explicit,
                synthetic=synthetic,
                custom_text=row.text(settings.custom_volcano_text_col),
            )
        )
    return extracted


def _volcano_axis(extracted: Sequence[_Extracted], axis: VolcanoAxis) -> VolcanoAxis:
    if not extracted:
        return axis
    xs = [e.x for e in extracted]
    max_y = max(e.y for e in extracted)
    return VolcanoAxis(
        min_x=axis.min_x if axis.min_x is not None else min(xs) - 1,
        max_x=axis.max_x if axis.max_x is not None else max(xs) + 1,
        min_y=axis.min_y if axis.min_y is not None else 0.0,
        max_y=axis.max_y if axis.max_y is not None else max_y + 1,
        x=axis.x,
        y=axis.y,
        dtick_x=axis.dtick_x,
        dtick_y=axis.dtick_y,
        ticklen_x=axis.ticklen_x,
        ticklen_y=axis.ticklen_y,
    )


def _ordered_group_names(extracted: Sequence[_Extracted]) -> List[str]:
    explicit = set()
    synthetic = set()
    for e in extracted:
        explicit.update(e.explicit)
        if e.synthetic is not None and e.synthetic != BACKGROUND_GROUP:
            synthetic.add(e.synthetic)
    return sorted(explicit) + sorted(synthetic - explicit)


def _point(e: _Extracted, colors: Mapping[str, str]) -> PlotPoint:
    if e.explicit:
        groups = tuple(name for name in e.explicit if name in colors)
        point_colors = tuple(colors[name] for name in groups)
    elif e.synthetic == BACKGROUND_GROUP:
        groups = (BACKGROUND_GROUP,)
        point_colors = (BACKGROUND_GROUP_COLOR,)
    else:
        groups = (e.synthetic,)
        point_colors = (colors.get(e.synthetic, UNASSIGNED_GROUP_COLOR),)
    return PlotPoint(
        primary_id=e.primary_id,
        gene=e.gene,
        x=e.x,
        y=e.y,
        comparison=e.comparison,
        groups=groups,
        colors=point_colors,
        custom_text=e.custom_text,
    )


@log_time("Volcano classification")
def classify_and_color(
    rows: Iterable[Row],
    form: DifferentialForm,
    settings: Settings,
    selections: Optional[SelectionMap] = None,
    uniprot: Optional[UniprotStore] = None,
    color_cache: Optional[ColorCache] = None,
) -> ClassificationResult:
    """
    Classify differential rows into colored volcano plot points.

    Args:
        rows: Differential rows
        form: Column configuration of the differential table
        settings: Cutoffs, palette, stored colors and axis configuration
        selections: Primary ID -> selection name -> membership
        uniprot: UniProt records used for gene labels when ``fetch_uniprot`` is set
        color_cache: Colors kept from earlier runs; updated in place

    Returns:
        Points in row order, the volcano axis and the full color map
    """
    cache = color_cache if color_cache is not None else ColorCache()
    cache.update(settings.color_map)

    if not form.is_valid():
        logger.error(
            "Differential form needs primary ID, fold change and significance columns"
        )
        return ClassificationResult([], settings.volcano_axis, cache.snapshot())

    extracted = _extract(rows, form, settings, selections or {}, uniprot)
    colors = cache.assign(_ordered_group_names(extracted), settings.default_color_list)
    points = [_point(e, colors) for e in extracted]
    logger.debug(f"Classified {len(points)} points into {len(colors)} colored groups")
    return ClassificationResult(points, _volcano_axis(extracted, settings.volcano_axis), colors)


def significance_counts(points: Iterable[PlotPoint]) -> Dict[str, int]:
    """Number of points per group name, for legends."""
    counts: Counter = Counter()
    for point in points:
        counts.update(point.groups)
    return dict(counts)
