"""Typed data model shared by the grouper, the classifier, the index and the PTM code."""
import dataclasses
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from curtaincore.common import (
    DEFAULT_COLOR_LIST,
    DEFAULT_LOG2FC_CUTOFF,
    DEFAULT_P_CUTOFF,
)
from curtaincore.values import (
    to_bool,
    to_dict,
    to_float,
    to_int,
    to_optional_float,
    to_scalar,
    to_str_list,
    to_text,
)

SelectionMap = Dict[str, Dict[str, bool]]


def _pick(data: Mapping, key: str, default: Any = None) -> Any:
    """Read ``key`` from a payload form, accepting the ``_``-prefixed spelling too."""
    if f"_{key}" in data:
        return data[f"_{key}"]
    return data.get(key, default)


@dataclass(frozen=True)
class Row:
    primary_id: str
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self,
            "values",
            MappingProxyType({k: to_scalar(v) for k, v in dict(self.values).items()}),
        )

    def get(self, column: str, default: Any = None) -> Any:
        if not column:
            return default
        return self.values.get(column, default)

    def text(self, column: str) -> str:
        return to_text(self.get(column))

    def number(self, column: str) -> float:
        return to_float(self.get(column))

    def to_dict(self) -> Dict[str, Any]:
        return {"primaryId": self.primary_id, **self.values}


@dataclass(frozen=True)
class DifferentialForm:
    primary_ids: str = ""
    gene_names: str = ""
    fold_change: str = ""
    significant: str = ""
    comparison: str = ""
    comparison_select: List[str] = field(default_factory=list)
    transform_fc: bool = False
    transform_significant: bool = False
    reverse_fold_change: bool = False
    accession: str = ""
    position: str = ""
    position_peptide: str = ""
    peptide_sequence: str = ""
    score: str = ""
    sequence_window: str = ""

    _KEYS = {
        "primary_ids": "primaryIDs",
        "gene_names": "geneNames",
        "fold_change": "foldChange",
        "significant": "significant",
        "comparison": "comparison",
        "accession": "accession",
        "position": "position",
        "position_peptide": "positionPeptide",
        "peptide_sequence": "peptideSequence",
        "score": "score",
        "sequence_window": "sequenceWindow",
    }
    _FLAGS = {
        "transform_fc": "transformFC",
        "transform_significant": "transformSignificant",
        "reverse_fold_change": "reverseFoldChange",
    }

    @property
    def is_ptm(self) -> bool:
        return bool(self.peptide_sequence or self.accession)

    def is_valid(self) -> bool:
        return bool(self.primary_ids and self.fold_change and self.significant)

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "DifferentialForm":
        data = data or {}
        kwargs = {name: to_text(_pick(data, key, "")) for name, key in cls._KEYS.items()}
        kwargs.update(
            {name: to_bool(_pick(data, key, False)) for name, key in cls._FLAGS.items()}
        )
        kwargs["comparison_select"] = to_str_list(_pick(data, "comparisonSelect", []))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out = {f"_{key}": getattr(self, name) for name, key in self._KEYS.items()}
        out.update({f"_{key}": getattr(self, name) for name, key in self._FLAGS.items()})
        out["_comparisonSelect"] = list(self.comparison_select)
        return out


@dataclass(frozen=True)
class RawForm:
    primary_ids: str = ""
    samples: List[str] = field(default_factory=list)
    log2: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "RawForm":
        data = data or {}
        return cls(
            primary_ids=to_text(_pick(data, "primaryIDs", "")),
            samples=to_str_list(_pick(data, "samples", [])),
            log2=to_bool(_pick(data, "log2", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_primaryIDs": self.primary_ids,
            "_samples": list(self.samples),
            "_log2": self.log2,
        }


@dataclass(frozen=True)
class VolcanoAxis:
    min_x: Optional[float] = None
    max_x: Optional[float] = None
    min_y: Optional[float] = None
    max_y: Optional[float] = None
    x: str = "Log2FC"
    y: str = "-log10(p-value)"
    dtick_x: Optional[float] = None
    dtick_y: Optional[float] = None
    ticklen_x: int = 5
    ticklen_y: int = 5

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "VolcanoAxis":
        data = data or {}
        return cls(
            min_x=to_optional_float(data.get("minX")),
            max_x=to_optional_float(data.get("maxX")),
            min_y=to_optional_float(data.get("minY")),
            max_y=to_optional_float(data.get("maxY")),
            x=to_text(data.get("x")) or "Log2FC",
            y=to_text(data.get("y")) or "-log10(p-value)",
            dtick_x=to_optional_float(data.get("dtickX")),
            dtick_y=to_optional_float(data.get("dtickY")),
            ticklen_x=to_int(data.get("ticklenX")) or 5,
            ticklen_y=to_int(data.get("ticklenY")) or 5,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minX": self.min_x,
            "maxX": self.max_x,
            "minY": self.min_y,
            "maxY": self.max_y,
            "x": self.x,
            "y": self.y,
            "dtickX": self.dtick_x,
            "dtickY": self.dtick_y,
            "ticklenX": self.ticklen_x,
            "ticklenY": self.ticklen_y,
        }


@dataclass(frozen=True)
class Settings:
    p_cutoff: float = DEFAULT_P_CUTOFF
    log2_fc_cutoff: float = DEFAULT_LOG2FC_CUTOFF
    color_map: Dict[str, str] = field(default_factory=dict)
    default_color_list: List[str] = field(default_factory=lambda: list(DEFAULT_COLOR_LIST))
    condition_order: List[str] = field(default_factory=list)
    sample_map: Dict[str, Dict[str, str]] = field(default_factory=dict)
    sample_order: Dict[str, List[str]] = field(default_factory=dict)
    sample_visible: Dict[str, bool] = field(default_factory=dict)
    volcano_axis: VolcanoAxis = field(default_factory=VolcanoAxis)
    fetch_uniprot: bool = False
    background_color_grey: bool = False
    current_comparison: str = ""
    custom_volcano_text_col: str = ""
    description: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = (
        "pCutoff",
        "log2FCCutoff",
        "colorMap",
        "colormap",
        "defaultColorList",
        "conditionOrder",
        "sampleMap",
        "sampleOrder",
        "sampleVisible",
        "volcanoAxis",
        "fetchUniprot",
        "backGroundColorGrey",
        "currentComparison",
        "customVolcanoTextCol",
        "description",
    )

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "Settings":
        data = data or {}
        p_cutoff = to_float(data.get("pCutoff"))
        fc_cutoff = to_float(data.get("log2FCCutoff"))
        color_map = data.get("colorMap", data.get("colormap"))
        palette = data.get("defaultColorList")
        sample_map = {
            to_text(sample): {k: to_text(v) for k, v in to_dict(info).items()}
            for sample, info in to_dict(data.get("sampleMap")).items()
        }
        return cls(
            p_cutoff=DEFAULT_P_CUTOFF if math.isnan(p_cutoff) else p_cutoff,
            log2_fc_cutoff=DEFAULT_LOG2FC_CUTOFF if math.isnan(fc_cutoff) else fc_cutoff,
            color_map={to_text(k): to_text(v) for k, v in to_dict(color_map).items()},
            default_color_list=(
                list(DEFAULT_COLOR_LIST) if palette is None else to_str_list(palette)
            ),
            condition_order=to_str_list(data.get("conditionOrder")),
            sample_map=sample_map,
            sample_order={
                to_text(k): to_str_list(v) for k, v in to_dict(data.get("sampleOrder")).items()
            },
            sample_visible={
                to_text(k): to_bool(v, True)
                for k, v in to_dict(data.get("sampleVisible")).items()
            },
            volcano_axis=VolcanoAxis.from_dict(data.get("volcanoAxis")),
            fetch_uniprot=to_bool(data.get("fetchUniprot")),
            background_color_grey=to_bool(data.get("backGroundColorGrey")),
            current_comparison=to_text(data.get("currentComparison")),
            custom_volcano_text_col=to_text(data.get("customVolcanoTextCol")),
            description=to_text(data.get("description")),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update(
            {
                "pCutoff": self.p_cutoff,
                "log2FCCutoff": self.log2_fc_cutoff,
                "colorMap": dict(self.color_map),
                "defaultColorList": list(self.default_color_list),
                "conditionOrder": list(self.condition_order),
                "sampleMap": {k: dict(v) for k, v in self.sample_map.items()},
                "sampleOrder": {k: list(v) for k, v in self.sample_order.items()},
                "sampleVisible": dict(self.sample_visible),
                "volcanoAxis": self.volcano_axis.to_dict(),
                "fetchUniprot": self.fetch_uniprot,
                "backGroundColorGrey": self.background_color_grey,
                "currentComparison": self.current_comparison,
                "customVolcanoTextCol": self.custom_volcano_text_col,
                "description": self.description,
            }
        )
        return out

    def replace(self, **changes) -> "Settings":
        return dataclasses.replace(self, **changes)


def clean_selection_map(selections: Optional[Mapping]) -> SelectionMap:
    """Keep only ``True`` memberships; proteins left without any group are dropped."""
    cleaned: SelectionMap = {}
    for primary_id, groups in (selections or {}).items():
        kept = {name: True for name, flag in to_dict(groups).items() if to_bool(flag)}
        if kept:
            cleaned[to_text(primary_id)] = kept
    return cleaned


def selection_names(selections: Optional[Mapping]) -> List[str]:
    names = set()
    for groups in clean_selection_map(selections).values():
        names.update(groups)
    return sorted(names)
