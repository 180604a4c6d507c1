import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from curtaincore.common import DEFAULT_LOG2FC_CUTOFF, DEFAULT_P_CUTOFF, new_payload
from curtaincore.models import (
    DifferentialForm,
    RawForm,
    Row,
    SelectionMap,
    Settings,
    clean_selection_map,
)
from curtaincore.values import to_bool, to_dict, to_text

logger = logging.getLogger(__name__)


def read_table(path: str) -> pd.DataFrame:
    """Read a delimited table; ``.tsv``/``.txt`` are tab separated, anything else is CSV."""
    if path.endswith("tsv") or path.endswith("txt"):
        return pd.read_csv(path, sep="\t")
    return pd.read_csv(path)


def rows_from_dataframe(df: pd.DataFrame, primary_id: str) -> List[Row]:
    """
    Convert a parsed table into Rows keyed by ``primary_id``.

    Args:
        df: Parsed table, one measurement per row
        primary_id: Name of the primary ID column

    Returns:
        Rows in table order; rows with an empty primary ID are dropped

    Raises:
        ValueError: If the primary ID column is not in the table
    """
    if primary_id not in df.columns:
        raise ValueError(f"Primary ID column '{primary_id}' not found in data")
    rows = []
    skipped = 0
    for record in df.to_dict(orient="records"):
        pid = to_text(record.get(primary_id)).strip()
        if not pid:
            skipped += 1
            continue
        rows.append(Row(pid, record))
    if skipped:
        logger.debug(f"Dropped {skipped} rows without a value in '{primary_id}'")
    return rows


def rows_from_records(records: Iterable[Mapping[str, Any]], primary_id: str) -> List[Row]:
    rows = []
    for record in records:
        pid = to_text(record.get(primary_id)).strip()
        if pid:
            rows.append(Row(pid, record))
    return rows


def rows_from_text(text: str, primary_id: str, sep: str = "\t") -> List[Row]:
    """Rows from delimited text such as the ``processed`` field of a session."""
    if not text or not text.strip():
        return []
    df = pd.read_csv(io.StringIO(text), sep=sep)
    return rows_from_dataframe(df, primary_id)


@dataclass
class CurtainSession:
    settings: Settings
    differential_form: DifferentialForm
    raw_form: RawForm
    selections: SelectionMap = field(default_factory=dict)
    fetch_uniprot: bool = False
    extra_data: Dict[str, Any] = field(default_factory=dict)
    processed: str = ""
    raw: str = ""

    def differential_rows(self) -> List[Row]:
        if not self.differential_form.primary_ids:
            return []
        return rows_from_text(self.processed, self.differential_form.primary_ids)

    def raw_rows(self) -> List[Row]:
        if not self.raw_form.primary_ids:
            return []
        return rows_from_text(self.raw, self.raw_form.primary_ids)


def session_from_payload(payload: Mapping[str, Any]) -> CurtainSession:
    """Typed view over a downloaded or saved session payload."""
    settings_data = payload.get("settings", {})
    if isinstance(settings_data, str):
        settings_data = json.loads(settings_data)
    settings = Settings.from_dict(settings_data)
    fetch_uniprot = to_bool(payload.get("fetchUniProt"), settings.fetch_uniprot)
    return CurtainSession(
        settings=settings.replace(fetch_uniprot=fetch_uniprot),
        differential_form=DifferentialForm.from_dict(payload.get("differentialForm")),
        raw_form=RawForm.from_dict(payload.get("rawForm")),
        selections=clean_selection_map(payload.get("selectionsMap")),
        fetch_uniprot=fetch_uniprot,
        extra_data=to_dict(payload.get("extraData")),
        processed=to_text(payload.get("processed")),
        raw=to_text(payload.get("raw")),
    )


def parse_curtain_from_json(json_path: str) -> Dict:
    """
    Parse Curtain session data from JSON file.

    Args:
        json_path: Path to JSON file

    Returns:
        Parsed session data
    """
    with open(json_path, "rt") as f:
        data = json.load(f)

    if isinstance(data["settings"], str):
        data["settings"] = json.loads(data["settings"])

    if str(data["settings"].get("version", "")) == "2":
        return parse_v2(data)
    return parse_old_version(data)


def parse_old_version(json_data: Dict) -> Dict:
    """Fill in settings that pre-version-2 sessions did not store."""
    settings = json_data["settings"]
    if "colorMap" not in settings:
        settings["colorMap"] = settings.pop("colormap", {})
    settings.setdefault("pCutoff", DEFAULT_P_CUTOFF)
    settings.setdefault("log2FCCutoff", DEFAULT_LOG2FC_CUTOFF)
    if isinstance(settings.get("dataColumns"), str):
        settings["dataColumns"] = settings["dataColumns"].split(",")
    return json_data


def parse_v2(json_data: Dict) -> Dict:
    """Fill in settings and forms a version 2 session left out; stored values are kept."""
    base = new_payload()
    settings = json_data["settings"]
    for key, value in base["settings"].items():
        settings.setdefault(key, value)
    for form in ("differentialForm", "rawForm"):
        stored = json_data.get(form)
        if not isinstance(stored, dict):
            json_data[form] = base[form]
            continue
        for key, value in base[form].items():
            stored.setdefault(key, value)
    return json_data


def load_session(json_path: str) -> CurtainSession:
    return session_from_payload(parse_curtain_from_json(json_path))
