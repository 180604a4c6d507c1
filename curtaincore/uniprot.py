"""UniProt records: storage, normalization and feature parsing.

Records reach us in two shapes.  Sessions built by the Curtain web app carry
rows of the UniProt TSV export ("Gene Names", "Modified residue", "Domain [FT]"
...), where the feature columns are either the flattened UniProt text or the
already parsed list form.  Records fetched from the UniProt REST API carry a
``features`` array instead.  Every parser here accepts both and returns an
empty list (or ``None``) for anything it cannot read.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from curtaincore.values import to_int, to_scalar, to_text

logger = logging.getLogger(__name__)

GENE_SEPARATOR_REGEX = re.compile(r"[ ;\\]+")
MOD_RES_POSITION_REGEX = re.compile(r"^MOD_RES\s+(?:[^\s:]+:)?(\d+)")
QUOTED_REGEX = re.compile(r'"(.+?)"')
DOMAIN_RANGE_REGEX = re.compile(r"(\d+)\.\.(\d+)")
DOMAIN_POSITION_REGEX = re.compile(r"(\d+)")
SUB_CELLULAR_REGEX = re.compile(r"[.;]")
SUB_SEPARATOR_REGEX = re.compile(r"\s*\{.*?\}\s*")
ISOFORM_REGEX = re.compile(r"IsoId=([^;]+)")


class FeatureType(Enum):
    MODIFIED_RESIDUE = "Modified residue"
    ACTIVE_SITE = "Active site"
    BINDING_SITE = "Binding site"
    DOMAIN = "Domain"
    REGION = "Region"
    MOTIF = "Motif"
    SIGNAL_PEPTIDE = "Signal peptide"
    TRANSMEMBRANE = "Transmembrane"
    DISULFIDE_BOND = "Disulfide bond"
    GLYCOSYLATION = "Glycosylation"
    LIPIDATION = "Lipidation"
    OTHER = "Other"

    @classmethod
    def from_string(cls, value: str) -> "FeatureType":
        lowered = value.lower()
        if any(k in lowered for k in ("modified", "phospho", "acetyl", "methyl", "ubiquit")):
            return cls.MODIFIED_RESIDUE
        for keyword, feature_type in (
            ("active", cls.ACTIVE_SITE),
            ("binding", cls.BINDING_SITE),
            ("domain", cls.DOMAIN),
            ("region", cls.REGION),
            ("motif", cls.MOTIF),
            ("signal", cls.SIGNAL_PEPTIDE),
            ("transmembrane", cls.TRANSMEMBRANE),
            ("helix", cls.TRANSMEMBRANE),
            ("disulfide", cls.DISULFIDE_BOND),
            ("glyco", cls.GLYCOSYLATION),
            ("lipid", cls.LIPIDATION),
        ):
            if keyword in lowered:
                return feature_type
        return cls.OTHER


@dataclass(frozen=True)
class UniProtFeature:
    feature_type: FeatureType
    start: int
    end: int
    description: str
    evidence: Optional[str] = None

    @property
    def id(self) -> str:
        return f"{self.feature_type.value}_{self.start}_{self.end}"


@dataclass(frozen=True)
class ProteinDomain:
    name: str
    start: int
    end: int
    description: Optional[str] = None


@dataclass(frozen=True)
class ParsedModification:
    position: int
    residue: str
    mod_type: str


# ----------------------------------------------------------------------
# Record store
# ----------------------------------------------------------------------


def _as_list(value: Any) -> List:
    return value if isinstance(value, list) else []


def _map_items(value: Any) -> Dict:
    """Curtain serializes JS ``Map`` objects as ``{"dataType": "Map", "value": [[k, v], ...]}``."""
    if isinstance(value, dict) and value.get("dataType") == "Map":
        return {i[0]: i[1] for i in value.get("value", [])}
    if isinstance(value, dict):
        return dict(value)
    return {}


class UniprotStore:
    def __init__(
        self,
        db: Optional[Mapping[str, Mapping]] = None,
        acc_map: Optional[Mapping[str, Any]] = None,
        data_map: Optional[Mapping[str, str]] = None,
        organism: Optional[str] = None,
    ):
        """
        Initialize the store with UniProt records.

        Args:
            db: UniProt entry -> record
            acc_map: Dataset accession -> candidate UniProt accessions
            data_map: Any known accession -> UniProt entry
            organism: Organism shared by the records
        """
        self.db = self._db_to_df(db or {})
        self.acc_map = dict(acc_map or {})
        self.data_map = dict(data_map or {})
        self.organism = organism

    @classmethod
    def from_payload(cls, uniprot: Optional[Mapping]) -> "UniprotStore":
        """Build from ``payload["extraData"]["uniprot"]``."""
        uniprot = uniprot or {}
        return cls(
            db=_map_items(uniprot.get("db")),
            acc_map=_map_items(uniprot.get("accMap")),
            data_map=_map_items(uniprot.get("dataMap")),
            organism=uniprot.get("organism"),
        )

    @staticmethod
    def _db_to_df(db: Mapping[str, Mapping]) -> pd.DataFrame:
        records = {k: dict(v) for k, v in db.items() if isinstance(v, Mapping)}
        # object dtype: a field missing from some records must not turn the others into floats
        return pd.DataFrame.from_dict(records, orient="index", dtype=object)

    def __len__(self) -> int:
        return len(self.db.index)

    def _row(self, entry: Any) -> Optional[Dict]:
        if not isinstance(entry, str) or entry not in self.db.index:
            return None
        row = self.db.loc[entry]
        return {k: to_scalar(v) for k, v in row.items() if to_scalar(v) is not None}

    def _lookup(self, key: str) -> Optional[Dict]:
        record = self._row(key)
        if record is not None:
            return record
        candidates = self.acc_map.get(key)
        if isinstance(candidates, str):
            candidates = [candidates]
        for acc in _as_list(candidates):
            if not isinstance(acc, str):
                continue
            record = self._row(self.data_map.get(acc, acc))
            if record is not None:
                return record
        if key in self.data_map:
            return self._row(self.data_map[key])
        return None

    def get_record(self, primary_id: str) -> Optional[Dict]:
        """
        Get the UniProt record for a primary ID.

        Args:
            primary_id: Dataset primary ID, possibly ``;``-joined

        Returns:
            The record as a dict, or None if nothing matches
        """
        if not primary_id:
            return None
        record = self._lookup(primary_id)
        if record is not None:
            return record
        for part in primary_id.split(";"):
            part = part.strip()
            if part and part != primary_id:
                record = self._lookup(part)
                if record is not None:
                    return record
        return None

    def records(self) -> Iterable[Dict]:
        for entry in self.db.index:
            yield self._row(entry)


# ----------------------------------------------------------------------
# Normalization of raw UniProt TSV rows
# ----------------------------------------------------------------------


def parse_gene_names(value: Any) -> str:
    text = to_text(value).strip()
    if not text:
        return ""
    return ";".join(p for p in GENE_SEPARATOR_REGEX.split(text.upper()) if p)


def parse_subcellular_location(value: Any) -> List[str]:
    text = to_text(value)
    note_position = text.find("Note=")
    if note_position > -1:
        text = text[:note_position]
    sub_loc = []
    for m in SUB_CELLULAR_REGEX.split(text):
        if not m:
            continue
        sub_res = SUB_SEPARATOR_REGEX.sub("", m).split(": ")[-1].strip()
        if sub_res:
            sub_loc.append(sub_res)
    return sub_loc


def parse_domain_string(value: str) -> List[Dict[str, Any]]:
    domains: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None
    for part in value.split(";"):
        part = part.strip()
        if not part:
            continue
        if part.startswith("DOMAIN"):
            match = DOMAIN_RANGE_REGEX.search(part)
            if match:
                start, end = int(match.group(1)), int(match.group(2))
            else:
                numbers = [int(n) for n in DOMAIN_POSITION_REGEX.findall(part)]
                if not numbers:
                    current = None
                    continue
                start, end = numbers[0], numbers[-1]
            current = {"start": start, "end": end}
        elif "/note=" in part and current is not None:
            match = QUOTED_REGEX.search(part)
            if match:
                current["name"] = match.group(1)
                domains.append(current)
                current = None
    return domains


def parse_mutagenesis(value: str) -> List[Dict[str, str]]:
    mutagenesis = []
    position = ""
    for s in value.split("; "):
        if s.startswith("MUTAGEN"):
            position = s.split(" ")[1] if " " in s else ""
        elif "/note=" in s:
            match = QUOTED_REGEX.search(s)
            if match:
                mutagenesis.append({"position": position, "note": match.group(1)})
    return mutagenesis


def parse_mod_res_string(value: str) -> List[Dict[str, Any]]:
    """
    Flattened ``MOD_RES`` text -> ``[{"position": int, "modType": str}]``.

    The text is a ``"; "``-joined token stream; a ``MOD_RES <pos>`` token sets
    the current position and the next ``note="..."`` token names it.
    """
    mods = []
    position = -1
    for part in value.split("; "):
        part = part.strip()
        if part.startswith("MOD_RES"):
            match = MOD_RES_POSITION_REGEX.match(part)
            position = int(match.group(1)) if match else -1
        elif "note=" in part and position > 0:
            match = QUOTED_REGEX.search(part)
            if match:
                mods.append({"position": position, "modType": match.group(1)})
    return mods


def normalize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn one row of the UniProt TSV export into the record shape stored in sessions."""
    r = {k: to_scalar(v) for k, v in record.items()}
    if r.get("Gene Names") is not None:
        r["Gene Names"] = parse_gene_names(r["Gene Names"])
    if r.get("Subcellular location [CC]") is not None:
        r["Subcellular location [CC]"] = parse_subcellular_location(
            r["Subcellular location [CC]"]
        )
    if isinstance(r.get("Domain [FT]"), str):
        r["Domain [FT]"] = parse_domain_string(r["Domain [FT]"])
    if isinstance(r.get("Mutagenesis"), str):
        r["Mutagenesis"] = parse_mutagenesis(r["Mutagenesis"])
    if isinstance(r.get("Modified residue"), str):
        sequence = to_text(r.get("Sequence"))
        mods = []
        for mod in parse_mod_res_string(r["Modified residue"]):
            if mod["position"] <= len(sequence):
                mod["residue"] = sequence[mod["position"] - 1]
                mods.append(mod)
        r["Modified residue"] = mods
    if r.get("From") is not None:
        r["_id"] = r["From"]
    return {k: ("" if v is None else v) for k, v in r.items()}


# ----------------------------------------------------------------------
# Feature parsing
# ----------------------------------------------------------------------


def _features_from_mod_res_string(value: str) -> List[UniProtFeature]:
    return [
        UniProtFeature(
            FeatureType.MODIFIED_RESIDUE, m["position"], m["position"], m["modType"]
        )
        for m in parse_mod_res_string(value)
    ]


def _features_from_mod_res_list(items: List[Any]) -> List[UniProtFeature]:
    features = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        position = to_int(item.get("position"))
        if position is None or position <= 0:
            continue
        mod_type = to_text(item.get("modType")) or FeatureType.MODIFIED_RESIDUE.value
        features.append(
            UniProtFeature(FeatureType.MODIFIED_RESIDUE, position, position, mod_type)
        )
    return features


def _location_value(location: Mapping, key: str) -> Optional[int]:
    point = location.get(key)
    if isinstance(point, Mapping):
        return to_int(point.get("value"))
    return to_int(point)


def _features_from_feature_array(items: Any) -> List[UniProtFeature]:
    if not isinstance(items, list):
        return []
    features = []
    for item in items:
        if not isinstance(item, Mapping) or not isinstance(item.get("type"), str):
            continue
        location = item.get("location") if isinstance(item.get("location"), Mapping) else {}
        start = _location_value(location, "start") or 1
        end = _location_value(location, "end") or start
        evidence = item.get("evidences")
        features.append(
            UniProtFeature(
                FeatureType.from_string(item["type"]),
                start,
                end,
                to_text(item.get("description")) or item["type"],
                evidence if isinstance(evidence, str) else None,
            )
        )
    return features


def _features_from_comments(items: Any) -> List[UniProtFeature]:
    if not isinstance(items, list):
        return []
    features = []
    for comment in items:
        if not isinstance(comment, Mapping):
            continue
        comment_type = comment.get("type")
        if comment_type not in ("PTM", "FUNCTION"):
            continue
        for location in _as_list(comment.get("locations")):
            if not isinstance(location, Mapping):
                continue
            start = to_int(location.get("start")) or 1
            end = to_int(location.get("end")) or 1
            features.append(
                UniProtFeature(
                    FeatureType.from_string(comment_type),
                    start,
                    end,
                    to_text(location.get("description")) or comment_type,
                )
            )
    return features


def parse_uniprot_features(record: Any) -> List[UniProtFeature]:
    """
    Parse the features of a UniProt record into a position model.

    ``"Modified residue"`` is read from either physical encoding: the flattened
    ``MOD_RES`` string or the structured list of ``{position, modType,
    residue}`` objects.  REST API ``features`` and legacy ``comments`` are
    added when present.

    Args:
        record: UniProt record

    Returns:
        Features in encounter order; empty when the record cannot be read
    """
    if not isinstance(record, Mapping):
        return []
    try:
        features = []
        mod_res = record.get("Modified residue")
        if isinstance(mod_res, str):
            features.extend(_features_from_mod_res_string(mod_res))
        elif isinstance(mod_res, list):
            features.extend(_features_from_mod_res_list(mod_res))
        features.extend(_features_from_feature_array(record.get("features")))
        features.extend(_features_from_comments(record.get("comments")))
        return features
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.debug(f"Could not parse UniProt features: {e}")
        return []


def extract_modification_type(description: str) -> str:
    lowered = description.lower()
    for keyword, name in (
        ("phospho", "Phosphorylation"),
        ("acetyl", "Acetylation"),
        ("methyl", "Methylation"),
        ("ubiquit", "Ubiquitination"),
        ("glyco", "Glycosylation"),
        ("sumo", "SUMOylation"),
    ):
        if keyword in lowered:
            return name
    return description


def _residue_at(sequence: str, position: int, missing: str = "?") -> str:
    if 0 < position <= len(sequence):
        return sequence[position - 1]
    return missing


def parse_modifications(record: Any) -> List[ParsedModification]:
    """Known modified residues of a record, with the residue letter filled in."""
    if not isinstance(record, Mapping):
        return []
    sequence = extract_sequence(record) or ""
    try:
        mod_res = record.get("Modified residue")
        if isinstance(mod_res, list):
            modifications = []
            for item in mod_res:
                if not isinstance(item, Mapping):
                    continue
                position = to_int(item.get("position"))
                mod_type = to_text(item.get("modType"))
                if position is None or position <= 0 or not mod_type:
                    continue
                residue = to_text(item.get("residue"))[:1] or _residue_at(sequence, position)
                modifications.append(ParsedModification(position, residue, mod_type))
            return modifications

        if isinstance(mod_res, str) and mod_res:
            modifications = [
                ParsedModification(
                    m["position"], _residue_at(sequence, m["position"]), m["modType"]
                )
                for m in parse_mod_res_string(mod_res)
            ]
            if modifications:
                return modifications

        modifications = []
        for feature in _features_from_feature_array(record.get("features")):
            if feature.feature_type not in (
                FeatureType.MODIFIED_RESIDUE,
                FeatureType.GLYCOSYLATION,
            ):
                continue
            modifications.append(
                ParsedModification(
                    feature.start,
                    _residue_at(sequence, feature.start, "X"),
                    extract_modification_type(feature.description),
                )
            )
        return modifications
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.debug(f"Could not parse UniProt modifications: {e}")
        return []


def available_mod_types(modifications: Iterable[ParsedModification]) -> List[str]:
    return sorted({m.mod_type for m in modifications})


def extract_domains(record: Any) -> List[ProteinDomain]:
    if not isinstance(record, Mapping):
        return []
    try:
        domains = []
        value = record.get("Domain [FT]")
        if isinstance(value, str) and value:
            value = parse_domain_string(value)
        if isinstance(value, list):
            for item in value:
                if not isinstance(item, Mapping):
                    continue
                start, end = to_int(item.get("start")), to_int(item.get("end"))
                name = to_text(item.get("name"))
                if start is None or not name:
                    continue
                domains.append(ProteinDomain(name, start, end or start, name))
        for feature in _features_from_feature_array(record.get("features")):
            if feature.feature_type is FeatureType.DOMAIN:
                domains.append(
                    ProteinDomain(
                        feature.description, feature.start, feature.end, feature.description
                    )
                )
        return domains
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.debug(f"Could not parse UniProt domains: {e}")
        return []


def extract_sequence(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    sequence = record.get("Sequence")
    if isinstance(sequence, str) and sequence:
        return sequence
    sequence = record.get("sequence")
    if isinstance(sequence, Mapping) and isinstance(sequence.get("value"), str):
        return sequence["value"]
    if isinstance(sequence, str):
        return sequence
    return None


def gene_names_of(record: Any) -> List[str]:
    """Every gene name of a record, in record order."""
    if not isinstance(record, Mapping):
        return []
    value = record.get("Gene Names")
    if isinstance(value, str) and value:
        return [p for p in GENE_SEPARATOR_REGEX.split(value.strip()) if p]
    names = []
    for gene in _as_list(record.get("genes")):
        if not isinstance(gene, Mapping):
            continue
        gene_name = gene.get("geneName")
        if isinstance(gene_name, Mapping) and isinstance(gene_name.get("value"), str):
            names.append(gene_name["value"])
        elif isinstance(gene.get("primary"), str):
            names.append(gene["primary"])
    return names


def extract_gene_name(record: Any) -> Optional[str]:
    names = gene_names_of(record)
    return names[0] if names else None


def extract_protein_name(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    description = record.get("proteinDescription")
    if isinstance(description, Mapping):
        recommended = description.get("recommendedName")
        full_name = recommended.get("fullName") if isinstance(recommended, Mapping) else None
        if isinstance(full_name, Mapping) and isinstance(full_name.get("value"), str):
            return full_name["value"]
    name = record.get("Protein names")
    return name if isinstance(name, str) and name else None


def extract_organism(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    organism = record.get("organism")
    if isinstance(organism, Mapping) and isinstance(organism.get("scientificName"), str):
        return organism["scientificName"]
    organism = record.get("Organism")
    return organism if isinstance(organism, str) and organism else None


def extract_isoforms(record: Any) -> List[str]:
    if not isinstance(record, Mapping):
        return []
    isoforms = []
    alternative = record.get("Alternative products (isoforms)")
    if isinstance(alternative, str):
        for match in ISOFORM_REGEX.finditer(alternative):
            isoforms.extend(i.strip() for i in match.group(1).split(",") if i.strip())
        if isoforms:
            return isoforms
    for comment in _as_list(record.get("comments")):
        if not isinstance(comment, Mapping) or comment.get("type") != "ALTERNATIVE PRODUCTS":
            continue
        for isoform in _as_list(comment.get("isoforms")):
            if not isinstance(isoform, Mapping):
                continue
            if isinstance(isoform.get("ids"), list):
                isoforms.extend(i for i in isoform["ids"] if isinstance(i, str))
            elif isinstance(isoform.get("id"), str):
                isoforms.append(isoform["id"])
    return isoforms
