from copy import deepcopy

DEFAULT_COLOR_LIST = [
    "#fd7f6f",
    "#7eb0d5",
    "#b2e061",
    "#bd7ebe",
    "#ffb55a",
    "#ffee65",
    "#beb9db",
    "#fdcce5",
    "#8bd3c7",
]

DEFAULT_P_CUTOFF = 0.05
DEFAULT_LOG2FC_CUTOFF = 0.6

UNASSIGNED_GROUP_COLOR = "#cccccc"
BACKGROUND_GROUP = "Background"
BACKGROUND_GROUP_COLOR = "#a4a2a2"
FALLBACK_POINT_COLOR = "#808080"
DEFAULT_COMPARISON = "1"

curtain_base_payload = {
    "raw": "",
    "processed": "",
    "password": "",
    "selections": {},
    "selectionsMap": {},
    "selectionsName": [],
    "fetchUniProt": False,
    "annotatedData": {},
    "differentialForm": {
        "_primaryIDs": "",
        "_geneNames": "",
        "_foldChange": "",
        "_transformFC": False,
        "_significant": "",
        "_transformSignificant": False,
        "_comparison": "",
        "_comparisonSelect": [],
        "_reverseFoldChange": False,
    },
    "rawForm": {"_primaryIDs": "", "_samples": [], "_log2": False},
    "settings": {
        "version": 2,
        "pCutoff": DEFAULT_P_CUTOFF,
        "log2FCCutoff": DEFAULT_LOG2FC_CUTOFF,
        "description": "",
        "fetchUniprot": True,
        "colorMap": {},
        "backGroundColorGrey": False,
        "currentComparison": "",
        "defaultColorList": DEFAULT_COLOR_LIST,
        "conditionOrder": [],
        "sampleMap": {},
        "sampleOrder": {},
        "sampleVisible": {},
        "customVolcanoTextCol": "",
        "volcanoAxis": {
            "minX": None,
            "maxX": None,
            "minY": None,
            "maxY": None,
            "x": "Log2FC",
            "y": "-log10(p-value)",
            "dtickX": None,
            "dtickY": None,
            "ticklenX": 5,
            "ticklenY": 5,
        },
    },
}


def new_payload() -> dict:
    """Fresh copy of the base session payload."""
    return deepcopy(curtain_base_payload)
