from importlib.metadata import PackageNotFoundError, version

from curtaincore.alignment import align, clean_peptide, extract_ptms, map_peptide
from curtaincore.classify import classify_and_color, significance_group
from curtaincore.colors import ColorCache, assign_colors
from curtaincore.grouper import group_samples_and_assign_colors
from curtaincore.index import build_index
from curtaincore.ingest import load_session, parse_curtain_from_json
from curtaincore.models import DifferentialForm, RawForm, Row, Settings
from curtaincore.search import SearchEngine, SearchMode, SearchType, search, typeahead

try:
    __version__ = version("curtain-core")
except PackageNotFoundError:
    __version__ = "0.0.0"
