"""
Luminaire Cross-Reference Engine for Lighting Agencies

Reads a luminaire schedule exported from any spreadsheet, works out which
columns hold which fields, and proposes substitute products from the
manufacturers an agency represents, ranked by a weighted rubric:
- Mounting type
- Color temperature (CCT)
- Lumen output
- Color rendering (CRI)
- Voltage and wattage
"""

from .engine import CrossReferenceEngine
from .models import (
    ColumnMapping, CrossReference, MatchResult, MatchStatus, Product,
    RawTable, ScheduleItem, ScoredCandidate
)
from .catalog import CatalogError, LineCard, ProductCatalog
from .table_parser import ParseError, parse_table
from .column_mapper import apply_mapping, auto_detect_columns
from .scoring import ScoringEngine, score_candidates
from .submittal import SubmittalBuilder

__version__ = "1.0.0"
__all__ = [
    "CrossReferenceEngine",
    "ColumnMapping",
    "CrossReference",
    "MatchResult",
    "MatchStatus",
    "Product",
    "RawTable",
    "ScheduleItem",
    "ScoredCandidate",
    "CatalogError",
    "LineCard",
    "ProductCatalog",
    "ParseError",
    "parse_table",
    "apply_mapping",
    "auto_detect_columns",
    "ScoringEngine",
    "score_candidates",
    "SubmittalBuilder",
]
