"""
Column detection and value coercion for luminaire schedules.

Lighting schedules come out of many different CAD and spreadsheet tools,
so the same field appears as "MFR", "Manufacturer" or "Brand", lumens as
"LM" or "Delivered Lumens", and so on. Detection walks a fixed table of
header patterns; coercion turns the raw cell text into typed values.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from .models import (
    ColumnMapping, ScheduleItem, CANONICAL_FIELDS, NUMERIC_FIELDS
)

logger = logging.getLogger(__name__)


# Header patterns per canonical field, tried in order (case-insensitive)
HEADER_PATTERNS: Dict[str, List[str]] = {
    'type_designation': [
        r'^type$', r'type\s*(mark|designation|id)', r'^tag$', r'^mark$',
        r'fixture\s*type',
    ],
    'manufacturer': [
        r'^mfr$', r'^manufacturer$', r'^mfg$', r'^brand$', r'manuf',
    ],
    'model': [
        r'^model$', r'catalog\s*(#|num|no)', r'^cat\s*#?$', r'part\s*(#|num|no)',
        r'model\s*(#|num|no)', r'^product$', r'^part number$',
    ],
    'description': [
        r'^desc(ription)?$', r'^fixture\s*desc',
    ],
    'lumens': [
        r'^lumens$', r'^lm$', r'lumen', r'^output$',
    ],
    'cct': [
        r'^cct$', r'color\s*temp', r'kelvin',
    ],
    'wattage': [
        r'^watt(s|age)?$', r'^w$', r'^power$',
    ],
    'mounting_type': [
        r'^mount(ing)?$', r'mount\s*type', r'installation',
    ],
    'voltage': [
        r'^volt(s|age)?$', r'^v$',
    ],
    'lamp_type': [
        r'^lamp\s*type$', r'^lamp$', r'^source$', r'^light\s*source$',
    ],
    'application': [
        r'^application$', r'^app$', r'^use$', r'^fixture\s*category',
    ],
    'dimming_protocol': [
        r'^dimm(ing|er)?$', r'dim\s*(type|protocol|method)', r'^control$',
    ],
    'cri': [
        r'^cri$', r'color\s*render',
    ],
    'notes': [
        r'^notes?$', r'^remarks?$', r'^comment',
    ],
    'quantity': [
        r'^qty$', r'^quantity$', r'^count$', r'^#$',
    ],
}

# (field, compiled patterns) in canonical order
DETECTION_RULES: List[Tuple[str, List[Pattern]]] = [
    (name, [re.compile(p, re.IGNORECASE) for p in HEADER_PATTERNS[name]])
    for name in CANONICAL_FIELDS
]

# Placeholders that mean "nothing specified"; the last is an em-dash
# that went through a UTF-8 / Windows-1252 round trip
EMPTY_MARKERS = frozenset(['', '-', 'â€”'])

NON_NUMERIC_CHARS = re.compile(r'[^0-9.\-]')
LEADING_NUMBER = re.compile(r'^-?(?:\d+(?:\.\d*)?|\.\d+)')
VARIABLE_CCT = re.compile(r'select|tunable|adjustable', re.IGNORECASE)


def auto_detect_columns(headers: Sequence[str]) -> ColumnMapping:
    """
    Guess which header feeds each canonical field.

    For every field the headers are scanned in order and the first one
    matching any of the field's patterns is bound. Fields with no
    matching header stay unbound. A header may end up bound to several
    fields when it matches the patterns of each.
    """
    mapping = ColumnMapping()

    for field_name, patterns in DETECTION_RULES:
        for header in headers:
            if any(p.search(header) for p in patterns):
                mapping.bind(field_name, header)
                break

    logger.debug("Detected columns: %s",
                 {f: mapping.get(f) for f in mapping.bound_fields()})
    return mapping


def apply_mapping(rows: Iterable[Dict[str, str]],
                  mapping: ColumnMapping) -> List[ScheduleItem]:
    """
    Convert raw rows into schedule items using the given mapping.

    Every row yields exactly one item; cells that cannot be coerced
    simply leave the field empty.
    """
    items = []
    for index, row in enumerate(rows):
        # Row 1 of the sheet is the header
        item = ScheduleItem(row_number=index + 2)
        for field_name in CANONICAL_FIELDS:
            raw = _lookup(row, mapping.get(field_name))
            setattr(item, field_name, coerce_field(field_name, raw))
        items.append(item)
    return items


def coerce_field(field_name: str, raw: Optional[str]):
    """Coerce one raw cell to the type of the given canonical field."""
    if field_name == 'quantity':
        quantity = parse_numeric(raw)
        return 1.0 if quantity is None else quantity
    if field_name == 'cct':
        return parse_cct(raw)
    if field_name in NUMERIC_FIELDS:
        return parse_numeric(raw)
    return clean_string(raw)


def clean_string(value: Optional[str]) -> Optional[str]:
    """Trimmed text, or None for blanks and placeholder dashes."""
    if value is None:
        return None
    value = str(value).strip()
    if value in EMPTY_MARKERS:
        return None
    return value


def parse_numeric(value: Optional[str]) -> Optional[float]:
    """
    Pull a number out of free text such as "1,200 lm" or "35W".

    Everything except digits, dots and minus signs is discarded, then the
    longest leading number is read ("12-24" gives 12). Returns None when
    nothing numeric remains.
    """
    if not value:
        return None
    cleaned = NON_NUMERIC_CHARS.sub('', str(value))
    match = LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    return float(match.group(0))


def parse_cct(value: Optional[str]) -> Optional[float]:
    """Color temperature in Kelvin; tunable/selectable fixtures have none."""
    if not value:
        return None
    if VARIABLE_CCT.search(str(value)):
        return None
    return parse_numeric(value)


def _lookup(row: Dict[str, str], header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    return row.get(header)
