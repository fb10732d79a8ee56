"""
Table Parser for uploaded luminaire schedules and catalog sheets.
Handles delimited text and Excel workbooks, first sheet only.
"""

import csv
import io
import logging
import zipfile
from datetime import date, datetime, time
from pathlib import Path
from typing import List, Dict, Optional, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .models import RawTable

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = ('.xlsx', '.xlsm', '.xltx', '.xltm', '.xls')

# Spreadsheets are zip containers
ZIP_SIGNATURE = b'PK\x03\x04'

TEXT_ENCODINGS = ('utf-8-sig', 'cp1252')


class ParseError(ValueError):
    """The input could not be read as a table, or has no header row."""


def parse_table(source: Union[str, Path, bytes],
                filename: Optional[str] = None) -> RawTable:
    """
    Parse a schedule file (CSV or Excel) into headers and row dicts.

    Args:
        source: Path to the file, or its raw bytes
        filename: Original file name, used to pick the format for raw bytes

    Raises:
        ParseError: if the content is neither readable text nor a workbook,
            or it contains no rows at all
    """
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
        name = filename or ''
    else:
        path = Path(source)
        if not path.exists():
            raise ParseError(f"Schedule file not found: {path}")
        data = path.read_bytes()
        name = filename or path.name

    ext = Path(name).suffix.lower()

    if ext in SPREADSHEET_EXTENSIONS or data.startswith(ZIP_SIGNATURE):
        table = parse_excel(data)
    else:
        table = parse_csv(decode_text(data))

    logger.debug("Parsed %s: %d columns, %d rows",
                 name or '<buffer>', len(table.headers), len(table.rows))
    return table


def decode_text(data: bytes) -> str:
    """Decode delimited text, trying UTF-8 before Windows-1252."""
    if b'\x00' in data:
        raise ParseError("File is binary and not a supported spreadsheet")

    for encoding in TEXT_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue

    raise ParseError("File is not readable as delimited text")


def parse_csv(text: str) -> RawTable:
    """Parse delimited text whose first line is the header row."""
    lines = text.splitlines(keepends=True)

    # The header is the first line holding more than whitespace or separators
    start = next((i for i, line in enumerate(lines) if line.strip(" \t\r\n,;")), None)
    if start is None:
        raise ParseError("File contains no rows")

    delimiter = _detect_delimiter(lines[start])
    body = ''.join(lines[start:])

    try:
        records = list(csv.reader(io.StringIO(body), delimiter=delimiter))
    except csv.Error as e:
        raise ParseError(f"Malformed delimited text: {e}")

    return _build_table(records)


def parse_excel(data: bytes) -> RawTable:
    """Parse the first worksheet of an Excel workbook."""
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise ParseError(f"Cannot read spreadsheet (corrupted or unsupported format): {e}")

    try:
        if not wb.worksheets:
            raise ParseError("Workbook contains no sheets")
        ws = wb.worksheets[0]
        records = [
            [cell_to_text(value) for value in row]
            for row in ws.iter_rows(values_only=True)
        ]
    finally:
        wb.close()

    return _build_table(records)


def cell_to_text(value) -> str:
    """Render a worksheet cell the way it reads on screen."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value).strip()


def _detect_delimiter(header_line: str) -> str:
    if '\t' in header_line:
        return '\t'
    if ';' in header_line and ',' not in header_line:
        return ';'
    return ','


def _build_table(records: List[List[str]]) -> RawTable:
    """Turn row-major cell lists into headers and row dicts, dropping blank rows."""
    records = [r for r in records if any(str(cell).strip() for cell in r)]
    if not records:
        raise ParseError("File contains no rows")

    headers = [str(h).strip() for h in records[0]]

    rows: List[Dict[str, str]] = []
    for record in records[1:]:
        row: Dict[str, str] = {}
        has_data = False
        for i, header in enumerate(headers):
            value = str(record[i]).strip() if i < len(record) else ''
            # Repeated headers keep the first column's value
            row.setdefault(header, value)
            if value:
                has_data = True
        if has_data:
            rows.append(row)

    return RawTable(headers=headers, rows=rows)
