# prodtrack/services/wip_import.py
"""
Cutting-room sheet parser
-------------------------
Turns a spreadsheet (list of rows, first row = headers) into a per-color,
per-size piece breakdown:

  horizontal_matrix   Color | XS | S | M | L | XL ...
  detailed_breakdown  Color | Size | Pieces
  batch_summary       any of the above plus a Lot / Batch column
  generic             whatever of the above fits; nothing fits -> WipImportError

CSV uploads go through rows_from_csv() first.
"""

from __future__ import annotations

import csv
import io
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from prodtrack.services.errors import WipImportError

UTC = timezone.utc

Rows = Sequence[Sequence[Any]]

SIZES = ("XS", "S", "M", "L", "XL", "2XL", "3XL", "4XL", "5XL")

COLOR_HEADERS = ("color", "colour", "रङ", "रंग")
SIZE_HEADERS = ("size", "साइज")
PIECES_HEADERS = ("pieces", "qty", "quantity", "टुक्रा")
LOT_HEADERS = ("lot", "batch", "लट")
DATE_HEADERS = ("date", "cutting_date", "मिति")

METADATA_HEADERS: Dict[str, tuple] = {
    "article": ("article", "article_no", "style", "model"),
    "buyer": ("buyer", "customer", "client"),
    "order": ("order", "po", "order_no", "po_no"),
    "lot": ("lot", "batch", "lot_no"),
    "fabric": ("fabric", "material", "fabric_type"),
    "weight": ("weight", "gsm", "fabric_weight"),
}

_NUM_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


@dataclass
class ColorBreakdown:
    name: str
    pieces: Dict[str, int] = field(default_factory=dict)
    total: int = 0
    layers: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "pieces": dict(self.pieces), "total": self.total, "layers": self.layers}


@dataclass
class ParsedWip:
    format: str
    colors: List[ColorBreakdown]
    total_pieces: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "colors": [c.to_dict() for c in self.colors],
            "total_pieces": self.total_pieces,
            "metadata": dict(self.metadata),
        }


# =========================================================
# helpers
# =========================================================
def _cell(row: Sequence[Any], idx: int) -> str:
    if idx < 0 or idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx]).strip()


def _headers(rows: Rows) -> List[str]:
    return [str(h).strip() if h is not None else "" for h in rows[0]]


def find_column_index(headers: Sequence[str], terms: Sequence[str]) -> int:
    """First header containing any term (case-insensitive); terms are tried in order."""
    lowered = [h.lower() for h in headers]
    for term in terms:
        t = term.lower()
        for i, h in enumerate(lowered):
            if h and t in h:
                return i
    return -1


def find_size_columns(headers: Sequence[str]) -> Dict[str, int]:
    # exact match: substring matching would map 'S' onto 'XS' and 'L' onto 'Color'
    lowered = [h.lower() for h in headers]
    out: Dict[str, int] = {}
    for size in SIZES:
        if size.lower() in lowered:
            out[size] = lowered.index(size.lower())
    return out


def parse_number(value: Any) -> int:
    """'1,200 pcs' -> 1200; blanks, junk and negatives -> 0."""
    if value is None:
        return 0
    cleaned = re.sub(r"[^\d.-]", "", str(value))
    m = _NUM_RE.match(cleaned)
    if not m:
        return 0
    return max(0, math.floor(float(m.group(0))))


def estimate_layers(total_pieces: int) -> int:
    """Cutting-table layers typically laid for a color of this size."""
    if total_pieces <= 50:
        return math.ceil(total_pieces / 12)
    if total_pieces <= 200:
        return math.ceil(total_pieces / 25)
    if total_pieces <= 500:
        return math.ceil(total_pieces / 35)
    return math.ceil(total_pieces / 50)


def extract_metadata(rows: Rows, headers: Sequence[str]) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "headers": list(headers),
        "total_rows": len(rows) - 1,
        "parsed_at": datetime.now(UTC).isoformat(),
    }
    for key, terms in METADATA_HEADERS.items():
        idx = find_column_index(headers, terms)
        if idx == -1:
            continue
        for row in rows[1:]:
            v = _cell(row, idx)
            if v:
                meta[key] = v
                break
    return meta


def rows_from_csv(text: str) -> List[List[str]]:
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    return [row for row in reader if any(c.strip() for c in row)]


# =========================================================
# format detection / parsers
# =========================================================
def detect_format(rows: Rows) -> str:
    if not rows or len(rows) < 2:
        return "generic"

    headers = [h.lower() for h in _headers(rows)]

    if find_size_columns(headers) and "color" in headers:
        return "horizontal_matrix"
    if "size" in headers and "color" in headers and "pieces" in headers:
        return "detailed_breakdown"
    if "lot" in headers or "batch" in headers:
        return "batch_summary"
    return "generic"


def _finish(fmt: str, colors: List[ColorBreakdown], rows: Rows, headers: Sequence[str]) -> ParsedWip:
    for c in colors:
        c.layers = estimate_layers(c.total)
    return ParsedWip(
        format=fmt,
        colors=colors,
        total_pieces=sum(c.total for c in colors),
        metadata=extract_metadata(rows, headers),
    )


def parse_horizontal_matrix(rows: Rows) -> ParsedWip:
    headers = _headers(rows)
    color_idx = find_column_index(headers, COLOR_HEADERS)
    if color_idx == -1:
        raise WipImportError("Color column not found in horizontal matrix format")

    size_cols = find_size_columns(headers)
    if not size_cols:
        raise WipImportError("No size columns found in horizontal matrix format")

    colors: List[ColorBreakdown] = []
    for row in rows[1:]:
        name = _cell(row, color_idx)
        if not name:
            continue
        c = ColorBreakdown(name)
        for size, idx in size_cols.items():
            n = parse_number(row[idx] if idx < len(row) else None)
            if n > 0:
                c.pieces[size] = n
                c.total += n
        if c.total > 0:
            colors.append(c)

    return _finish("horizontal_matrix", colors, rows, headers)


def parse_detailed_breakdown(rows: Rows) -> ParsedWip:
    headers = [h.lower() for h in _headers(rows)]
    color_idx = find_column_index(headers, COLOR_HEADERS)
    size_idx = find_column_index(headers, SIZE_HEADERS)
    pieces_idx = find_column_index(headers, PIECES_HEADERS)
    if -1 in (color_idx, size_idx, pieces_idx):
        raise WipImportError("Required columns (Color, Size, Pieces) not found")

    by_color: Dict[str, ColorBreakdown] = {}
    for row in rows[1:]:
        name = _cell(row, color_idx)
        size = _cell(row, size_idx)
        n = parse_number(row[pieces_idx] if pieces_idx < len(row) else None)
        if not name or not size or n <= 0:
            continue
        c = by_color.setdefault(name, ColorBreakdown(name))
        # a repeated color/size row replaces the earlier one
        c.total += n - c.pieces.get(size, 0)
        c.pieces[size] = n

    return _finish("detailed_breakdown", list(by_color.values()), rows, headers)


def _parse_generic(rows: Rows) -> ParsedWip:
    errors: List[str] = []
    for parser in (parse_horizontal_matrix, parse_detailed_breakdown):
        try:
            return parser(rows)
        except WipImportError as e:
            errors.append(e.message)
    raise WipImportError("Could not determine sheet format: " + "; ".join(errors))


def _distinct_column(rows: Rows, idx: int) -> List[str]:
    seen: List[str] = []
    for row in rows[1:]:
        v = _cell(row, idx)
        if v and v not in seen:
            seen.append(v)
    return seen


def parse_batch_summary(rows: Rows) -> ParsedWip:
    headers = [h.lower() for h in _headers(rows)]
    parsed = _parse_generic(rows)

    lot_idx = find_column_index(headers, LOT_HEADERS)
    if lot_idx != -1:
        parsed.metadata["lot_numbers"] = _distinct_column(rows, lot_idx)
    date_idx = find_column_index(headers, DATE_HEADERS)
    if date_idx != -1:
        parsed.metadata["cutting_dates"] = _distinct_column(rows, date_idx)

    parsed.format = "batch_summary"
    return parsed


_PARSERS = {
    "horizontal_matrix": parse_horizontal_matrix,
    "detailed_breakdown": parse_detailed_breakdown,
    "batch_summary": parse_batch_summary,
    "generic": _parse_generic,
}


def parse_wip_data(rows: Rows, fmt: str = "auto") -> ParsedWip:
    if not rows:
        raise WipImportError("No data provided")
    if fmt == "auto":
        fmt = detect_format(rows)
    parser = _PARSERS.get(fmt)
    if parser is None:
        raise WipImportError(f"Unsupported format: {fmt}")
    return parser(rows)


# =========================================================
# validation / stats
# =========================================================
def validate_parsed(parsed: ParsedWip) -> Dict[str, Any]:
    errors: List[str] = []
    warnings: List[str] = []

    if not parsed.colors:
        errors.append("No color data found")
    if parsed.total_pieces <= 0:
        errors.append("No pieces found in data")

    for i, c in enumerate(parsed.colors, start=1):
        if not c.name:
            warnings.append(f"Color {i} has no name")
        if not c.pieces:
            warnings.append(f'Color "{c.name}" has no size breakdown')

    return {"errors": errors, "warnings": warnings, "is_valid": not errors}


def generate_stats(parsed: ParsedWip) -> Dict[str, Any]:
    total_colors = len(parsed.colors)
    sizes = {s for c in parsed.colors for s in c.pieces}
    avg = (
        int(math.floor(parsed.total_pieces / total_colors + 0.5)) if total_colors else 0
    )
    return {
        "total_colors": total_colors,
        "total_sizes": len(sizes),
        "total_pieces": parsed.total_pieces,
        "average_pieces_per_color": avg,
        "estimated_bundles": math.ceil(parsed.total_pieces / 30),
        "format": parsed.format,
    }
