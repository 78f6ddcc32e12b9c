"""
Numeric parser service for statement cell values.

Handles parsing of numeric values in the formats seen in uploaded statements:
- Currency: $1,234.56, €1234
- Negative: (123), -123, -$123
- Percentages: 12.5%

Every raw cell is classified once into a tagged Cell (empty / number / text);
all later stages read the tag instead of sniffing types again.
"""
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional


class CellKind(str, Enum):
    """Kinds of cell values."""
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"


class NumericParser:
    """
    Parser for statement numeric values.

    Strips currency symbols, thousands separators and percent signs, reads
    accounting parentheses and leading minus signs as negatives, and rejects
    anything that is not a plain finite decimal afterwards.
    """

    PARENTHESES_PATTERN = re.compile(r"^\(\s*(.+?)\s*\)$")
    CURRENCY_PATTERN = re.compile(r"[\$€£¥₹]|\b(?:USD|EUR|GBP|CAD|AUD|CHF)\b", re.IGNORECASE)
    PERCENTAGE_PATTERN = re.compile(r"%")
    SEPARATOR_PATTERN = re.compile(r"[,\s]")
    NUMBER_PATTERN = re.compile(r"^(?:\d+\.?\d*|\.\d+)$")

    def parse(self, raw: Any) -> Optional[float]:
        """
        Parse a raw cell value into a float.

        Args:
            raw: Cell value from a row (str, int, float or None).

        Returns:
            Parsed float, or None when the value is not numeric.
        """
        if raw is None or isinstance(raw, bool):
            return None

        if isinstance(raw, (int, float)):
            value = float(raw)
            return value if math.isfinite(value) else None

        text = str(raw).strip()
        if not text:
            return None

        is_negative = False
        paren_match = self.PARENTHESES_PATTERN.match(text)
        if paren_match:
            text = paren_match.group(1)
            is_negative = True

        text = self.CURRENCY_PATTERN.sub("", text)
        text = self.PERCENTAGE_PATTERN.sub("", text)
        text = self.SEPARATOR_PATTERN.sub("", text)

        # Sign may sit before or after the currency symbol: -$1,200 / $-1,200
        if text.startswith("-"):
            is_negative = not is_negative
            text = text[1:]
        elif text.startswith("+"):
            text = text[1:]

        if not self.NUMBER_PATTERN.match(text):
            return None

        value = float(text)
        if not math.isfinite(value):
            return None
        return -value if is_negative else value

    def parse_cells(self, cells: Iterable["Cell"], positive_only: bool = False) -> List[float]:
        """
        Collect the numbers from a sequence of cells, in order.

        Args:
            cells: Cells to read.
            positive_only: Drop zero and negative values.

        Returns:
            List of parsed values.
        """
        numbers: List[float] = []
        for cell in cells:
            if cell.kind != CellKind.NUMBER:
                continue
            if positive_only and cell.value <= 0:
                continue
            numbers.append(cell.value)
        return numbers


@dataclass(frozen=True)
class Cell:
    """A single row cell tagged as empty, number or text."""

    kind: CellKind
    raw: str
    value: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "Cell":
        """Classify a raw value."""
        if raw is None:
            return cls(kind=CellKind.EMPTY, raw="")

        text = str(raw).strip()
        if not text:
            return cls(kind=CellKind.EMPTY, raw="")

        value = coerce_number(raw)
        if value is not None:
            return cls(kind=CellKind.NUMBER, raw=text, value=value)
        return cls(kind=CellKind.TEXT, raw=text)

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    @property
    def is_number(self) -> bool:
        return self.kind == CellKind.NUMBER


# Singleton instance
_parser_instance: Optional[NumericParser] = None


def get_numeric_parser() -> NumericParser:
    """Get singleton NumericParser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = NumericParser()
    return _parser_instance


def coerce_number(raw: Any) -> Optional[float]:
    """Parse one raw value with the shared parser."""
    return get_numeric_parser().parse(raw)


def round_half_up(value: float, places: int) -> float:
    """Round on the decimal representation, halves away from zero."""
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return round(value, places)
