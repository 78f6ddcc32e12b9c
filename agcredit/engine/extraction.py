"""
Extraction layer for the credit statement engine.

Turns raw statement content into canonical rows:
- JSON 2-D arrays (spreadsheet rows serialized by the upload collaborator)
- Freeform multi-line text (document text)

JSON is always attempted first. Content is never modified in place.
"""

import json
import re
from typing import Any, List, Sequence

import structlog

from agcredit.exceptions import MalformedInputError, MissingContentError
from agcredit.models import CanonicalRow
from agcredit.services.numeric_parser import coerce_number

logger = structlog.get_logger(__name__)


class ExtractionLayer:
    """
    Content parser producing canonical rows.

    Text lines are split on tabs, pipes, semicolons, comma-space and runs of
    two or more spaces. A line that stays in one piece is split into its
    label words and trailing numeric tokens, so "Revenue 100 200" still
    yields a label cell and two figures.
    """

    CELL_DELIMITER = re.compile(r"\t+|\s*\|\s*|\s*;\s*|,\s+|\s{2,}")
    TOKEN_SPLIT = re.compile(r"\s+")

    def parse(self, content: Any, statement: str = "statement") -> List[CanonicalRow]:
        """
        Parse raw content into canonical rows.

        Args:
            content: JSON text, freeform text, bytes, or a sequence of rows.
            statement: Name used in error messages.

        Returns:
            Rows in document order. Blank rows are dropped.

        Raises:
            MissingContentError: content is None.
            MalformedInputError: content cannot be read as rows at all.
        """
        if content is None:
            raise MissingContentError(statement)

        if isinstance(content, (bytes, bytearray)):
            content = bytes(content).decode("utf-8", errors="replace")

        if isinstance(content, str):
            table = self._parse_json(content)
            if table is None:
                table = self._split_text(content)
        elif isinstance(content, (list, tuple)):
            table = self._normalize_table(content)
        else:
            raise MalformedInputError(type(content).__name__)

        rows: List[CanonicalRow] = []
        for values in table:
            row = CanonicalRow.from_values(len(rows), values)
            if all(c.is_empty for c in row.cells):
                continue
            rows.append(row)

        logger.debug("Content parsed", statement=statement, rows=len(rows))
        return rows

    def _parse_json(self, content: str) -> Any:
        """Return a row table when content is a JSON array, else None."""
        stripped = content.strip()
        if not stripped.startswith("["):
            return None
        try:
            data = json.loads(stripped)
        except ValueError:
            return None
        if not isinstance(data, list):
            return None
        return self._normalize_table(data)

    @staticmethod
    def _normalize_table(data: Sequence[Any]) -> List[List[Any]]:
        """Make every entry a list of cells; scalars become one-cell rows."""
        table: List[List[Any]] = []
        for entry in data:
            if isinstance(entry, (list, tuple)):
                table.append(list(entry))
            elif isinstance(entry, dict):
                table.append(list(entry.values()))
            else:
                table.append([entry])
        return table

    def _split_text(self, content: str) -> List[List[str]]:
        table: List[List[str]] = []
        for line in content.splitlines():
            if not line.strip():
                continue
            cells = [c.strip() for c in self.CELL_DELIMITER.split(line.strip()) if c.strip()]
            # Trailing numbers can share the first chunk with the label
            cells = self._split_tokens(cells[0]) + cells[1:]
            table.append(cells)
        return table

    def _split_tokens(self, text: str) -> List[str]:
        """Split a single-chunk line into its label and trailing numbers."""
        tokens = self.TOKEN_SPLIT.split(text)
        split_at = len(tokens)
        while split_at > 0 and coerce_number(tokens[split_at - 1]) is not None:
            split_at -= 1
        label = " ".join(tokens[:split_at])
        cells = [label] if label else []
        cells.extend(tokens[split_at:])
        return cells


def get_extraction_layer() -> ExtractionLayer:
    """Get ExtractionLayer instance."""
    return ExtractionLayer()
