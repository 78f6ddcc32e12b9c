"""
Rule-based statement type classifier.

Scores indicator keywords to decide whether content is a balance sheet,
an income statement or a cash flow statement.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from agcredit.models import StatementType

logger = structlog.get_logger(__name__)


@dataclass
class DocumentTypeResult:
    """Result of statement type detection."""

    detected_type: StatementType
    confidence: float  # 0-95
    indicators: List[str] = field(default_factory=list)
    expected_type: Optional[StatementType] = None
    error: Optional[str] = None

    @property
    def is_correct_type(self) -> bool:
        return self.expected_type is None or self.detected_type == self.expected_type


class DocumentClassifier:
    """
    Keyword-scoring classifier for statement content.

    The type with the most indicator hits wins; ties go to the balance
    sheet, then the income statement. Confidence is the share of that
    type's indicators found, capped at 95.
    """

    MAX_CONFIDENCE = 95.0

    INDICATORS: Dict[StatementType, Tuple[str, ...]] = {
        StatementType.BALANCE_SHEET: (
            "assets",
            "liabilities",
            "equity",
            "balance sheet",
            "current assets",
            "current liabilities",
            "total assets",
            "shareholders equity",
            "retained earnings",
            "working capital",
            "accounts receivable",
            "inventory",
            "property plant equipment",
            "long-term debt",
            "stockholders equity",
        ),
        StatementType.INCOME_STATEMENT: (
            "revenue",
            "income",
            "expenses",
            "profit",
            "loss",
            "income statement",
            "profit and loss",
            "earnings",
            "cost of goods sold",
            "operating expenses",
            "net income",
            "gross profit",
            "operating income",
            "sales",
        ),
        StatementType.CASH_FLOW: (
            "cash flow",
            "operating activities",
            "investing activities",
            "financing activities",
            "net cash",
            "cash flows from",
            "cash provided by",
            "cash used in",
        ),
    }

    LABELS = {
        StatementType.BALANCE_SHEET: "Balance Sheet",
        StatementType.INCOME_STATEMENT: "Income Statement",
        StatementType.CASH_FLOW: "Cash Flow",
    }

    def classify(
        self,
        text: str,
        expected_type: Optional[StatementType] = None,
    ) -> DocumentTypeResult:
        """
        Detect the statement type of content.

        Args:
            text: Statement text (any casing).
            expected_type: Type the caller expects, for mismatch reporting.

        Returns:
            DocumentTypeResult with detected type, confidence and indicators.
        """
        lowered = (text or "").lower()

        scores: Dict[StatementType, List[str]] = {
            stmt: [k for k in keywords if k in lowered]
            for stmt, keywords in self.INDICATORS.items()
        }

        best_type = StatementType.UNKNOWN
        best_hits: List[str] = []
        for stmt in (StatementType.BALANCE_SHEET, StatementType.INCOME_STATEMENT, StatementType.CASH_FLOW):
            if len(scores[stmt]) > len(best_hits):
                best_type, best_hits = stmt, scores[stmt]

        if best_type == StatementType.UNKNOWN:
            result = DocumentTypeResult(
                detected_type=StatementType.UNKNOWN,
                confidence=0.0,
                indicators=["No financial statement indicators found"],
                expected_type=expected_type,
            )
        else:
            confidence = min(len(best_hits) / len(self.INDICATORS[best_type]) * 100, self.MAX_CONFIDENCE)
            result = DocumentTypeResult(
                detected_type=best_type,
                confidence=round(confidence, 1),
                indicators=[f"{self.LABELS[best_type]}: {k}" for k in best_hits],
                expected_type=expected_type,
            )

        if not result.is_correct_type:
            found = self.LABELS.get(result.detected_type, "an unrecognized document")
            wanted = self.LABELS.get(expected_type, expected_type.value)
            result.error = f"This appears to be {found}, not {wanted}."
            logger.info(
                "Statement type mismatch",
                expected=expected_type.value,
                detected=result.detected_type.value,
            )

        return result


def get_document_classifier() -> DocumentClassifier:
    """Get DocumentClassifier instance."""
    return DocumentClassifier()
