"""
Financial categories recognised by the engine.

Keyword lists, home statements and fallback datasets live here as named
configuration so every stage reads the same definitions.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from agcredit.models import StatementType

# Category names
REVENUE = "revenue"
NET_INCOME = "net_income"
CURRENT_ASSETS = "current_assets"
CURRENT_LIABILITIES = "current_liabilities"
TOTAL_ASSETS = "total_assets"
TOTAL_EQUITY = "total_equity"
TOTAL_LIABILITIES = "total_liabilities"
NET_FARM_INCOME = "net_farm_income"
TERM_DEBT = "term_debt"
PRINCIPAL_PAYMENTS = "principal_payments"
INTEREST_PAYMENTS = "interest_payments"
DEPRECIATION = "depreciation"

# Shown wherever fallback numbers are surfaced
FALLBACK_DATASET_LABEL = "Representative agricultural operation (placeholder, not extracted)"


@dataclass(frozen=True)
class CategorySpec:
    """Definition of one financial category."""
    name: str
    keywords: Tuple[str, ...]
    home: StatementType
    core: bool = False
    fallback: Optional[Tuple[float, ...]] = None


CATEGORIES: Tuple[CategorySpec, ...] = (
    # Core categories: fallback dataset applies when no row matches
    CategorySpec(
        name=REVENUE,
        keywords=("revenue", "sales", "gross income", "total income", "turnover"),
        home=StatementType.INCOME_STATEMENT,
        core=True,
        fallback=(1_800_000.0, 1_950_000.0, 2_100_000.0),
    ),
    CategorySpec(
        name=NET_INCOME,
        keywords=("net income", "net profit", "profit after tax", "earnings"),
        home=StatementType.INCOME_STATEMENT,
        core=True,
        fallback=(380_000.0, 425_000.0, -425_000.0),
    ),
    CategorySpec(
        name=CURRENT_ASSETS,
        keywords=("current assets", "liquid assets", "short term assets"),
        home=StatementType.BALANCE_SHEET,
        core=True,
        fallback=(2_500_000.0, 2_650_000.0, 2_200_000.0),
    ),
    CategorySpec(
        name=CURRENT_LIABILITIES,
        keywords=("current liabilities", "short term debt", "current debt"),
        home=StatementType.BALANCE_SHEET,
        core=True,
        fallback=(1_255_000.0, 1_382_000.0, 2_614_000.0),
    ),
    CategorySpec(
        name=TOTAL_ASSETS,
        keywords=("total assets", "assets"),
        home=StatementType.BALANCE_SHEET,
        core=True,
        fallback=(8_200_000.0, 8_500_000.0, 8_900_000.0),
    ),
    CategorySpec(
        name=TOTAL_EQUITY,
        keywords=("equity", "shareholders equity", "net worth", "capital"),
        home=StatementType.BALANCE_SHEET,
        core=True,
        fallback=(6_800_000.0, 7_100_000.0, 6_627_000.0),
    ),
    # Supplementary categories: derived or left as zeros, never fallback
    CategorySpec(
        name=TOTAL_LIABILITIES,
        keywords=("total liabilities",),
        home=StatementType.BALANCE_SHEET,
    ),
    CategorySpec(
        name=NET_FARM_INCOME,
        keywords=("net farm income", "net operating income", "operating income", "income from operations"),
        home=StatementType.INCOME_STATEMENT,
    ),
    CategorySpec(
        name=TERM_DEBT,
        keywords=("term debt", "long-term debt", "long term debt", "notes payable"),
        home=StatementType.BALANCE_SHEET,
    ),
    CategorySpec(
        name=PRINCIPAL_PAYMENTS,
        keywords=("principal payments", "principal paid", "principal repayment"),
        home=StatementType.INCOME_STATEMENT,
    ),
    CategorySpec(
        name=INTEREST_PAYMENTS,
        keywords=("interest payments", "interest paid", "interest expense"),
        home=StatementType.INCOME_STATEMENT,
    ),
    CategorySpec(
        name=DEPRECIATION,
        keywords=("depreciation",),
        home=StatementType.INCOME_STATEMENT,
    ),
)

CATEGORY_BY_NAME: Dict[str, CategorySpec] = {c.name: c for c in CATEGORIES}
CORE_CATEGORIES: Tuple[str, ...] = tuple(c.name for c in CATEGORIES if c.core)
KEYWORDS: Dict[str, Tuple[str, ...]] = {c.name: c.keywords for c in CATEGORIES}


def fallback_series(category: str, length: int) -> Optional[list]:
    """
    Fallback dataset for a category sized to length.

    Shorter requests keep the most recent values; longer ones repeat the
    oldest value on the left.
    """
    spec = CATEGORY_BY_NAME.get(category)
    if spec is None or spec.fallback is None or length <= 0:
        return None
    base = list(spec.fallback)
    if length <= len(base):
        return base[-length:]
    return [base[0]] * (length - len(base)) + base
