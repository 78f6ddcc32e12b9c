"""
Pytest configuration and fixtures.
"""
import json
from typing import Any, List

import pytest

from agcredit.config import get_settings
from agcredit.engine.orchestrator import EngineOptions


CURRENT_YEAR = 2024


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached settings so environment overrides apply per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def current_year() -> int:
    """Fixed reference year for default periods."""
    return CURRENT_YEAR


@pytest.fixture
def options() -> EngineOptions:
    """Engine options from default settings."""
    return EngineOptions.from_settings()


@pytest.fixture
def statement_rows() -> List[List[Any]]:
    """Year-aligned statement with income and balance rows."""
    return [
        ["Item", "2022", "2023", "2024"],
        ["Revenue", "1,800,000", "1,950,000", "2,100,000"],
        ["Net Income", "380,000", "425,000", "450,000"],
        ["Total Assets", "8,200,000", "8,500,000", "8,900,000"],
        ["Current Assets", "2,500,000", "2,650,000", "2,800,000"],
        ["Current Liabilities", "1,255,000", "1,382,000", "1,400,000"],
        ["Total Equity", "6,800,000", "7,100,000", "7,300,000"],
    ]


@pytest.fixture
def statement_json(statement_rows) -> str:
    """Year-aligned statement serialized the way spreadsheets are uploaded."""
    return json.dumps(statement_rows)


@pytest.fixture
def freeform_text() -> str:
    """Document text without any fiscal year."""
    return "\n".join([
        "Green Acres Farm",
        "Revenue $1,800,000 $1,950,000 $2,100,000",
        "Net Income (425,000) 380,000 425,000",
        "Total Assets 8,200,000 8,500,000 8,900,000",
    ])


@pytest.fixture
def income_json() -> str:
    """Income statement with reported debt service figures."""
    return json.dumps([
        ["", "2022", "2023", "2024"],
        ["Revenue", "1,800,000", "1,950,000", "2,100,000"],
        ["Net Income", "380,000", "425,000", "450,000"],
        ["Depreciation", "50,000", "55,000", "60,000"],
        ["Interest Expense", "40,000", "42,000", "45,000"],
        ["Principal Payments", "100,000", "110,000", "120,000"],
    ])


@pytest.fixture
def balance_json() -> str:
    """Balance sheet for the same years as income_json."""
    return json.dumps([
        ["Item", "2022", "2023", "2024"],
        ["Total Assets", "8,200,000", "8,500,000", "8,900,000"],
        ["Current Assets", "2,500,000", "2,650,000", "2,800,000"],
        ["Current Liabilities", "1,255,000", "1,382,000", "1,400,000"],
        ["Total Liabilities", "1,400,000", "1,400,000", "1,600,000"],
        ["Total Equity", "6,800,000", "7,100,000", "7,300,000"],
    ])
