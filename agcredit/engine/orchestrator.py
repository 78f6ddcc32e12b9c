"""
Engine orchestrator.

Runs the pipeline for one statement:
    content -> rows -> years + keyword rows -> series -> ratios -> trends
    -> validation -> assessment
and combines an income statement with a balance sheet by extracting both
concurrently and joining them before any cross-document ratio is computed.
"""

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple

import structlog

from agcredit.config import LOWER_IS_BETTER_METRICS, Settings, get_settings
from agcredit.engine.assembly import MetricAssembler, get_metric_assembler
from agcredit.engine.assessment import get_health_assessor
from agcredit.engine.categories import CATEGORIES, KEYWORDS
from agcredit.engine.extraction import get_extraction_layer
from agcredit.engine.ratios import get_ratio_calculator
from agcredit.engine.validation import get_validation_builder
from agcredit.exceptions import CombinedAnalysisError, InvalidOptionsError, MalformedInputError
from agcredit.models import (
    CanonicalRow,
    ExtractionResult,
    LayoutMode,
    MetricSeries,
    SeriesSource,
    StatementType,
    YearLayout,
)
from agcredit.services.document_classifier import get_document_classifier
from agcredit.services.keyword_matcher import MatchPolicy, get_keyword_matcher
from agcredit.services.validators.trend_validator import get_trend_classifier
from agcredit.services.year_locator import get_year_locator

logger = structlog.get_logger(__name__)

INCOME_STATEMENT = "income_statement"
BALANCE_SHEET = "balance_sheet"


@dataclass(frozen=True)
class EngineOptions:
    """Per-call snapshot of engine tuning parameters."""

    period_count: int = 3
    header_scan_rows: int = 10
    unaligned_scan_rows: int = 30
    min_header_year_tokens: int = 2
    unaligned_positive_only: bool = True
    aligned_positive_only: bool = False
    keyword_match_policy: str = MatchPolicy.DOCUMENT_ORDER.value
    debt_service_proxy_rate: float = 0.10
    interest_proxy_rate: float = 0.05
    prefer_reported_debt_service: bool = False
    trend_stable_threshold_pct: float = 2.0
    lower_is_better_metrics: Tuple[str, ...] = LOWER_IS_BETTER_METRICS

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "EngineOptions":
        """Build options from settings, applying keyword overrides."""
        settings = settings or get_settings()
        values = dict(
            period_count=settings.default_period_count,
            header_scan_rows=settings.header_scan_rows,
            unaligned_scan_rows=settings.unaligned_scan_rows,
            min_header_year_tokens=settings.min_header_year_tokens,
            unaligned_positive_only=settings.unaligned_positive_only,
            aligned_positive_only=settings.aligned_positive_only,
            keyword_match_policy=settings.keyword_match_policy,
            debt_service_proxy_rate=settings.debt_service_proxy_rate,
            interest_proxy_rate=settings.interest_proxy_rate,
            prefer_reported_debt_service=settings.prefer_reported_debt_service,
            trend_stable_threshold_pct=settings.trend_stable_threshold_pct,
            lower_is_better_metrics=tuple(settings.lower_is_better_metrics),
        )
        values.update(overrides)
        options = cls(**values)
        options.validate()
        return options

    def validate(self) -> None:
        """
        Check option ranges.

        Raises:
            InvalidOptionsError: An option is out of range.
        """
        for name in ("period_count", "header_scan_rows", "unaligned_scan_rows", "min_header_year_tokens"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidOptionsError(name, value, "must be an integer of at least 1")

        for name in ("debt_service_proxy_rate", "interest_proxy_rate", "trend_stable_threshold_pct"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise InvalidOptionsError(name, value, "must be a non-negative number")

        try:
            MatchPolicy(self.keyword_match_policy)
        except ValueError:
            raise InvalidOptionsError(
                "keyword_match_policy",
                self.keyword_match_policy,
                f"must be one of {[p.value for p in MatchPolicy]}",
            )


@dataclass
class StatementExtraction:
    """Series extracted from one statement, before ratios."""
    statement: str
    layout: YearLayout
    series: Dict[str, MetricSeries]
    statement_type: StatementType
    row_count: int


# =============================================================================
# Single statement
# =============================================================================

def run_engine(
    content: Any,
    period_count: Optional[int] = None,
    options: Optional[EngineOptions] = None,
    lower_is_better: Optional[Collection[str]] = None,
    current_year: Optional[int] = None,
    statement: str = "statement",
) -> ExtractionResult:
    """
    Run the full engine on one statement.

    Args:
        content: JSON row table text, freeform text, bytes or row sequence.
        period_count: Number of most recent years to keep (default from settings).
        options: Engine options; defaults come from settings.
        lower_is_better: Metric and ratio names where a decrease is good.
        current_year: Reference year for default periods.
        statement: Name used in logs and errors.

    Returns:
        ExtractionResult.

    Raises:
        MissingContentError: content is None.
        InvalidOptionsError: options are out of range.
    """
    options = _resolve_options(options, period_count)
    extraction = _extract(content, statement, options, current_year)

    result = _finish(
        series=extraction.series,
        years=extraction.layout.years,
        layout_mode=extraction.layout.mode,
        options=options,
        lower_is_better=lower_is_better,
        statement_type=extraction.statement_type,
        row_count=extraction.row_count,
    )

    logger.info(
        "Extraction complete",
        statement=statement,
        years=result.years,
        mode=result.layout_mode.value,
        extracted=result.extracted,
        fallback=result.fallback_categories,
    )
    return result


def _resolve_options(options: Optional[EngineOptions], period_count: Optional[int]) -> EngineOptions:
    options = options or EngineOptions.from_settings()
    if period_count is not None:
        options = replace(options, period_count=period_count)
    options.validate()
    return options


def _extract(
    content: Any,
    statement: str,
    options: EngineOptions,
    current_year: Optional[int],
) -> StatementExtraction:
    """Content to assembled series for one statement."""
    try:
        rows = get_extraction_layer().parse(content, statement=statement)
    except MalformedInputError as e:
        logger.warning("Malformed statement content", statement=statement, error=e.message)
        rows = []

    locator = get_year_locator(
        header_scan_rows=options.header_scan_rows,
        unaligned_scan_rows=options.unaligned_scan_rows,
        min_header_year_tokens=options.min_header_year_tokens,
    )
    layout = locator.locate(rows, period_count=options.period_count, current_year=current_year)

    positive_only = options.aligned_positive_only if layout.aligned else options.unaligned_positive_only
    matcher = get_keyword_matcher(options.keyword_match_policy)
    matches = matcher.match_all(rows, layout, KEYWORDS, positive_only=positive_only)

    series = get_metric_assembler().assemble(matches, layout.years)

    return StatementExtraction(
        statement=statement,
        layout=layout,
        series=series,
        statement_type=_detect_type(rows),
        row_count=len(rows),
    )


def _detect_type(rows: Sequence[CanonicalRow]) -> StatementType:
    text = " ".join(row.text for row in rows)
    return get_document_classifier().classify(text).detected_type


def _finish(
    series: Dict[str, MetricSeries],
    years: List[int],
    layout_mode: LayoutMode,
    options: EngineOptions,
    lower_is_better: Optional[Collection[str]],
    statement_type: StatementType,
    row_count: int,
) -> ExtractionResult:
    """Ratios, trends, validation and assessment over assembled series."""
    calculator = get_ratio_calculator(
        debt_service_proxy_rate=options.debt_service_proxy_rate,
        interest_proxy_rate=options.interest_proxy_rate,
        prefer_reported_debt_service=options.prefer_reported_debt_service,
    )
    ratios = calculator.compute(series, len(years))

    if lower_is_better is None:
        lower_is_better = options.lower_is_better_metrics
    named: Dict[str, Sequence[Optional[float]]] = {name: s.values for name, s in series.items()}
    named.update(ratios)
    trends = get_trend_classifier(options.trend_stable_threshold_pct).analyze_many(
        named, lower_is_better=frozenset(lower_is_better)
    )

    validation = get_validation_builder().build(series, ratios, years)

    return ExtractionResult(
        years=list(years),
        layout_mode=layout_mode,
        series=series,
        ratios=ratios,
        trends=trends,
        validation=validation,
        statement_type=statement_type,
        assessment=get_health_assessor().assess(ratios),
        row_count=row_count,
    )


# =============================================================================
# Combined income statement and balance sheet
# =============================================================================

def analyze_combined(
    income_content: Any,
    balance_content: Any,
    period_count: Optional[int] = None,
    options: Optional[EngineOptions] = None,
    lower_is_better: Optional[Collection[str]] = None,
    current_year: Optional[int] = None,
) -> ExtractionResult:
    """
    Analyze an income statement and a balance sheet together.

    Both extractions run as independent tasks in a thread pool and are
    joined before cross-document ratios are computed.

    Raises:
        InvalidOptionsError: options are out of range.
        CombinedAnalysisError: either extraction failed.
    """
    options = _resolve_options(options, period_count)
    jobs = _combined_jobs(income_content, balance_content, options, current_year)

    with ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="agcredit") as pool:
        futures = [pool.submit(contextvars.copy_context().run, _extract, *job) for job in jobs]
        outcomes = []
        for future in futures:
            try:
                outcomes.append(future.result())
            except Exception as e:
                outcomes.append(e)

    income, balance = _unwrap(jobs, outcomes)
    return _combine(income, balance, options, lower_is_better)


async def analyze_combined_async(
    income_content: Any,
    balance_content: Any,
    period_count: Optional[int] = None,
    options: Optional[EngineOptions] = None,
    lower_is_better: Optional[Collection[str]] = None,
    current_year: Optional[int] = None,
) -> ExtractionResult:
    """Async variant of analyze_combined using the loop's default executor."""
    options = _resolve_options(options, period_count)
    jobs = _combined_jobs(income_content, balance_content, options, current_year)

    loop = asyncio.get_event_loop()
    tasks = [
        loop.run_in_executor(None, contextvars.copy_context().run, _extract, *job)
        for job in jobs
    ]
    outcomes = await asyncio.gather(*tasks, return_exceptions=True)

    income, balance = _unwrap(jobs, outcomes)
    return _combine(income, balance, options, lower_is_better)


def _combined_jobs(
    income_content: Any,
    balance_content: Any,
    options: EngineOptions,
    current_year: Optional[int],
) -> List[tuple]:
    return [
        (income_content, INCOME_STATEMENT, options, current_year),
        (balance_content, BALANCE_SHEET, options, current_year),
    ]


def _unwrap(jobs: List[tuple], outcomes: Sequence[Any]) -> Tuple[StatementExtraction, StatementExtraction]:
    """Raise for the first failed task; no partial combination is produced."""
    for job, outcome in zip(jobs, outcomes):
        if isinstance(outcome, BaseException):
            statement = job[1]
            logger.error("Combined analysis task failed", statement=statement, error=str(outcome))
            raise CombinedAnalysisError(statement, str(outcome)) from outcome
    return outcomes[0], outcomes[1]


def _combine(
    income: StatementExtraction,
    balance: StatementExtraction,
    options: EngineOptions,
    lower_is_better: Optional[Collection[str]],
) -> ExtractionResult:
    for extraction, expected in ((income, StatementType.INCOME_STATEMENT), (balance, StatementType.BALANCE_SHEET)):
        if extraction.statement_type not in (expected, StatementType.UNKNOWN):
            logger.warning(
                "Statement type mismatch",
                statement=extraction.statement,
                detected=extraction.statement_type.value,
            )

    years = merge_years(income.layout, balance.layout, options.period_count)
    series = merge_series(income, balance, years)

    both_aligned = income.layout.aligned and balance.layout.aligned
    result = _finish(
        series=series,
        years=years,
        layout_mode=LayoutMode.ALIGNED if both_aligned else LayoutMode.UNALIGNED,
        options=options,
        lower_is_better=lower_is_better,
        statement_type=StatementType.UNKNOWN,
        row_count=income.row_count + balance.row_count,
    )

    logger.info(
        "Combined analysis complete",
        years=result.years,
        extracted=result.extracted,
        fallback=result.fallback_categories,
    )
    return result


def merge_years(first: YearLayout, second: YearLayout, period_count: int) -> List[int]:
    """
    Union of both YearSets, most recent period_count years.

    Defaulted years from one side are ignored when the other side
    detected real years.
    """
    if first.defaulted and not second.defaulted:
        found = set(second.years)
    elif second.defaulted and not first.defaulted:
        found = set(first.years)
    else:
        found = set(first.years) | set(second.years)
    years = sorted(found)
    return years[-period_count:]


def merge_series(
    income: StatementExtraction,
    balance: StatementExtraction,
    years: List[int],
) -> Dict[str, MetricSeries]:
    """
    One series per category on the merged years.

    Each category comes from its home statement, or from the other
    statement when only that one extracted it. Categories extracted by
    neither are refilled by the fallback or missing policy, and derived
    categories are derived again on the merged series.
    """
    sides = {
        StatementType.INCOME_STATEMENT: (income, balance),
        StatementType.BALANCE_SHEET: (balance, income),
    }
    length = len(years)
    merged: Dict[str, MetricSeries] = {}

    for spec in CATEGORIES:
        chosen = None
        for side in sides[spec.home]:
            candidate = side.series.get(spec.name)
            if candidate is not None and candidate.source == SeriesSource.EXTRACTED:
                chosen = (side, candidate)
                break

        if chosen is not None:
            side, candidate = chosen
            merged[spec.name] = MetricSeries(
                category=spec.name,
                values=_realign(candidate.values, side.layout.years, years),
                source=SeriesSource.EXTRACTED,
                row_index=candidate.row_index,
                label=candidate.label,
            )
        elif spec.core:
            merged[spec.name] = MetricAssembler.fallback(spec.name, length)
        else:
            merged[spec.name] = MetricAssembler.missing(spec.name, length)

    get_metric_assembler().derive(merged)
    return merged


def _realign(values: Sequence[float], source_years: Sequence[int], years: Sequence[int]) -> List[float]:
    by_year = dict(zip(source_years, values))
    return [by_year.get(y, 0.0) for y in years]
