"""
Pydantic schemas for engine results.

Defines the response models collaborators (prompt builder, report
renderer) consume in place of the internal dataclasses.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from agcredit.exceptions import AgCreditError
from agcredit.models import (
    ExtractionResult,
    HealthAssessment,
    LayoutMode,
    Rating,
    SeriesSource,
    StatementType,
    TrendLabel,
)


class SeriesResponse(BaseModel):
    """Response model for one category series."""

    category: str = Field(..., description="Category name")
    values: List[float] = Field(..., description="One value per fiscal year, oldest first")
    source: SeriesSource = Field(..., description="extracted, derived, fallback or missing")
    row_index: Optional[int] = Field(None, description="Source row index (0-based)")
    label: Optional[str] = Field(None, description="Source row label or fallback dataset label")


class TrendResponse(BaseModel):
    """Response model for a trend label."""

    label: TrendLabel = Field(..., description="Improving, Stable or Declining")
    change_percent: Optional[float] = Field(None, description="Last period-over-period change (%)")
    lower_is_better: bool = Field(False, description="Whether a decrease counts as improving")


class ValidationResponse(BaseModel):
    """Response model for the validation context."""

    has_income_data: bool = Field(..., description="Income data backed by extraction")
    has_balance_data: bool = Field(..., description="Balance data backed by extraction")
    has_valid_ratios: bool = Field(..., description="Key ratios computed from real data")
    has_valid_trends: bool = Field(..., description="Enough periods for trends")
    debt_coverage_valid: bool = Field(..., description="Debt service figures available")
    overall: bool = Field(..., description="All core flags set")
    category_flags: Dict[str, bool] = Field(default_factory=dict, description="Latest-period validity per category")
    sections_to_hide: List[str] = Field(default_factory=list, description="Report sections to suppress")


class AssessmentResponse(BaseModel):
    """Response model for the health assessment."""

    profitability: Rating
    liquidity: Rating
    solvency: Rating
    efficiency: Rating
    overall: Rating
    score: int = Field(..., description="Threshold checks passed (0-5)")
    checks: Dict[str, bool] = Field(default_factory=dict, description="Result per threshold check")

    @classmethod
    def from_assessment(cls, assessment: HealthAssessment) -> "AssessmentResponse":
        return cls(
            profitability=assessment.profitability,
            liquidity=assessment.liquidity,
            solvency=assessment.solvency,
            efficiency=assessment.efficiency,
            overall=assessment.overall,
            score=assessment.score,
            checks=dict(assessment.checks),
        )


class AnalysisResponse(BaseModel):
    """Response model for a single or combined statement analysis."""

    extracted: bool = Field(..., description="False when any core category used the fallback dataset")
    fallback_categories: List[str] = Field(default_factory=list, description="Categories filled from fallback")
    years: List[int] = Field(..., description="Fiscal years, ascending")
    layout_mode: LayoutMode = Field(..., description="aligned or unaligned")
    statement_type: StatementType = Field(StatementType.UNKNOWN, description="Detected statement type")
    series: Dict[str, SeriesResponse] = Field(..., description="Series per category")
    ratios: Dict[str, List[Optional[float]]] = Field(..., description="Ratio values per year")
    trends: Dict[str, TrendResponse] = Field(..., description="Trend per series and ratio")
    validation: ValidationResponse
    assessment: Optional[AssessmentResponse] = None
    row_count: int = Field(0, description="Canonical rows parsed")

    @classmethod
    def from_result(cls, result: ExtractionResult) -> "AnalysisResponse":
        """Build the response from an engine result."""
        validation = result.validation
        return cls(
            extracted=result.extracted,
            fallback_categories=result.fallback_categories,
            years=list(result.years),
            layout_mode=result.layout_mode,
            statement_type=result.statement_type,
            series={
                name: SeriesResponse(
                    category=s.category,
                    values=list(s.values),
                    source=s.source,
                    row_index=s.row_index,
                    label=s.label,
                )
                for name, s in result.series.items()
            },
            ratios={name: list(values) for name, values in result.ratios.items()},
            trends={
                name: TrendResponse(
                    label=t.label,
                    change_percent=t.change_percent,
                    lower_is_better=t.lower_is_better,
                )
                for name, t in result.trends.items()
            },
            validation=ValidationResponse(
                has_income_data=validation.has_income_data,
                has_balance_data=validation.has_balance_data,
                has_valid_ratios=validation.has_valid_ratios,
                has_valid_trends=validation.has_valid_trends,
                debt_coverage_valid=validation.debt_coverage_valid,
                overall=validation.overall,
                category_flags=dict(validation.category_flags),
                sections_to_hide=validation.sections_to_hide(),
            ),
            assessment=(
                AssessmentResponse.from_assessment(result.assessment)
                if result.assessment is not None
                else None
            ),
            row_count=result.row_count,
        )


class ErrorResponse(BaseModel):
    """Response model for engine errors."""

    error: bool = Field(True, description="Always true")
    error_code: str = Field(..., description="Engine error code (ACE-XXX)")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")

    @classmethod
    def from_error(cls, error: AgCreditError) -> "ErrorResponse":
        return cls(**error.to_dict())
