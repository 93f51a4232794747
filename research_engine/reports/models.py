"""Equity research report schema.

Field aliases match the camelCase JSON the model is asked to produce.
Models often answer list sections with bare strings, or a single value
where a list is expected; both are accepted.
"""

from typing import Any, ClassVar, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _scalar_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class ReportSection(BaseModel):
    """Base config shared by every report model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    # Field that receives a bare string (or number) given in place of an object.
    text_field: ClassVar[str | None] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if cls.text_field is not None and isinstance(data, (str, int, float)):
            return {cls.text_field: str(_scalar_text(data))}
        if isinstance(data, dict):
            # Models emit null for unknown figures; fall back to field defaults.
            return {
                key: _scalar_text(value) for key, value in data.items() if value is not None
            }
        return data


class TitledEntry(ReportSection):
    """Thesis point or highlight."""

    text_field: ClassVar[str | None] = "content"

    title: str = ""
    content: str = ""


class ValuationMethod(ReportSection):
    text_field: ClassVar[str | None] = "details"

    method: str = ""
    details: str = ""


class ImpactEntry(ReportSection):
    """Catalyst or risk with its expected impact."""

    text_field: ClassVar[str | None] = "title"

    title: str = ""
    impact: str = ""


class FinancialRow(ReportSection):
    """One year of the financial summary table."""

    text_field: ClassVar[str | None] = "year"

    year: str = ""
    rev: str = ""
    ebitda: str = ""
    mrg: str = ""
    eps: str = ""
    fcf: str = ""


class RatingEvent(ReportSection):
    text_field: ClassVar[str | None] = "event"

    event: str = ""
    date: str = ""


class EquityReport(ReportSection):
    """Structured equity research report."""

    company_name: str = ""
    ticker: str = ""
    subtitle: str = ""
    sector: str = ""
    region: str = ""
    rating: str = ""
    target_price: str = ""
    target_period: str = ""
    current_price: str = ""
    upside: str = ""
    market_cap: str = ""
    ent_value: str = ""
    ev_ebitda: str = ""
    pe: str = ""
    investment_thesis: list[TitledEntry] = Field(default_factory=list)
    highlights: list[TitledEntry] = Field(default_factory=list)
    valuation_methodology: list[ValuationMethod] = Field(default_factory=list)
    catalysts: list[ImpactEntry] = Field(default_factory=list)
    risks: list[ImpactEntry] = Field(default_factory=list)
    financial_summary: list[FinancialRow] = Field(default_factory=list)
    analyst: str = ""
    analyst_email: str = ""
    rating_history: list[RatingEvent] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _wrap_single_entries(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        wrapped = dict(data)
        for name, field in cls.model_fields.items():
            if get_origin(field.annotation) is not list:
                continue
            for key in {name, field.alias}:
                value = wrapped.get(key)
                if value is not None and not isinstance(value, list):
                    wrapped[key] = [value]
        return wrapped


class ReportDocument(BaseModel):
    """Outcome of report synthesis.

    Attributes:
        report_id: Identifier for storage and download links.
        company_name: Company the report was requested for.
        structured: False when the model output could not be parsed.
        report: Parsed report, or None for the fallback document.
        raw_output: Model output exactly as received (fences included).
        html: Rendered document.
    """

    report_id: str = Field(description="Report identifier")
    company_name: str = Field(description="Requested company")
    structured: bool = Field(description="Parsed into the report schema")
    report: EquityReport | None = Field(default=None, description="Parsed report")
    raw_output: str = Field(default="", description="Raw model output")
    html: str = Field(description="Rendered document")
