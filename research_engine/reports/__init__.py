"""Report synthesis module."""

from research_engine.reports.models import (
    EquityReport,
    FinancialRow,
    ImpactEntry,
    RatingEvent,
    ReportDocument,
    TitledEntry,
    ValuationMethod,
)
from research_engine.reports.renderer import HTMLReportRenderer, ReportRenderer
from research_engine.reports.synthesis import (
    ReportSynthesizer,
    make_report_id,
    parse_report,
    strip_code_fences,
)

__all__ = [
    "EquityReport",
    "FinancialRow",
    "HTMLReportRenderer",
    "ImpactEntry",
    "RatingEvent",
    "ReportDocument",
    "ReportRenderer",
    "ReportSynthesizer",
    "TitledEntry",
    "ValuationMethod",
    "make_report_id",
    "parse_report",
    "strip_code_fences",
]
