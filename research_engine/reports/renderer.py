"""Report rendering.

``ReportRenderer`` is the boundary with the document pipeline (HTML to PDF
conversion and storage live elsewhere). ``HTMLReportRenderer`` produces a
plain, self-contained HTML page.
"""

from abc import ABC, abstractmethod
from html import escape

from research_engine.reports.models import EquityReport

FALLBACK_HEADING = "Error generating structured report"


class ReportRenderer(ABC):
    """Turns a structured report into a document."""

    @abstractmethod
    def render(self, report: EquityReport) -> str:
        """Render a parsed report."""
        ...

    def render_fallback(self, raw_output: str) -> str:
        """Wrap unparseable model output so the user still sees it."""
        return (
            "<html><body>"
            f"<h1>{FALLBACK_HEADING}</h1>"
            f"<pre>{escape(raw_output)}</pre>"
            "</body></html>"
        )


def _entry(head: str, body: str) -> str:
    if head and body:
        return f"<li><strong>{escape(head)}</strong>: {escape(body)}</li>"
    if head:
        return f"<li><strong>{escape(head)}</strong></li>"
    return f"<li>{escape(body)}</li>"


def _section(title: str, items: list[tuple[str, str]]) -> str:
    if not items:
        return ""
    entries = "".join(_entry(head, body) for head, body in items)
    return f"<section><h2>{escape(title)}</h2><ul>{entries}</ul></section>"


class HTMLReportRenderer(ReportRenderer):
    """Minimal HTML rendering of every report section."""

    def render(self, report: EquityReport) -> str:
        title = escape(report.company_name)
        if report.ticker:
            title = f"{title} ({escape(report.ticker)})"

        key_facts = [
            ("Rating", report.rating),
            ("Target price", report.target_price),
            ("Target period", report.target_period),
            ("Current price", report.current_price),
            ("Upside", report.upside),
            ("Market cap", report.market_cap),
            ("Enterprise value", report.ent_value),
            ("EV/EBITDA", report.ev_ebitda),
            ("P/E", report.pe),
            ("Sector", report.sector),
            ("Region", report.region),
        ]

        parts = [
            "<html><head><meta charset=\"utf-8\">",
            f"<title>Equity Research Note - {escape(report.company_name)}</title>",
            "</head><body>",
            f"<h1>{title}</h1>",
        ]
        if report.subtitle:
            parts.append(f"<p class=\"subtitle\">{escape(report.subtitle)}</p>")

        parts.append(_section("Key data", [(k, v) for k, v in key_facts if v]))
        parts.append(
            _section(
                "Investment thesis",
                [(e.title, e.content) for e in report.investment_thesis],
            )
        )
        parts.append(
            _section("Highlights", [(e.title, e.content) for e in report.highlights])
        )
        parts.append(
            _section(
                "Valuation methodology",
                [(v.method, v.details) for v in report.valuation_methodology],
            )
        )
        parts.append(_section("Catalysts", [(c.title, c.impact) for c in report.catalysts]))
        parts.append(_section("Risks", [(r.title, r.impact) for r in report.risks]))

        if report.financial_summary:
            header = "".join(
                f"<th>{label}</th>"
                for label in ("Year", "Revenue", "EBITDA", "Margin", "EPS", "FCF")
            )
            rows = "".join(
                "<tr>"
                + "".join(
                    f"<td>{escape(value)}</td>"
                    for value in (row.year, row.rev, row.ebitda, row.mrg, row.eps, row.fcf)
                )
                + "</tr>"
                for row in report.financial_summary
            )
            parts.append(
                "<section><h2>Financial summary</h2>"
                f"<table><thead><tr>{header}</tr></thead><tbody>{rows}</tbody></table>"
                "</section>"
            )

        parts.append(
            _section("Rating history", [(r.event, r.date) for r in report.rating_history])
        )

        if report.analyst:
            contact = f" ({escape(report.analyst_email)})" if report.analyst_email else ""
            parts.append(f"<footer>{escape(report.analyst)}{contact}</footer>")

        parts.append("</body></html>")
        return "".join(parts)
