"""Report synthesis: prompt, complete, parse, render.

A model's structured-output contract is not guaranteed, so a response that
does not parse degrades to a fallback document showing the raw output.
"""

import json
import re
import time

from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel

from research_engine.exceptions import ErrorCode, ReportError
from research_engine.llm.client import LLMClient
from research_engine.llm.models import Message, Role
from research_engine.llm.prompts import ReportPromptTemplate
from research_engine.logging_config import get_logger
from research_engine.observability.metrics import record_fallback, track_report_synthesis
from research_engine.reports.models import EquityReport, ReportDocument
from research_engine.reports.renderer import HTMLReportRenderer, ReportRenderer

logger = get_logger(__name__)

CODE_FENCE_MARKERS = ("```json", "```")

_NON_WORD = re.compile(r"[^\w]")


def strip_code_fences(text: str) -> str:
    """Remove literal markdown fence markers and surrounding whitespace."""
    for marker in CODE_FENCE_MARKERS:
        text = text.replace(marker, "")
    return text.strip()


def parse_report(text: str) -> EquityReport:
    """Parse model output into the report schema.

    Fields whose values cannot be read into the schema are dropped (and
    logged) rather than failing the whole report.

    Raises:
        ReportError: If the text is not a JSON object.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ReportError(
            f"Report is not valid JSON: {e.msg}",
            code=ErrorCode.REPORT_PARSE_ERROR,
            details={"position": e.pos},
        ) from e

    if not isinstance(data, dict):
        raise ReportError(
            f"Report JSON must be an object, got {type(data).__name__}",
            code=ErrorCode.REPORT_PARSE_ERROR,
        )

    try:
        return EquityReport.model_validate(data)
    except SchemaValidationError as e:
        invalid = {str(error["loc"][0]) for error in e.errors() if error["loc"]}

    logger.warning(
        "Dropping report fields that do not match the schema",
        extra={"fields": sorted(invalid)},
    )
    kept = {
        key: value
        for key, value in data.items()
        if key not in invalid and to_camel(key) not in invalid
    }
    try:
        return EquityReport.model_validate(kept)
    except SchemaValidationError as e:
        raise ReportError(
            "Report JSON does not match the report schema",
            code=ErrorCode.REPORT_PARSE_ERROR,
            details={"errors": e.error_count()},
        ) from e


def make_report_id(company_name: str, timestamp_ms: int | None = None) -> str:
    """Build ``<slug>_<epoch millis>`` from a company name."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    slug = _NON_WORD.sub("", company_name.replace(" ", "_")).lower()
    return f"{slug}_{timestamp_ms}"


class ReportSynthesizer:
    """Produces a report document from a company name and retrieved context."""

    def __init__(
        self,
        llm_client: LLMClient,
        prompt_template: ReportPromptTemplate | None = None,
        renderer: ReportRenderer | None = None,
        completion_timeout: float | None = None,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            llm_client: Completion client.
            prompt_template: Report prompt template.
            renderer: Renders parsed reports and the fallback document.
            completion_timeout: Timeout for the completion call.
        """
        self._llm_client = llm_client
        self._prompt_template = prompt_template or ReportPromptTemplate()
        self._renderer = renderer or HTMLReportRenderer()
        self._completion_timeout = completion_timeout

    def build_messages(
        self,
        company_name: str,
        user_prompt: str | None,
        context: str,
    ) -> list[Message]:
        system_prompt = self._prompt_template.format(
            company_name=company_name,
            context=context,
        )
        return [
            Message(role=Role.SYSTEM, content=system_prompt),
            Message(
                role=Role.USER,
                content=user_prompt or self._prompt_template.default_user_prompt(company_name),
            ),
        ]

    async def synthesize(
        self,
        company_name: str,
        user_prompt: str | None = None,
        context: str = "",
    ) -> ReportDocument:
        """Generate a report, falling back to the raw output if it won't parse.

        Args:
            company_name: Company to cover.
            user_prompt: User instruction (defaults to a generic request).
            context: Retrieved context block, possibly empty.

        Returns:
            Structured report document or the fallback document.
        """
        report_id = make_report_id(company_name)
        messages = self.build_messages(company_name, user_prompt, context)

        raw_output = await self._llm_client.complete(
            messages, timeout=self._completion_timeout
        )

        if raw_output is None:
            track_report_synthesis(structured=False)
            record_fallback("report", "no_completion", company=company_name)
            return self._fallback(report_id, company_name, "")

        try:
            report = parse_report(raw_output)
        except ReportError as e:
            track_report_synthesis(structured=False)
            logger.warning(
                f"Report parse failed, falling back to raw output: {e.message}",
                extra={"company": company_name, "raw_output": raw_output, **e.details},
            )
            record_fallback("report", "parse_error", company=company_name)
            return self._fallback(report_id, company_name, raw_output)

        report = self._fill_defaults(report, company_name)
        track_report_synthesis(structured=True)
        logger.info(
            "Report synthesized",
            extra={"company": company_name, "report_id": report_id},
        )
        return ReportDocument(
            report_id=report_id,
            company_name=company_name,
            structured=True,
            report=report,
            raw_output=raw_output,
            html=self._renderer.render(report),
        )

    def _fill_defaults(self, report: EquityReport, company_name: str) -> EquityReport:
        updates: dict[str, str] = {}
        if not report.company_name:
            updates["company_name"] = company_name
        if not report.analyst:
            updates["analyst"] = self._prompt_template.analyst
            if not report.analyst_email:
                updates["analyst_email"] = self._prompt_template.analyst_email
        if not report.target_period:
            updates["target_period"] = self._prompt_template.target_period
        return report.model_copy(update=updates) if updates else report

    def _fallback(self, report_id: str, company_name: str, raw_output: str) -> ReportDocument:
        return ReportDocument(
            report_id=report_id,
            company_name=company_name,
            structured=False,
            report=None,
            raw_output=raw_output,
            html=self._renderer.render_fallback(raw_output),
        )
