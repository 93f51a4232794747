"""Prompt templates for chat and report synthesis."""

from abc import ABC, abstractmethod
from typing import Any


class PromptTemplate(ABC):
    """Abstract base class for prompt templates."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the template with provided variables.

        Args:
            **kwargs: Template variables.

        Returns:
            Formatted prompt string.
        """
        ...


class ChatPromptTemplate(PromptTemplate):
    """System prompt for the research chat assistant.

    The context may be empty when nothing cleared the relevance gate; the
    model is then told to answer from general knowledge instead of refusing.
    """

    DEFAULT_SYSTEM_TEMPLATE = """You are an equity research assistant for financial analysts.
Use this context if relevant:
{context}

If the context is empty or irrelevant, answer from your general knowledge. Be precise."""

    def __init__(self, system_template: str | None = None) -> None:
        self.system_template = system_template or self.DEFAULT_SYSTEM_TEMPLATE

    def format(self, **kwargs: Any) -> str:
        """Format the system prompt.

        Args:
            **kwargs: Must include 'context'.
        """
        return self.system_template.format(**kwargs)


REPORT_SCHEMA_EXAMPLE = """{{
  "companyName": "Company Name",
  "ticker": "TICKER",
  "subtitle": "Brief catchy subtitle",
  "sector": "Sector Name",
  "region": "Region Name",
  "rating": "OVERWEIGHT/NEUTRAL/UNDERWEIGHT",
  "targetPrice": "<currency><price>",
  "targetPeriod": "{target_period}",
  "currentPrice": "<currency><price>",
  "upside": "+X%",
  "marketCap": "<currency><amount>",
  "entValue": "<currency><amount>",
  "evEbitda": "X.x",
  "pe": "X.x",
  "investmentThesis": [
    {{ "title": "Headline", "content": "Detailed analysis" }}
  ],
  "highlights": [
    {{ "title": "Headline", "content": "Recent results analysis" }}
  ],
  "valuationMethodology": [
    {{ "method": "DCF / PE Relative", "details": "Explanation of model and assumptions" }}
  ],
  "catalysts": [
    {{ "title": "Upcoming product launch", "impact": "Expected revenue uplift" }}
  ],
  "risks": [
    {{ "title": "Competitive pressure", "impact": "Margin compression" }}
  ],
  "financialSummary": [
    {{ "year": "2024A", "rev": "0", "ebitda": "0", "mrg": "0%", "eps": "0", "fcf": "0" }},
    {{ "year": "2025E", "rev": "0", "ebitda": "0", "mrg": "0%", "eps": "0", "fcf": "0" }},
    {{ "year": "2026E", "rev": "0", "ebitda": "0", "mrg": "0%", "eps": "0", "fcf": "0" }}
  ],
  "analyst": "{analyst}",
  "analystEmail": "{analyst_email}",
  "ratingHistory": [
    {{ "event": "Init", "date": "Month Year @ Price" }}
  ]
}}"""


class ReportPromptTemplate(PromptTemplate):
    """System prompt demanding a JSON-only equity research report."""

    DEFAULT_SYSTEM_TEMPLATE = (
        """You are a Senior Equity Research Analyst.
Generate a high-end investment research report for {company_name} in professional JSON format.
Cover: Executive Summary, Financial Performance, Valuation analysis, Risks, and Recommendation.
Use the following context if relevant:
{context}

The output must be ONLY a valid JSON object matching this structure:
"""
        + REPORT_SCHEMA_EXAMPLE
        + """
Do not include any other text or markdown formatting."""
    )

    DEFAULT_USER_TEMPLATE = "Generate research report for {company_name}"

    def __init__(
        self,
        analyst: str = "Equity Research Team",
        analyst_email: str = "research@example.com",
        target_period: str = "12-18M",
        system_template: str | None = None,
    ) -> None:
        self.analyst = analyst
        self.analyst_email = analyst_email
        self.target_period = target_period
        self.system_template = system_template or self.DEFAULT_SYSTEM_TEMPLATE

    def format(self, **kwargs: Any) -> str:
        """Format the system prompt.

        Args:
            **kwargs: Must include 'company_name' and 'context'.
        """
        return self.system_template.format(
            analyst=self.analyst,
            analyst_email=self.analyst_email,
            target_period=self.target_period,
            **kwargs,
        )

    def default_user_prompt(self, company_name: str) -> str:
        return self.DEFAULT_USER_TEMPLATE.format(company_name=company_name)
