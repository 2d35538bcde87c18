# -*- coding: utf-8 -*-

"""
Text moderation with Azure AI Content Safety.
"""

from dataclasses import dataclass

from ..transport.client import ApiClient
from ..transport.errors import DecodeError
from ..transport.models import Model, wire

CONTENT_SAFETY_API_VERSION = "2023-10-01"

# Sample texts expected to be flagged (hate, violence, self-harm instructions)
SAMPLE_VIOLATING_TEXTS = (
    "我讨厌你，你是个笨蛋",
    "如何制作炸弹",
    "我要杀了你",
)


@dataclass
class AnalyzeTextRequest(Model):
    text: str = wire("text")
    categories: list[str] = wire("categories", omit_empty=True, default_factory=list)
    blocklist_names: list[str] = wire("blocklistNames", omit_empty=True, default_factory=list)


@dataclass
class CategoryAnalysis(Model):
    category: str = wire("category")
    severity: float | None = wire("severity", default=None)


@dataclass
class BlocklistMatch(Model):
    blocklist_name: str = wire("blocklistName")
    blocklist_item_id: str | None = wire("blocklistItemId", default=None)
    blocklist_item_text: str | None = wire("blocklistItemText", default=None)


@dataclass
class TextAnalysis(Model):
    categories_analysis: list[CategoryAnalysis] = wire("categoriesAnalysis", default_factory=list)
    blocklists_match: list[BlocklistMatch] = wire("blocklistsMatch", default_factory=list)

    def flagged(self, threshold: float = 1) -> list[CategoryAnalysis]:
        """Categories whose severity reaches the threshold."""
        return [c for c in self.categories_analysis if (c.severity or 0) >= threshold]


def analyze_text(client: ApiClient, text: str, categories=None, blocklist_names=None) -> TextAnalysis:
    """
    Analyze a text for harmful content.

    Args:
        client (ApiClient): Content Safety client.
        text (str): Text to analyze.
        categories (list[str]): Restrict to these categories (Hate, SelfHarm, Sexual, Violence).
        blocklist_names (list[str]): Custom blocklists to match against.

    Returns:
        TextAnalysis: Per-category severities and blocklist matches.
    """
    request = AnalyzeTextRequest(text, list(categories or []), list(blocklist_names or []))
    analysis = client.send(
        "POST",
        "/contentsafety/text:analyze",
        request,
        params={"api-version": CONTENT_SAFETY_API_VERSION},
        response_type=TextAnalysis,
    )
    if analysis is None:
        raise DecodeError("Content Safety returned an empty response.")
    return analysis
