"""
Admin analytics insights.

Summarizes dashboard chart data as short text, using Groq when an API key
is configured and a deterministic local summary otherwise.
"""

from .generator import InsightGenerator, InsightRequest, InsightResponse

__all__ = [
    "InsightGenerator",
    "InsightRequest",
    "InsightResponse",
]
