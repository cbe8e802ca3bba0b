import json
import logging
from typing import Optional

from groq import Groq
from pydantic import BaseModel, Field

from config.settings import Settings, get_settings

log = logging.getLogger("rewards.insights")

SYSTEM_PROMPT = """You are an expert data analyst for an installer rewards program.
Analyze the chart data you are given and reply with a concise, meaningful insight.
Keep your response to 2-3 sentences maximum.

The insight should:
1. Identify patterns, trends, or anomalies
2. Give context or an explanation for the observed pattern
3. Make a simple, actionable recommendation if appropriate

Answer directly. Do not start with phrases like "Based on the data"."""


class DateRange(BaseModel):
    start: str = Field(..., alias="from")
    end: str = Field(..., alias="to")


class InsightRequest(BaseModel):
    chart_type: str
    metric: str
    data_points: list[dict] = Field(default_factory=list)
    date_range: Optional[DateRange] = None


class InsightResponse(BaseModel):
    insight: str
    source: str


class InsightGenerator:
    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.model = settings.insight_model
        self.client = Groq(api_key=settings.groq_api_key) if settings.groq_api_key else None

    @property
    def is_available(self) -> bool:
        return self.client is not None

    def generate(self, request: InsightRequest) -> InsightResponse:
        if self.client:
            insight = self._generate_with_groq(request)
            if insight:
                return InsightResponse(insight=insight, source="llm")
        return InsightResponse(insight=self._summarize_locally(request), source="local")

    def _generate_with_groq(self, request: InsightRequest) -> Optional[str]:
        period = (
            f"From {request.date_range.start} to {request.date_range.end}"
            if request.date_range else "All time"
        )
        prompt = (
            f"Chart Type: {request.chart_type}\n"
            f"Time Period: {period}\n"
            f"Metric: {request.metric}\n"
            f"Data Points: {json.dumps(request.data_points, default=str)}"
        )
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                temperature=0.7,
                max_tokens=150
            )
        except Exception as e:
            log.warning("Groq insight request failed, using local summary: %s", e)
            return None
        return (response.choices[0].message.content or "").strip() or None

    def _summarize_locally(self, request: InsightRequest) -> str:
        values = [_numeric_value(p) for p in request.data_points]
        values = [v for v in values if v is not None]
        if not values:
            return f"No {request.metric} data is available for this period yet."

        total = sum(values)
        peak_index = values.index(max(values))
        peak_label = _label(request.data_points, peak_index)
        if len(values) < 2 or values[-1] == values[0]:
            trend = "held steady"
        elif values[-1] > values[0]:
            trend = "increased"
        else:
            trend = "decreased"

        return (
            f"{request.metric} {trend} over {len(values)} data points, totalling {total:g}. "
            f"The highest value was {max(values):g} at {peak_label} and the lowest was {min(values):g}."
        )


def _numeric_value(point: dict) -> Optional[float]:
    for key in ("value", "count", "points", "amount", "total"):
        value = point.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


def _label(points: list[dict], index: int) -> str:
    numeric = [p for p in points if _numeric_value(p) is not None]
    point = numeric[index]
    for key in ("label", "name", "date", "month", "day"):
        if key in point:
            return str(point[key])
    return f"point {index + 1}"
