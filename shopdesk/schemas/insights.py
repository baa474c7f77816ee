"""Structured AI insight payloads parsed from model output"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PredictionItem(BaseModel):
    prediction: str = Field(min_length=1)
    horizon: str = "next_7_days"
    confidence: Optional[str] = None  # low / medium / high


class RestockSuggestion(BaseModel):
    product_name: str = Field(min_length=1)
    current_stock: int
    suggested_quantity: Optional[int] = None
    reason: str


class InsightBundle(BaseModel):
    """Predictions, summary and restocking for one shop from one model call.

    predictions, summary and restocking are required; a response missing
    any of them is rejected as a whole.
    """
    predictions: List[PredictionItem]
    summary: str = Field(min_length=1)
    restocking: List[RestockSuggestion]
    trends: str = ""
    highlights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    restock_insight: str = ""
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("summary")
    @classmethod
    def summary_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("summary must not be blank")
        return v.strip()


class MonthlySummary(BaseModel):
    summary: str = Field(min_length=1)
    highlights: List[str] = Field(default_factory=list)
    insights: str = ""
