"""
AI Insights Service
Predictions, daily summary and restocking suggestions for a shop, produced
by a single LLM call and cached in memory per shop.
"""
import json
import re
from datetime import datetime
from typing import Dict, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from shopdesk.config import get_settings
from shopdesk.errors import DataUnavailable, GenerationFailure, ParseFailure
from shopdesk.schemas.insights import InsightBundle, MonthlySummary, PredictionItem
from shopdesk.services.llm_service import LLMService
from shopdesk.services.shop_data_service import MonthSnapshot, ShopNotFound, ShopSnapshot
from shopdesk.utils.cache import InsightsCache
from shopdesk.utils.logger import shop_logger

T = TypeVar("T", bound=BaseModel)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

SUMMARY_PERIODS = ("daily", "monthly")


class ShopDataSource(Protocol):
    def load_snapshot(self, shop_id: str) -> ShopSnapshot: ...

    def load_month(self, shop_id: str) -> MonthSnapshot: ...


def insights_cache_key(shop_id: str) -> str:
    return f"insights:{shop_id}"


def monthly_summary_cache_key(shop_id: str, month: str) -> str:
    return f"monthly_summary:{shop_id}:{month}"


def parse_model_json(text: str, model: Type[T]) -> T:
    """Pull the JSON object out of a model response and validate it.

    Models often wrap JSON in prose or code fences, so the outermost
    {...} span is used. Anything that doesn't validate raises ParseFailure.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ParseFailure("Model response contained no JSON object")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Model response is not valid JSON: {e.msg}") from e
    if not isinstance(payload, dict):
        raise ParseFailure("Model response JSON is not an object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ParseFailure(f"Model response has unexpected shape: {', '.join(fields)}") from e


def build_insights_prompt(snapshot: ShopSnapshot, currency: str = "₦") -> str:
    """One prompt asking for predictions, summary and restocking together."""
    activities = ", ".join(f"{k}: {v}" for k, v in snapshot.activity_counts.items()) or "None"
    top_products = ", ".join(
        f"{p.name}(Stock:{p.stock}, Sold:{p.total_sold})" for p in snapshot.products[:5]
    ) or "None"
    low_stock = ", ".join(
        f"{p.name}(Stock:{p.stock}, ~{p.days_until_stockout} days left)" for p in snapshot.low_stock[:10]
    ) or "None"

    return f"""You are a business intelligence AI for a retail shop. Analyze this shop data and provide THREE types of insights in a SINGLE response.

=== SHOP DATA: {snapshot.shop_name} ===
Sales (Last {snapshot.window_days} days):
- Total Sales: {snapshot.total_sales}
- Total Revenue: {currency}{snapshot.total_revenue:,.0f}
- Average Daily Revenue: {currency}{snapshot.avg_daily_revenue:,.0f}
- Days with Sales: {len(snapshot.sales_by_day)}

Today's Performance:
- Sales Today: {snapshot.today_sales}
- Revenue Today: {currency}{snapshot.today_revenue:,.0f}
- Items Sold: {snapshot.today_items_sold}
- Activities: {activities}

Inventory Status:
- Total Products: {len(snapshot.products)}
- Top 5 Products: {top_products}
- Low Stock Items ({len(snapshot.low_stock)}): {low_stock}

=== REQUIRED OUTPUT ===
Respond with ONLY a JSON object of this exact shape:
{{
  "predictions": [{{"prediction": "prediction for the next 7 days", "horizon": "next_7_days", "confidence": "low|medium|high"}}],
  "trends": "key trend observed (1 sentence)",
  "recommendations": ["action1", "action2", "action3"],
  "summary": "executive summary of today's performance (2-3 sentences)",
  "highlights": ["highlight1", "highlight2", "highlight3"],
  "restocking": [{{"product_name": "name", "current_stock": 0, "suggested_quantity": 10, "reason": "why"}}],
  "restock_insight": "overall inventory insight (1 sentence)"
}}

Keep responses concise. Max 250 words total."""


def build_monthly_prompt(month: MonthSnapshot, currency: str = "₦") -> str:
    return f"""You are a business intelligence AI. Create a monthly summary for a retail shop.

Monthly Performance ({month.month}):
- Total Sales: {month.total_sales}
- Revenue: {currency}{month.total_revenue:,.0f}
- Items Sold: {month.items_sold}

Respond with ONLY JSON: {{"summary": "2-3 sentence executive summary", "highlights": ["h1", "h2", "h3"], "insights": "key insight"}}"""


def empty_bundle() -> InsightBundle:
    """Returned without a model call when a shop has no sales and no products."""
    return InsightBundle(
        predictions=[PredictionItem(
            prediction="Not enough data to make predictions. Start recording sales to get AI insights.",
            confidence="low",
        )],
        summary="No activity recorded yet.",
        restocking=[],
        trends="N/A",
        highlights=[],
        recommendations=["Record sales and add products to enable AI insights"],
        restock_insight="No products found in inventory.",
    )


class InsightsService:
    """
    Cache-aside aggregator for AI shop insights.

    Constructed once per process; the cache it owns is shared by every
    request. Failures propagate as DataUnavailable, GenerationFailure or
    ParseFailure and never leave anything in the cache.
    """

    def __init__(self, llm: LLMService, cache: Optional[InsightsCache] = None):
        self.settings = get_settings()
        self.llm = llm
        self.cache = cache if cache is not None else InsightsCache(
            max_entries=self.settings.insights_cache_max_entries
        )

    # ── Core bundle ──────────────────────────────────────

    def generate_insights(self, shop_id: str, data_source: ShopDataSource) -> InsightBundle:
        """Return the shop's cached bundle, generating it with one LLM call on a miss."""
        key = insights_cache_key(shop_id)
        cached = self.cache.get_cached(key)
        if cached is not None:
            shop_logger(shop_id).debug("Insights cache hit")
            return cached

        return self.cache.get_or_generate(key, lambda: self._build_bundle(shop_id, data_source))

    def _load(self, loader, shop_id: str):
        try:
            return loader(shop_id)
        except ShopNotFound as e:
            raise DataUnavailable(str(e)) from e
        except SQLAlchemyError as e:
            shop_logger(shop_id).error(f"Insights data query failed: {str(e)}")
            raise DataUnavailable("Could not load shop data") from e

    def _complete(self, prompt: str, shop_id: str) -> str:
        llm_log = shop_logger(shop_id, llm=True)
        llm_log.debug(f"LLM call ({len(prompt)} prompt chars)")
        try:
            text = self.llm.complete(prompt)
        except Exception as e:
            llm_log.error(f"LLM generation failed: {str(e)}")
            raise GenerationFailure(str(e)) from e
        llm_log.debug(f"LLM response ({len(text)} chars)")
        return text

    def _build_bundle(self, shop_id: str, data_source: ShopDataSource):
        snapshot = self._load(data_source.load_snapshot, shop_id)

        if snapshot.is_empty:
            shop_logger(shop_id).info("No sales or products; returning empty insights")
            return empty_bundle(), self.settings.insights_empty_ttl_minutes

        prompt = build_insights_prompt(snapshot, self.settings.currency_symbol)
        shop_logger(shop_id).info(f"Generating insights ({snapshot.total_sales} sales, "
                                 f"{len(snapshot.products)} products)")
        text = self._complete(prompt, shop_id)

        try:
            bundle = parse_model_json(text, InsightBundle)
        except ParseFailure as e:
            shop_logger(shop_id).warning(f"Unparseable insights response: {e.message}")
            raise
        return bundle, self.settings.insights_ttl_minutes

    def refresh_insights(self, shop_id: str, data_source: ShopDataSource) -> InsightBundle:
        """Drop every cached entry for the shop, then regenerate the bundle."""
        removed = self.cache.invalidate(insights_cache_key(shop_id))
        removed += self.cache.invalidate(f"monthly_summary:{shop_id}:")
        shop_logger(shop_id).info(f"Invalidated {removed} cached insight entries")
        return self.generate_insights(shop_id, data_source)

    # ── Views over the bundle ────────────────────────────

    def sales_predictions(self, shop_id: str, data_source: ShopDataSource) -> Dict:
        bundle = self.generate_insights(shop_id, data_source)
        return {
            "predictions": [p.model_dump() for p in bundle.predictions],
            "trends": bundle.trends,
            "recommendations": bundle.recommendations,
            "generated_at": bundle.generated_at.isoformat(),
        }

    def restocking_suggestions(self, shop_id: str, data_source: ShopDataSource) -> Dict:
        bundle = self.generate_insights(shop_id, data_source)
        return {
            "restocking": [r.model_dump() for r in bundle.restocking],
            "insight": bundle.restock_insight,
            "generated_at": bundle.generated_at.isoformat(),
        }

    def business_summary(self, shop_id: str, data_source: ShopDataSource, period: str = "daily") -> Dict:
        if period not in SUMMARY_PERIODS:
            raise ValueError('Period must be "daily" or "monthly"')

        if period == "daily":
            bundle = self.generate_insights(shop_id, data_source)
            return {
                "period": "daily",
                "summary": bundle.summary,
                "highlights": bundle.highlights,
                "insights": bundle.trends,
            }

        summary = self.monthly_summary(shop_id, data_source)
        return {"period": "monthly", **summary.model_dump()}

    # ── Monthly summary (separate data scope, separate call) ─

    def monthly_summary(self, shop_id: str, data_source: ShopDataSource,
                        now: Optional[datetime] = None) -> MonthlySummary:
        month_key = (now or datetime.utcnow()).strftime("%Y-%m")
        key = monthly_summary_cache_key(shop_id, month_key)
        cached = self.cache.get_cached(key)
        if cached is not None:
            return cached

        month = self._load(data_source.load_month, shop_id)
        if month.total_sales == 0:
            # Not cached: the first sale of the month should show up right away
            return MonthlySummary(
                summary="No activity recorded this month.",
                highlights=[],
                insights="Start recording sales to get monthly insights.",
            )

        def generate():
            text = self._complete(build_monthly_prompt(month, self.settings.currency_symbol), shop_id)
            return parse_model_json(text, MonthlySummary), self.settings.monthly_summary_ttl_minutes

        return self.cache.get_or_generate(key, generate)
