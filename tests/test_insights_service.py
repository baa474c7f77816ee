"""
InsightsService: cache short-circuit, failure classification and
model-output parsing. Uses an in-memory data source, no database.
"""
import json

import pytest
from sqlalchemy.exc import OperationalError

from shopdesk.errors import DataUnavailable, GenerationFailure, ParseFailure
from shopdesk.schemas.insights import InsightBundle, MonthlySummary
from shopdesk.services.insights_service import (
    InsightsService,
    build_insights_prompt,
    insights_cache_key,
    monthly_summary_cache_key,
    parse_model_json,
)
from shopdesk.services.shop_data_service import MonthSnapshot, ProductStat, ShopNotFound, ShopSnapshot
from shopdesk.utils.cache import InsightsCache

from conftest import GOOD_RESPONSE


class FakeDataSource:
    def __init__(self, snapshots=None, months=None):
        self.snapshots = snapshots or {}
        self.months = months or {}
        self.loads = 0

    def load_snapshot(self, shop_id):
        self.loads += 1
        if shop_id not in self.snapshots:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return self.snapshots[shop_id]

    def load_month(self, shop_id):
        if shop_id not in self.months:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return self.months[shop_id]


def busy_snapshot(shop_id="shop-1"):
    rice = ProductStat(name="Rice", stock=3, total_sold=10, sales_velocity=0.33, days_until_stockout=9)
    beans = ProductStat(name="Beans", stock=40, total_sold=0, sales_velocity=0.0, days_until_stockout=999)
    return ShopSnapshot(
        shop_id=shop_id,
        shop_name="Corner Shop",
        window_days=30,
        total_sales=10,
        total_revenue=15000.0,
        sales_by_day={f"2026-10-{d:02d}": 1500.0 for d in range(10, 20)},
        today_sales=1,
        today_revenue=1500.0,
        today_items_sold=1,
        activity_counts={"create_sale": 1},
        products=[rice, beans],
        low_stock=[],
    )


@pytest.fixture
def service(fake_llm, clock):
    return InsightsService(fake_llm, cache=InsightsCache(clock=clock))


@pytest.fixture
def source():
    return FakeDataSource(snapshots={"shop-1": busy_snapshot()})


# ────────────────────────────────────────────
# GENERATE INSIGHTS
# ────────────────────────────────────────────


def test_bundle_for_busy_shop(service, source, fake_llm):
    bundle = service.generate_insights("shop-1", source)

    assert isinstance(bundle, InsightBundle)
    assert bundle.predictions and bundle.restocking
    assert bundle.summary
    assert bundle.restocking[0].product_name == "Rice"
    assert fake_llm.calls == 1


def test_second_call_is_served_from_cache(service, source, fake_llm):
    first = service.generate_insights("shop-1", source)
    second = service.generate_insights("shop-1", source)

    assert second == first
    assert second.model_dump() == first.model_dump()
    assert fake_llm.calls == 1
    assert source.loads == 1


def test_regenerates_after_ttl(service, source, fake_llm, clock):
    service.generate_insights("shop-1", source)
    clock.advance(service.settings.insights_ttl_minutes * 60)
    service.generate_insights("shop-1", source)
    assert fake_llm.calls == 2


def test_shops_are_cached_separately(service, fake_llm):
    source = FakeDataSource(snapshots={"a": busy_snapshot("a"), "b": busy_snapshot("b")})
    service.generate_insights("a", source)
    service.generate_insights("b", source)
    assert fake_llm.calls == 2
    assert service.cache.get_cached(insights_cache_key("a")) is not None
    assert service.cache.get_cached(insights_cache_key("b")) is not None


def test_prompt_embeds_shop_data(service, source, fake_llm):
    service.generate_insights("shop-1", source)
    prompt = fake_llm.prompts[0]
    assert "Corner Shop" in prompt
    assert "Total Sales: 10" in prompt
    assert "Rice(Stock:3, Sold:10)" in prompt
    assert '"restocking"' in prompt


def test_empty_shop_skips_model(service, fake_llm):
    empty = ShopSnapshot(shop_id="new", shop_name="New Shop", window_days=30)
    source = FakeDataSource(snapshots={"new": empty})

    bundle = service.generate_insights("new", source)

    assert fake_llm.calls == 0
    assert bundle.restocking == []
    assert "Not enough data" in bundle.predictions[0].prediction
    assert service.cache.get_cached(insights_cache_key("new")) is bundle


# ────────────────────────────────────────────
# FAILURES
# ────────────────────────────────────────────


def test_unknown_shop_is_data_unavailable(service, fake_llm):
    with pytest.raises(DataUnavailable):
        service.generate_insights("ghost", FakeDataSource())
    assert fake_llm.calls == 0
    assert service.cache.get_cached(insights_cache_key("ghost")) is None


class BrokenDataSource:
    """Data source whose queries fail at the database."""

    def load_snapshot(self, shop_id):
        raise OperationalError("SELECT * FROM sales", {}, Exception("database is locked"))

    def load_month(self, shop_id):
        raise OperationalError("SELECT * FROM sales", {}, Exception("database is locked"))


def test_query_error_is_data_unavailable(service, fake_llm):
    with pytest.raises(DataUnavailable) as exc_info:
        service.generate_insights("shop-1", BrokenDataSource())

    assert exc_info.value.status_code == 404
    assert fake_llm.calls == 0
    assert len(service.cache) == 0


def test_monthly_query_error_is_data_unavailable(service, fake_llm):
    with pytest.raises(DataUnavailable):
        service.business_summary("shop-1", BrokenDataSource(), "monthly")
    assert fake_llm.calls == 0
    assert len(service.cache) == 0


def test_model_error_is_generation_failure(llm_factory, clock, source):
    llm = llm_factory(error=TimeoutError("upstream timed out"))
    service = InsightsService(llm, cache=InsightsCache(clock=clock))

    with pytest.raises(GenerationFailure) as exc_info:
        service.generate_insights("shop-1", source)

    assert "timed out" in exc_info.value.message
    assert len(service.cache) == 0


def test_generation_failure_is_not_sticky(llm_factory, clock, source):
    llm = llm_factory(error=ConnectionError("network"))
    service = InsightsService(llm, cache=InsightsCache(clock=clock))
    with pytest.raises(GenerationFailure):
        service.generate_insights("shop-1", source)

    llm.error = None
    bundle = service.generate_insights("shop-1", source)
    assert bundle.summary
    assert llm.calls == 2


@pytest.mark.parametrize("response", [
    "Sorry, I can't help with that.",
    "{not json at all}",
    json.dumps({k: v for k, v in GOOD_RESPONSE.items() if k != "restocking"}),
    json.dumps({**GOOD_RESPONSE, "summary": "   "}),
    json.dumps({**GOOD_RESPONSE, "predictions": "up and to the right"}),
])
def test_bad_output_is_parse_failure(llm_factory, clock, source, response):
    service = InsightsService(llm_factory(response=response), cache=InsightsCache(clock=clock))
    with pytest.raises(ParseFailure):
        service.generate_insights("shop-1", source)
    assert len(service.cache) == 0


# ────────────────────────────────────────────
# VIEWS AND MONTHLY SUMMARY
# ────────────────────────────────────────────


def test_views_share_one_generation(service, source, fake_llm):
    predictions = service.sales_predictions("shop-1", source)
    restocking = service.restocking_suggestions("shop-1", source)
    daily = service.business_summary("shop-1", source, "daily")

    assert fake_llm.calls == 1
    assert predictions["trends"] == GOOD_RESPONSE["trends"]
    assert predictions["recommendations"] == GOOD_RESPONSE["recommendations"]
    assert restocking["restocking"][0]["suggested_quantity"] == 20
    assert restocking["insight"] == GOOD_RESPONSE["restock_insight"]
    assert daily["period"] == "daily"
    assert daily["summary"] == GOOD_RESPONSE["summary"]


def test_invalid_period_rejected(service, source):
    with pytest.raises(ValueError):
        service.business_summary("shop-1", source, "weekly")


def test_refresh_forces_new_generation(service, source, fake_llm):
    service.generate_insights("shop-1", source)
    service.refresh_insights("shop-1", source)
    assert fake_llm.calls == 2


def test_monthly_summary_cached(llm_factory, clock):
    monthly = {"summary": "A good month.", "highlights": ["10 orders"], "insights": "Rice leads"}
    llm = llm_factory(response=json.dumps(monthly))
    service = InsightsService(llm, cache=InsightsCache(clock=clock))
    month = MonthSnapshot(shop_id="shop-1", month="2026-10", total_sales=10, total_revenue=15000.0, items_sold=10)
    source = FakeDataSource(months={"shop-1": month})

    from datetime import datetime
    now = datetime(2026, 10, 19, 12, 0)
    first = service.monthly_summary("shop-1", source, now=now)
    second = service.monthly_summary("shop-1", source, now=now)

    assert isinstance(first, MonthlySummary)
    assert first.summary == "A good month."
    assert second is first
    assert llm.calls == 1
    assert service.cache.get_cached(monthly_summary_cache_key("shop-1", "2026-10")) is first


def test_monthly_summary_without_sales_is_not_cached(service, fake_llm):
    month = MonthSnapshot(shop_id="shop-1", month="2026-10", total_sales=0, total_revenue=0.0, items_sold=0)
    result = service.business_summary("shop-1", FakeDataSource(months={"shop-1": month}), "monthly")

    assert result["period"] == "monthly"
    assert result["summary"] == "No activity recorded this month."
    assert fake_llm.calls == 0
    assert len(service.cache) == 0


# ────────────────────────────────────────────
# PARSING
# ────────────────────────────────────────────


def test_parse_accepts_fenced_json():
    text = "Here you go:\n```json\n" + json.dumps(GOOD_RESPONSE) + "\n```"
    bundle = parse_model_json(text, InsightBundle)
    assert bundle.predictions[0].confidence == "medium"


def test_parse_defaults_optional_fields():
    minimal = {"predictions": [], "summary": "Quiet day.", "restocking": []}
    bundle = parse_model_json(json.dumps(minimal), InsightBundle)
    assert bundle.highlights == [] and bundle.trends == ""


def test_parse_reports_missing_fields():
    with pytest.raises(ParseFailure) as exc_info:
        parse_model_json(json.dumps({"summary": "only this"}), InsightBundle)
    assert "predictions" in exc_info.value.message
    assert "restocking" in exc_info.value.message


def test_prompt_lists_low_stock():
    snapshot = busy_snapshot()
    snapshot.low_stock = [snapshot.products[0]]
    prompt = build_insights_prompt(snapshot, currency="$")
    assert "Low Stock Items (1): Rice(Stock:3, ~9 days left)" in prompt
    assert "Total Revenue: $15,000" in prompt
