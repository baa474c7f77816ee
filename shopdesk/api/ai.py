"""
AI insights endpoints
Predictions, business summary and restocking suggestions for the shop in context.

Handlers are plain `def` so the blocking LLM call runs in the threadpool.
InsightsError subclasses propagate to the app-level handler, which renders
them as {error, message, kind}.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.models.base import get_db
from shopdesk.services.insights_service import SUMMARY_PERIODS, InsightsService
from shopdesk.services.shop_data_service import ShopDataService

router = APIRouter(prefix="/ai", tags=["ai"])


def get_insights_service(request: Request) -> InsightsService:
    """The process-wide service created in main; overridable in tests."""
    return request.app.state.insights_service


@router.get("/status")
def get_ai_status(service: InsightsService = Depends(get_insights_service)):
    """Check if the LLM service is available"""
    available = service.llm.is_available()
    return {
        "available": available,
        "message": "LLM service is ready" if available else "LLM service not configured",
        "cached_entries": len(service.cache),
    }


@router.get("/insights")
def get_insights(
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("analytics:read")),
    service: InsightsService = Depends(get_insights_service),
):
    """Full insight bundle: predictions, summary and restocking."""
    bundle = service.generate_insights(ctx.shop_id, ShopDataService(db))
    return bundle.model_dump(mode="json")


@router.post("/insights/refresh")
def refresh_insights(
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("analytics:read")),
    service: InsightsService = Depends(get_insights_service),
):
    """Discard the cached bundle and generate a new one."""
    bundle = service.refresh_insights(ctx.shop_id, ShopDataService(db))
    return bundle.model_dump(mode="json")


@router.get("/predictions")
def get_sales_predictions(
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("analytics:read")),
    service: InsightsService = Depends(get_insights_service),
):
    return service.sales_predictions(ctx.shop_id, ShopDataService(db))


@router.get("/summary")
def get_business_summary(
    period: str = Query("daily", description="daily or monthly"),
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("analytics:read")),
    service: InsightsService = Depends(get_insights_service),
):
    if period not in SUMMARY_PERIODS:
        raise HTTPException(status_code=400, detail='Period must be "daily" or "monthly"')
    return service.business_summary(ctx.shop_id, ShopDataService(db), period)


@router.get("/restocking")
def get_restocking_suggestions(
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("analytics:read")),
    service: InsightsService = Depends(get_insights_service),
):
    return service.restocking_suggestions(ctx.shop_id, ShopDataService(db))
