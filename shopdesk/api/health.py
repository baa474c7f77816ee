"""
Health check and status endpoints
"""
from fastapi import APIRouter, Request
from datetime import datetime
from shopdesk.config import get_settings
from shopdesk import __version__

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status(request: Request):
    """Get system status"""
    insights = getattr(request.app.state, "insights_service", None)
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "features": {
            "llm_insights": bool(insights and insights.llm.is_available()),
        },
        "insights_cache_entries": len(insights.cache) if insights else 0,
        "timestamp": datetime.utcnow().isoformat()
    }
