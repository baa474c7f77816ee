"""
Configuration management for ShopDesk
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "ShopDesk"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    log_retention_days: int = 30

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4

    # Database
    database_url: str = "sqlite:///./shopdesk.db"

    # LLM Configuration
    anthropic_api_key: Optional[str] = None
    llm_model: str = "claude-sonnet-4-20250514"
    enable_llm_insights: bool = True
    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 30.0

    # AI insights
    insights_ttl_minutes: int = 120
    insights_empty_ttl_minutes: int = 60
    monthly_summary_ttl_minutes: int = 1440
    insights_window_days: int = 30
    insights_max_sales: int = 500
    insights_cache_max_entries: int = 0  # 0 = unbounded
    currency_symbol: str = "₦"

    # Inventory
    low_stock_threshold: int = 5
    stockout_warning_days: int = 7

    # Authentication
    initial_admin_email: str = ""
    initial_admin_password: str = ""
    session_duration_hours: int = 72

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
