"""Busyness — Central Configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Backend APIs ──
    historical_records_api_url: str = ""
    forecasts_api_url: str = ""
    metrics_api_url: str = ""
    request_timeout: float = 30.0

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    refresh_interval_minutes: int = 5
    keep_last_good_data: bool = True  # Leave loaded data visible during a refetch

    # ── Windows ──
    history_window_days: int = 7
    metrics_window_weeks: int = 4

    # ── Forecast Metrics ──
    local_timezone: str = "America/New_York"
    daytime_start_hour: int = 7
    daytime_end_hour: int = 23  # Exclusive

    # ── Charts ──
    chart_max_points: int = 500
    chart_reference_offset_minutes: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
