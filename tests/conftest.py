from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from busyness.core.temporal import to_epoch_millis
from busyness.models.busyness_models import AreaBusyness, ForecastRecord, HistoricalRecord

NOW = datetime(2024, 10, 15, 16, 0, tzinfo=timezone.utc)


def hill_row(when: datetime, total_count: float = 100, **overrides: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "library": "hill",
        "record_datetime": to_epoch_millis(when),
        "active": True,
        "total_count": total_count,
        "total_percent": 0.5,
        "east_count": 40,
        "east_percent": 0.4,
        "tower_count": 35,
        "tower_percent": 0.35,
        "west_count": 25,
        "west_percent": 0.25,
    }
    row.update(overrides)
    return row


def hunt_row(when: datetime, total_count: float = 80) -> Dict[str, Any]:
    return {
        "library": "hunt",
        "record_datetime": to_epoch_millis(when),
        "active": True,
        "total_count": total_count,
        "total_percent": 0.2,
        "level2_count": 20,
        "level2_percent": 0.2,
        "level3_count": 20,
        "level3_percent": 0.2,
        "level4_count": 20,
        "level4_percent": 0.2,
        "level5_count": 20,
        "level5_percent": 0.2,
    }


def forecast_row(when: datetime, total_count: float, total_percent: float = 0.3) -> Dict[str, Any]:
    return {
        "library": "hill#prediction",
        "record_datetime": to_epoch_millis(when),
        "total_count": total_count,
        "total_percent": total_percent,
    }


def historical(when: datetime, count: float) -> HistoricalRecord:
    return HistoricalRecord(
        record_datetime=when,
        active=True,
        total=AreaBusyness(count=count, percent=count / 1000),
        areas={"east": AreaBusyness(count=count, percent=count / 1000)},
    )


def forecast(when: datetime, count: float) -> ForecastRecord:
    return ForecastRecord(
        record_datetime=when,
        forecasted_total=AreaBusyness(count=count, percent=count / 1000),
    )


class FakeEndpoints:
    """In-memory stand-in for BackendEndpoints."""

    def __init__(
        self,
        historical_rows: List[Dict[str, Any]] | None = None,
        forecast_rows: List[Dict[str, Any]] | None = None,
        metrics_rows: List[Dict[str, Any]] | None = None,
        historical_error: Exception | None = None,
        forecast_error: Exception | None = None,
        metrics_error: Exception | None = None,
    ):
        self.historical_rows = historical_rows or []
        self.forecast_rows = forecast_rows or []
        self.metrics_rows = metrics_rows or []
        self.historical_error = historical_error
        self.forecast_error = forecast_error
        self.metrics_error = metrics_error
        self.calls: List[tuple] = []

    async def fetch_historical_records(self, library, since=None):
        self.calls.append(("historical", library, since))
        if self.historical_error:
            raise self.historical_error
        return self.historical_rows

    async def fetch_forecast_records(self, library, since):
        self.calls.append(("forecast", library, since))
        if self.forecast_error:
            raise self.forecast_error
        return self.forecast_rows

    async def fetch_metrics(self, since):
        self.calls.append(("metrics", since))
        if self.metrics_error:
            raise self.metrics_error
        return self.metrics_rows


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def hill_series() -> List[Dict[str, Any]]:
    """Two days of hourly hill rows ending at NOW."""
    return [hill_row(NOW - timedelta(hours=h), total_count=100 + h) for h in range(48, -1, -1)]
