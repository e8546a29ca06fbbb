"""Busyness — Fetch Cycle Pipeline.

Runs one fetch cycle:
  request historical + forecast rows → normalize → loaded | error

and the equivalent single-request cycle for forecast metrics. Failures of any
kind inside a cycle collapse into its error state; partial results are
discarded.
"""

import asyncio
from datetime import datetime
from typing import Optional

from busyness.analyzer.accuracy_engine import DaytimeWindow, summarize_library
from busyness.config import settings
from busyness.connectors.backend.client import BackendAPIError
from busyness.connectors.backend.endpoints import BackendEndpoints
from busyness.connectors.backend.transformer import (
    normalize_metrics_library,
    transform_forecast_records,
    transform_historical_records,
)
from busyness.core.library_registry import Library
from busyness.core.logging import get_logger
from busyness.core.temporal import n_days_before, n_weeks_before
from busyness.models.response_models import (
    BusynessData,
    BusynessError,
    BusynessLoaded,
    MetricsData,
    MetricsError,
    MetricsLoaded,
)

logger = get_logger("analyzer.pipeline")


def history_since(now: datetime) -> datetime:
    """Start of the historical window for a cycle anchored at ``now``."""
    return n_days_before(now, settings.history_window_days)


def metrics_since(now: datetime) -> datetime:
    return n_weeks_before(now, settings.metrics_window_weeks)


async def fetch_library_records(
    endpoints: BackendEndpoints,
    library: Library,
    now: datetime,
    since: Optional[datetime] = None,
) -> BusynessData:
    """Fetch and normalize one library's historical and forecast records.

    Both requests run concurrently and both must succeed. Forecasts are
    always anchored to ``now``, whatever the historical window.
    """
    since = since if since is not None else history_since(now)

    # Wait for both to settle before deciding, whichever finishes first
    historical_rows, forecast_rows = await asyncio.gather(
        endpoints.fetch_historical_records(library, since),
        endpoints.fetch_forecast_records(library, now),
        return_exceptions=True,
    )

    try:
        for result in (historical_rows, forecast_rows):
            if isinstance(result, BaseException):
                raise result
        historical = transform_historical_records(historical_rows, library)
        forecasts = transform_forecast_records(forecast_rows)
    except BackendAPIError as e:
        logger.error(f"Fetch cycle failed: {e}", extra={"library": library.value})
        return BusynessError(error=str(e))
    except Exception as e:
        logger.exception(
            f"Fetch cycle failed unexpectedly: {e!r}", extra={"library": library.value}
        )
        return BusynessError(error=str(e))

    if not historical:
        logger.warning("No historical records found", extra={"library": library.value})

    return BusynessLoaded(historical_records=historical, forecast_records=forecasts)


async def fetch_metrics(
    endpoints: BackendEndpoints,
    now: datetime,
    daytime: Optional[DaytimeWindow] = None,
    since: Optional[datetime] = None,
) -> MetricsData:
    """Fetch forecast metrics for every library and summarize them."""
    since = since if since is not None else metrics_since(now)
    daytime = daytime or DaytimeWindow.from_settings()

    try:
        rows = await endpoints.fetch_metrics(since)
        normalized = [normalize_metrics_library(row) for row in rows]
        metrics = [
            summarize_library(library, records, daytime)
            for library, records in normalized
        ]
    except BackendAPIError as e:
        logger.error(f"Metrics fetch failed: {e}")
        return MetricsError(error=str(e))
    except Exception as e:
        logger.exception(f"Metrics fetch failed unexpectedly: {e!r}")
        return MetricsError(error=str(e))

    return MetricsLoaded(metrics=metrics)
