"""Busyness — Backend Endpoints.

Each API lives at its own configurable base URL. The builders below are the
only place that knows the route shape; the fetch methods check the response
envelope and return the raw rows.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from busyness.config import settings
from busyness.connectors.backend.client import BusynessClient, EnvelopeError
from busyness.core.library_registry import Library
from busyness.core.logging import get_logger
from busyness.core.temporal import to_epoch_millis
from busyness.models.raw_models import (
    Envelope,
    ForecastEnvelope,
    HistoricalEnvelope,
    MetricsEnvelope,
)

logger = get_logger("backend.endpoints")


def _base_url(value: str, env_name: str) -> str:
    if not value:
        logger.error(f"{env_name} is not configured")
    return value.rstrip("/")


def historical_records_url(library: Library, since: Optional[datetime] = None) -> str:
    base = _base_url(settings.historical_records_api_url, "HISTORICAL_RECORDS_API_URL")
    url = f"{base}/?library={library.value}"
    if since is not None:
        url += f"&since={to_epoch_millis(since)}"
    return url


def forecasts_url(library: Library, since: Optional[datetime] = None) -> str:
    base = _base_url(settings.forecasts_api_url, "FORECASTS_API_URL")
    url = f"{base}/?library={library.value}"
    if since is not None:
        url += f"&since={to_epoch_millis(since)}"
    return url


def metrics_url(since: datetime) -> str:
    base = _base_url(settings.metrics_api_url, "METRICS_API_URL")
    return f"{base}/?since={to_epoch_millis(since)}"


def _parse_envelope(body: Dict[str, Any], model: type[Envelope], what: str) -> Envelope:
    try:
        envelope = model.model_validate(body)
    except ValidationError as e:
        raise EnvelopeError(f"Malformed {what} response: {e}") from e
    if envelope.success is not True:
        detail = f": {envelope.message}" if envelope.message else ""
        raise EnvelopeError(
            f"Server was unable to process the request for {what}{detail}"
        )
    return envelope


class BackendEndpoints:
    """Fetch raw rows from the busyness backend."""

    def __init__(self, client: BusynessClient):
        self.client = client

    async def fetch_historical_records(
        self, library: Library, since: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """Historical rows for a library, optionally limited to ``since``."""
        body = await self.client.get_json(historical_records_url(library, since))
        envelope = _parse_envelope(body, HistoricalEnvelope, "historical records")
        rows = envelope.busynessRecords or []
        logger.info(
            f"Fetched {len(rows)} historical records", extra={"library": library.value}
        )
        return rows

    async def fetch_forecast_records(
        self, library: Library, since: datetime
    ) -> List[Dict[str, Any]]:
        """Forecast rows for a library from ``since`` (normally now) onwards."""
        body = await self.client.get_json(forecasts_url(library, since))
        envelope = _parse_envelope(body, ForecastEnvelope, "forecast records")
        rows = envelope.busynessForecastRecords or []
        logger.info(
            f"Fetched {len(rows)} forecast records", extra={"library": library.value}
        )
        return rows

    async def fetch_metrics(self, since: datetime) -> List[Dict[str, Any]]:
        """Per-library forecast metrics since ``since``. Covers all libraries."""
        body = await self.client.get_json(metrics_url(since))
        envelope = _parse_envelope(body, MetricsEnvelope, "metrics")
        if envelope.metrics is None:
            raise EnvelopeError("Metrics response is missing the metrics field")
        logger.info(f"Fetched metrics for {len(envelope.metrics)} libraries")
        return envelope.metrics
