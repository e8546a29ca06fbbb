"""Busyness — Raw → Normalized Transformer.

Converts flat backend rows into the canonical record models. A row that does
not validate fails the whole response; rows are never skipped one by one.
"""

import math
from datetime import datetime
from typing import Any, Dict, List

from pydantic import ValidationError

from busyness.connectors.backend.client import EnvelopeError
from busyness.core.library_registry import LIBRARY_AREAS, Library
from busyness.core.logging import get_logger
from busyness.core.temporal import from_epoch_millis
from busyness.models.busyness_models import (
    AreaBusyness,
    ForecastRecord,
    HistoricalRecord,
    MetricsRecord,
)
from busyness.models.raw_models import (
    RawForecastRecord,
    RawLibraryMetrics,
    raw_historical_model,
)

logger = get_logger("backend.transformer")

COUNT_SUFFIX = "_count"
PERCENT_SUFFIX = "_percent"


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def _timestamp(millis: float, what: str) -> datetime:
    try:
        return from_epoch_millis(millis)
    except (OverflowError, OSError, ValueError) as e:
        raise EnvelopeError(f"Malformed {what} timestamp {millis!r}: {e}") from e


def _extra_areas(extra: Dict[str, Any]) -> Dict[str, AreaBusyness]:
    """Pick up ``<area>_count``/``<area>_percent`` pairs missing from the registry.

    Half a pair, or a pair with a non-numeric side, fails the row like a
    missing registered area does.
    """
    names = {
        key[: -len(suffix)]
        for key in extra
        for suffix in (COUNT_SUFFIX, PERCENT_SUFFIX)
        if key.endswith(suffix)
    }
    areas: Dict[str, AreaBusyness] = {}
    for name in sorted(names):
        count = extra.get(f"{name}{COUNT_SUFFIX}")
        percent = extra.get(f"{name}{PERCENT_SUFFIX}")
        if not (_is_number(count) and _is_number(percent)):
            raise EnvelopeError(
                f"Incomplete area '{name}': count={count!r}, percent={percent!r}"
            )
        areas[name] = AreaBusyness(count=count, percent=percent)
    return areas


def normalize_historical_record(row: Dict[str, Any], library: Library) -> HistoricalRecord:
    """Nest a flat historical row into total + per-area busyness."""
    try:
        raw = raw_historical_model(library).model_validate(row)
    except ValidationError as e:
        raise EnvelopeError(f"Malformed {library.value} historical record: {e}") from e

    areas = {
        area: AreaBusyness(
            count=getattr(raw, f"{area}{COUNT_SUFFIX}"),
            percent=getattr(raw, f"{area}{PERCENT_SUFFIX}"),
        )
        for area in LIBRARY_AREAS[library]
    }
    extra = _extra_areas(raw.model_extra or {})
    if extra:
        logger.debug(
            f"Carrying unregistered areas: {sorted(extra)}",
            extra={"library": library.value},
        )
        areas.update(extra)

    return HistoricalRecord(
        record_datetime=_timestamp(raw.record_datetime, "historical"),
        active=raw.active,
        total=AreaBusyness(count=raw.total_count, percent=raw.total_percent),
        areas=areas,
    )


def normalize_forecast_record(row: Dict[str, Any]) -> ForecastRecord:
    """Normalize a forecast row, clamping predictions to at least 0."""
    try:
        raw = RawForecastRecord.model_validate(row)
    except ValidationError as e:
        raise EnvelopeError(f"Malformed forecast record: {e}") from e

    # The model can dip below zero near closing time
    return ForecastRecord(
        record_datetime=_timestamp(raw.record_datetime, "forecast"),
        forecasted_total=AreaBusyness(
            count=max(0.0, raw.total_count),
            percent=max(0.0, raw.total_percent),
        ),
    )


def normalize_metrics_library(row: Dict[str, Any]) -> tuple[Library, List[MetricsRecord]]:
    """Validate one library's metrics block and normalize its records."""
    try:
        raw = RawLibraryMetrics.model_validate(row)
    except ValidationError as e:
        raise EnvelopeError(f"Malformed metrics entry: {e}") from e

    records = [
        MetricsRecord(
            record_datetime=_timestamp(r.record_datetime, "metrics"),
            actual=r.total_count_actual,
            predicted=r.total_count_predicted,
        )
        for r in raw.records
    ]
    return raw.library, records


def transform_historical_records(
    rows: List[Dict[str, Any]], library: Library
) -> List[HistoricalRecord]:
    return [normalize_historical_record(row, library) for row in rows]


def transform_forecast_records(rows: List[Dict[str, Any]]) -> List[ForecastRecord]:
    return [normalize_forecast_record(row) for row in rows]
