"""Busyness — Change Engine.

Derives the two headline indicators for a library: expected change over the
next hour (from forecasts) and change since this time yesterday (from
history). Both are whole percentage points, or None when no value exists.
"""

import math
from datetime import datetime
from typing import List, Optional

from busyness.core.logging import get_logger
from busyness.core.temporal import max_by, n_days_before, n_hours_after, nearest
from busyness.models.busyness_models import (
    ChangeIndicators,
    ForecastRecord,
    HistoricalRecord,
)
from busyness.models.response_models import BusynessLoaded

logger = get_logger("analyzer.change")

NO_CHANGE = "no change"


def _timestamp(record: HistoricalRecord | ForecastRecord) -> float:
    return record.record_datetime.timestamp()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +inf."""
    return math.floor(value + 0.5)


def percent_change(current: float, baseline: Optional[float]) -> Optional[int]:
    """Whole-point percent change from ``baseline`` to ``current``.

    None when there is no baseline, or when it is zero.
    """
    if baseline is None or baseline == 0:
        return None
    raw = 100 * (current - baseline) / baseline
    if not math.isfinite(raw):
        return None
    return round_half_up(raw)


def most_recent_record(historical: List[HistoricalRecord]) -> Optional[HistoricalRecord]:
    return max_by(historical, _timestamp)


def next_hour_change(
    most_recent: HistoricalRecord,
    forecasts: List[ForecastRecord],
    now: datetime,
) -> Optional[int]:
    """Change from the latest count to the forecast nearest one hour from now."""
    forecast = nearest(forecasts, _timestamp, n_hours_after(now, 1).timestamp())
    if forecast is None:
        return None
    return percent_change(forecast.forecasted_total.count, most_recent.total.count)


def day_over_day_change(
    most_recent: HistoricalRecord,
    historical: List[HistoricalRecord],
    now: datetime,
) -> Optional[int]:
    """Change from the record nearest this time yesterday to the latest count."""
    day_ago = nearest(historical, _timestamp, n_days_before(now, 1).timestamp())
    if day_ago is None:
        return None
    return percent_change(most_recent.total.count, day_ago.total.count)


def compute_change_indicators(data: BusynessLoaded, now: datetime) -> ChangeIndicators:
    """Compute both indicators for a loaded library.

    Callers must check ``data.has_display_data`` first; an empty history has
    no most recent record and raises ValueError.
    """
    most_recent = most_recent_record(data.historical_records)
    if most_recent is None:
        raise ValueError("Cannot derive changes without historical records")

    indicators = ChangeIndicators(
        most_recent=most_recent,
        next_hour_change=next_hour_change(most_recent, data.forecast_records, now),
        day_over_day_change=day_over_day_change(
            most_recent, data.historical_records, now
        ),
    )
    logger.debug(
        f"Changes: next hour={indicators.next_hour_change}, "
        f"day over day={indicators.day_over_day_change}"
    )
    return indicators


def change_direction(change: Optional[int]) -> str:
    if change is None or change == 0:
        return "flat"
    return "up" if change > 0 else "down"


def describe_change(change: Optional[int]) -> str:
    """Display text for a change. Unknown and 0 both read as "no change"."""
    direction = change_direction(change)
    if direction == "flat":
        return NO_CHANGE
    arrow = "↑" if direction == "up" else "↓"
    return f"{arrow} {abs(change)}%"


def format_percent(ratio: Optional[float], absolute: bool = False) -> str:
    """Format an occupancy ratio (0.42) as a whole percent string ("42%")."""
    if ratio is None:
        return ""
    value = round_half_up(ratio * 100)
    return f"{abs(value) if absolute else value}%"
