"""Busyness — Forecast Accuracy Engine.

Reduces actual/predicted pairs into summary statistics, once over every
record and once over the records that fall in the daytime window.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List
from zoneinfo import ZoneInfo

from busyness.config import settings
from busyness.core.library_registry import Library
from busyness.core.logging import get_logger
from busyness.models.busyness_models import LibraryMetrics, MetricsRecord, SummaryMetrics

logger = get_logger("analyzer.accuracy")


@dataclass(frozen=True)
class DaytimeWindow:
    """Local civil hours ``[start_hour, end_hour)`` that count as daytime.

    A window with ``start_hour > end_hour`` wraps past midnight.
    """

    start_hour: int
    end_hour: int
    tz: tzinfo

    def __post_init__(self) -> None:
        for hour in (self.start_hour, self.end_hour):
            if not 0 <= hour <= 24:
                raise ValueError(f"Daytime hour out of range: {hour}")

    def contains(self, when: datetime) -> bool:
        hour = when.astimezone(self.tz).hour
        if self.start_hour <= self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour

    @classmethod
    def from_settings(cls) -> "DaytimeWindow":
        return cls(
            start_hour=settings.daytime_start_hour,
            end_hour=settings.daytime_end_hour,
            tz=ZoneInfo(settings.local_timezone),
        )


def summarize(records: List[MetricsRecord]) -> SummaryMetrics:
    """Summary statistics over a partition of records.

    Mean absolute error is 0.0 for an empty partition. Records with an
    actual count of 0 are skipped for the percent error; if none remain it
    is None.
    """
    if not records:
        return SummaryMetrics(num_forecast_records=0, mean_absolute_error=0.0)

    mae = sum(r.absolute_error for r in records) / len(records)

    percent_errors = [r.absolute_error / r.actual for r in records if r.actual != 0]
    ape = sum(percent_errors) / len(percent_errors) if percent_errors else None

    return SummaryMetrics(
        num_forecast_records=len(records),
        mean_absolute_error=mae,
        average_percent_error=ape,
    )


def summarize_library(
    library: Library,
    records: List[MetricsRecord],
    daytime: DaytimeWindow,
) -> LibraryMetrics:
    """Build the overall and daytime summaries for one library."""
    daytime_records = [r for r in records if daytime.contains(r.record_datetime)]
    metrics = LibraryMetrics(
        library=library,
        records=records,
        overall=summarize(records),
        daytime=summarize(daytime_records),
    )
    logger.info(
        f"Summarized {len(records)} forecast records "
        f"({len(daytime_records)} daytime), MAE {metrics.overall.mean_absolute_error:.2f}",
        extra={"library": library.value},
    )
    return metrics
