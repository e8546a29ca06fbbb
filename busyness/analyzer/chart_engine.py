"""Busyness — Chart Series Builder.

Flattens normalized records into points a charting front end can plot
directly: recent history followed by forecasts on a shared time axis.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from busyness.config import settings
from busyness.core.library_registry import Library, areas_for
from busyness.core.temporal import n_minutes_after, to_epoch_millis
from busyness.models.busyness_models import (
    BusynessChart,
    ChartPoint,
    ChartSeries,
    ForecastRecord,
    HistoricalRecord,
    MetricsChartPoint,
    MetricsRecord,
)


class DisplayType(str, Enum):
    """Whether a chart shows head counts or occupancy ratios."""

    COUNTS = "count"
    PERCENTS = "percent"


def _series(library: Library, display_type: DisplayType) -> List[ChartSeries]:
    unit = display_type.value
    series = [ChartSeries(name=f"total {unit}", key=f"total.{unit}")]
    # Areas are only stacked for counts; percents show the total alone
    if display_type is DisplayType.COUNTS:
        series.extend(
            ChartSeries(name=f"{area} {unit}", key=f"areas.{area}.{unit}", stacked=True)
            for area in areas_for(library)
        )
    series.append(
        ChartSeries(name=f"forecasted total {unit}", key=f"forecasted_total.{unit}")
    )
    return series


def _historical_values(
    record: HistoricalRecord, library: Library, unit: str
) -> Dict[str, Optional[float]]:
    values: Dict[str, Optional[float]] = {f"total.{unit}": getattr(record.total, unit)}
    for area in areas_for(library):
        busyness = record.areas.get(area)
        values[f"areas.{area}.{unit}"] = (
            getattr(busyness, unit) if busyness is not None else None
        )
    return values


def build_busyness_chart(
    library: Library,
    historical: List[HistoricalRecord],
    forecasts: List[ForecastRecord],
    display_type: DisplayType,
    now: datetime,
    max_points: Optional[int] = None,
) -> BusynessChart:
    """Chart data for one library, newest ``max_points`` history then forecasts."""
    limit = settings.chart_max_points if max_points is None else max_points
    unit = display_type.value

    ordered = sorted(historical, key=lambda r: r.record_datetime)
    selected = ordered[-limit:] if limit > 0 else []

    points = [
        ChartPoint(
            timestamp=to_epoch_millis(r.record_datetime),
            values=_historical_values(r, library, unit),
        )
        for r in selected
    ]
    points.extend(
        ChartPoint(
            timestamp=to_epoch_millis(f.record_datetime),
            values={f"forecasted_total.{unit}": getattr(f.forecasted_total, unit)},
        )
        for f in sorted(forecasts, key=lambda f: f.record_datetime)
    )

    return BusynessChart(
        library=library,
        display_type=unit,
        series=_series(library, display_type),
        points=points,
        y_domain=(0.0, 1.0) if display_type is DisplayType.PERCENTS else None,
        # Sits just past now to bridge the last record and the first forecast
        reference_time=to_epoch_millis(
            n_minutes_after(now, settings.chart_reference_offset_minutes)
        ),
    )


def build_metrics_chart(records: List[MetricsRecord]) -> List[MetricsChartPoint]:
    return [
        MetricsChartPoint(
            timestamp=to_epoch_millis(r.record_datetime),
            actual=r.actual,
            predicted=r.predicted,
        )
        for r in records
    ]
