"""Busyness — Normalized Record Models (Canonical Schema).

Every backend row is normalized into one of these shapes. They are value
objects: frozen once constructed and owned by the fetch cycle that built them.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from busyness.core.library_registry import Library


class AreaBusyness(BaseModel):
    """Occupancy of one area (or a whole library).

    ``count`` is a head count but stays a float: forecasts predict fractional
    people.
    """

    model_config = ConfigDict(frozen=True)

    count: float = Field(ge=0)
    percent: float = Field(ge=0)  # Occupancy ratio, typically in [0, 1]


class HistoricalRecord(BaseModel):
    """Observed busyness of a library at a past moment.

    ``total`` is reported independently by upstream and need not equal the
    sum of ``areas``.
    """

    model_config = ConfigDict(frozen=True)

    record_datetime: datetime
    active: bool
    total: AreaBusyness
    areas: Dict[str, AreaBusyness] = Field(default_factory=dict)


class ForecastRecord(BaseModel):
    """Predicted total busyness at a future moment. Never negative."""

    model_config = ConfigDict(frozen=True)

    record_datetime: datetime
    forecasted_total: AreaBusyness


class MetricsRecord(BaseModel):
    """Actual vs. predicted total count at a past moment."""

    model_config = ConfigDict(frozen=True)

    record_datetime: datetime
    actual: float
    predicted: float

    @property
    def absolute_error(self) -> float:
        return abs(self.actual - self.predicted)


class SummaryMetrics(BaseModel):
    """Forecast accuracy over a set of metrics records."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    num_forecast_records: int = Field(0, alias="numForecastRecords")
    mean_absolute_error: float = Field(0.0, alias="meanAbsoluteError")
    # None when no record has a non-zero actual count
    average_percent_error: Optional[float] = Field(None, alias="averagePercentError")


class LibraryMetrics(BaseModel):
    """Forecast accuracy bundle for one library."""

    model_config = ConfigDict(frozen=True)

    library: Library
    records: List[MetricsRecord] = []
    overall: SummaryMetrics = SummaryMetrics()
    daytime: SummaryMetrics = SummaryMetrics()


# ─────────────────────────────────────────────
# DERIVED OUTPUTS
# ─────────────────────────────────────────────


class ChangeIndicators(BaseModel):
    """Relative change of the most recent observation.

    None means no value could be derived (no neighbour, or a zero baseline),
    which is distinct from a change that rounds to 0.
    """

    model_config = ConfigDict(frozen=True)

    most_recent: HistoricalRecord
    next_hour_change: Optional[int] = None
    day_over_day_change: Optional[int] = None


class ChartSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    key: str
    stacked: bool = False


class ChartPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int  # Epoch millis
    values: Dict[str, Optional[float]] = {}


class BusynessChart(BaseModel):
    """Chart-ready busyness series for one library."""

    model_config = ConfigDict(frozen=True)

    library: Library
    display_type: str
    series: List[ChartSeries] = []
    points: List[ChartPoint] = []
    y_domain: Optional[Tuple[float, float]] = None
    reference_time: int


class MetricsChartPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int
    actual: float
    predicted: float
