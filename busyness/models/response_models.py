"""Busyness — Fetch Response States.

A fetch cycle is loading until it settles into exactly one of loaded or
error. Empty record sets are a loaded state, never an error.
"""

from enum import Enum
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict

from busyness.models.busyness_models import (
    ForecastRecord,
    HistoricalRecord,
    LibraryMetrics,
)


class ResponseStatus(str, Enum):
    """Possible states of a request for data."""

    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class BusynessLoading(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[ResponseStatus.LOADING] = ResponseStatus.LOADING


class BusynessLoaded(BaseModel):
    """Historical and forecast records for one library."""

    model_config = ConfigDict(frozen=True)

    status: Literal[ResponseStatus.LOADED] = ResponseStatus.LOADED
    historical_records: List[HistoricalRecord] = []
    forecast_records: List[ForecastRecord] = []

    @property
    def has_display_data(self) -> bool:
        """Zero historical records means there is nothing usable to show."""
        return len(self.historical_records) > 0


class BusynessError(BaseModel):
    """A failed cycle. ``error`` is the cause's message, kept for logging."""

    model_config = ConfigDict(frozen=True)

    status: Literal[ResponseStatus.ERROR] = ResponseStatus.ERROR
    error: str


BusynessData = Union[BusynessLoading, BusynessLoaded, BusynessError]


class MetricsLoading(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[ResponseStatus.LOADING] = ResponseStatus.LOADING


class MetricsLoaded(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[ResponseStatus.LOADED] = ResponseStatus.LOADED
    metrics: List[LibraryMetrics] = []


class MetricsError(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[ResponseStatus.ERROR] = ResponseStatus.ERROR
    error: str


MetricsData = Union[MetricsLoading, MetricsLoaded, MetricsError]
