"""Busyness — Raw Backend Models (Shape Checking).

These mirror the backend's flat JSON exactly. They are used only to validate
responses before normalization and are never handed to consumers.
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, create_model

from busyness.core.library_registry import LIBRARY_AREAS, Library


# ─────────────────────────────────────────────
# RESPONSE ENVELOPES
# ─────────────────────────────────────────────


class Envelope(BaseModel):
    """Common response wrapper. Anything but ``success: true`` is a failure."""

    model_config = ConfigDict(extra="ignore")

    success: Optional[bool] = None
    message: Optional[str] = None


class HistoricalEnvelope(Envelope):
    busynessRecords: Optional[List[Dict[str, Any]]] = None


class ForecastEnvelope(Envelope):
    busynessForecastRecords: Optional[List[Dict[str, Any]]] = None


class MetricsEnvelope(Envelope):
    metrics: Optional[List[Dict[str, Any]]] = None


# ─────────────────────────────────────────────
# RECORD ROWS
# ─────────────────────────────────────────────

# Number columns are StrictFloat: bools and numeric strings are malformed
ROW_CONFIG = ConfigDict(allow_inf_nan=False)

class RawHistoricalRecord(BaseModel):
    """Fields shared by every library's historical row.

    Area columns are added per library by ``raw_historical_model``. Extra
    columns are kept so unknown areas can still be carried through.
    """

    model_config = ConfigDict(extra="allow", **ROW_CONFIG)

    library: Optional[str] = None
    record_datetime: StrictFloat  # Epoch millis
    active: StrictBool
    total_count: StrictFloat = Field(ge=0)
    total_percent: StrictFloat = Field(ge=0)


class RawForecastRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", **ROW_CONFIG)

    library: Optional[str] = None  # e.g. "hill#prediction"
    record_datetime: StrictFloat
    total_count: StrictFloat
    total_percent: StrictFloat


class RawMetricsRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", **ROW_CONFIG)

    record_datetime: StrictFloat
    total_count_actual: StrictFloat
    total_count_predicted: StrictFloat


class RawLibraryMetrics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    library: Library
    records: List[RawMetricsRecord] = []


def _build_historical_model(library: Library) -> Type[RawHistoricalRecord]:
    fields: Dict[str, Any] = {}
    for area in LIBRARY_AREAS[library]:
        fields[f"{area}_count"] = (StrictFloat, Field(ge=0))
        fields[f"{area}_percent"] = (StrictFloat, Field(ge=0))
    return create_model(
        f"Raw{library.value.capitalize()}HistoricalRecord",
        __base__=RawHistoricalRecord,
        **fields,
    )


RAW_HISTORICAL_MODELS: Dict[Library, Type[RawHistoricalRecord]] = {
    library: _build_historical_model(library) for library in Library
}


def raw_historical_model(library: Library) -> Type[RawHistoricalRecord]:
    """Row model requiring every area column the library reports."""
    return RAW_HISTORICAL_MODELS[library]
