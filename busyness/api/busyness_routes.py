"""Busyness — Dashboard API Routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from busyness.analyzer.change_engine import (
    change_direction,
    compute_change_indicators,
    describe_change,
    format_percent,
)
from busyness.analyzer.chart_engine import (
    DisplayType,
    build_busyness_chart,
    build_metrics_chart,
)
from busyness.analyzer.pipeline import fetch_metrics
from busyness.core.library_registry import (
    LIBRARY_AREAS,
    Library,
    display_name,
    parse_library,
)
from busyness.core.logging import get_logger
from busyness.models.response_models import BusynessError, BusynessLoaded, MetricsLoaded
from busyness.scheduler.jobs import DashboardController

logger = get_logger("api.busyness")

router = APIRouter(tags=["Busyness"])


def get_controller(request: Request) -> DashboardController:
    """Dependency — the controller created by the app lifespan."""
    return request.app.state.controller


def _library_or_404(value: str) -> Library:
    try:
        return parse_library(value)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _indicator(change: Optional[int]) -> Dict[str, Any]:
    return {
        "value": change,
        "direction": change_direction(change),
        "text": describe_change(change),
    }


@router.get("/libraries")
async def list_libraries():
    """Libraries and the areas each one reports."""
    return {
        "status": "success",
        "libraries": [
            {"library": lib.value, "name": display_name(lib), "areas": areas}
            for lib, areas in LIBRARY_AREAS.items()
        ],
    }


@router.get("/libraries/{library}/busyness")
async def get_library_busyness(
    library: str,
    display: DisplayType = Query(DisplayType.COUNTS),
    controller: DashboardController = Depends(get_controller),
):
    """Current state of a library: records, change indicators and chart."""
    lib = _library_or_404(library)
    data = controller.data(lib)
    body: Dict[str, Any] = {
        "library": lib.value,
        "name": display_name(lib),
        "status": data.status.value,
        "refreshing": controller.is_refreshing(lib),
        "now": controller.now.isoformat() if controller.now else None,
    }

    if not isinstance(data, BusynessLoaded):
        if isinstance(data, BusynessError):
            body["error"] = data.error
        return body

    body["historical_records"] = len(data.historical_records)
    body["forecast_records"] = len(data.forecast_records)
    if not data.has_display_data or controller.now is None:
        body["message"] = "No data found, try again later."
        return body

    indicators = compute_change_indicators(data, controller.now)
    body["most_recent"] = indicators.most_recent.model_dump(mode="json")
    body["full"] = format_percent(indicators.most_recent.total.percent)
    body["next_hour_change"] = _indicator(indicators.next_hour_change)
    body["day_over_day_change"] = _indicator(indicators.day_over_day_change)
    body["chart"] = build_busyness_chart(
        lib,
        data.historical_records,
        data.forecast_records,
        display,
        controller.now,
    ).model_dump(mode="json")
    return body


@router.get("/metrics")
async def get_forecast_metrics(
    controller: DashboardController = Depends(get_controller),
):
    """Forecast accuracy per library over the configured metrics window."""
    now = controller.clock()
    result = await fetch_metrics(controller.endpoints, now)
    if not isinstance(result, MetricsLoaded):
        raise HTTPException(status_code=502, detail=f"Metrics unavailable: {result.error}")

    return {
        "status": "success",
        "fetched_at": now.isoformat(),
        "metrics": [
            {
                "library": m.library.value,
                "overall": m.overall.model_dump(mode="json", by_alias=True),
                "daytime": m.daytime.model_dump(mode="json", by_alias=True),
                "chart": [p.model_dump(mode="json") for p in build_metrics_chart(m.records)],
            }
            for m in result.metrics
        ],
    }
