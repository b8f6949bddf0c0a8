from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from liquidacion.application import IndicatorAlreadyExistsError, get_indicator_service
from liquidacion.core.indicators import MissingIndicatorError
from liquidacion.core.schema import PeriodIndicators

router = APIRouter(prefix="/indicators", tags=["indicators"])


def _serialise(indicators: PeriodIndicators) -> dict[str, Any]:
    data = indicators.model_dump(mode="json")
    data["period"] = indicators.period_month
    return data


@router.get("")
async def list_indicators(year: int | None = Query(default=None)) -> dict:
    items = get_indicator_service().list_indicators(year)
    return {"items": [_serialise(item) for item in items]}


@router.get("/{year}/{month}")
async def get_indicators(year: int, month: int) -> dict:
    try:
        indicators = get_indicator_service().get_indicators(year, month)
    except MissingIndicatorError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _serialise(indicators)


@router.post("")
async def create_indicators(payload: dict, replace: bool = Query(default=False)) -> dict:
    try:
        indicators = PeriodIndicators.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    try:
        saved = get_indicator_service().create_indicators(indicators, replace=replace)
    except IndicatorAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _serialise(saved)


@router.post("/duplicate")
async def duplicate_indicators(payload: dict) -> dict:
    try:
        source_year = int(payload["source_year"])
        source_month = int(payload["source_month"])
        target_year = int(payload["target_year"])
        target_month = int(payload["target_month"])
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=400,
            detail="source_year, source_month, target_year and target_month are required",
        ) from exc
    if not 1 <= target_month <= 12:
        raise HTTPException(status_code=400, detail="target_month must be between 1 and 12")

    try:
        duplicate = get_indicator_service().duplicate_indicators(source_year, source_month, target_year, target_month)
    except MissingIndicatorError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except IndicatorAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _serialise(duplicate)


@router.delete("/{year}/{month}")
async def delete_indicators(year: int, month: int) -> dict:
    try:
        get_indicator_service().delete_indicators(year, month)
    except MissingIndicatorError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"deleted": f"{year:04d}-{month:02d}"}
