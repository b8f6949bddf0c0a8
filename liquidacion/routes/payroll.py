from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse
from pydantic import ValidationError

from liquidacion.application import (
    PeriodAlreadyExistsError,
    PeriodNotFoundError,
    get_payroll_service,
)
from liquidacion.core.exports import ensure_export_dir
from liquidacion.core.indicators import MissingIndicatorError, UnknownFundError
from liquidacion.core.recalculation import LockedLineError
from liquidacion.core.schema import PayslipLineItem, PeriodVariableInputs, WorkerCompensationFacts
from liquidacion.domain import PayrollItem, PayrollPeriod, WorkerPayrollInput
from liquidacion.exporters.bank_payroll_csv import export_bank_payroll
from liquidacion.exporters.payroll_book import export_payroll_book

router = APIRouter(prefix="/payroll", tags=["payroll"])


def _serialise_line(line: PayslipLineItem) -> dict[str, Any]:
    data = line.model_dump(mode="json")
    data["editable"] = line.editable
    return data


def _serialise_item(item: PayrollItem) -> dict[str, Any]:
    result = item.result
    totals = result.model_dump(mode="json", exclude={"earnings", "deductions"})
    return {
        "worker_id": item.worker_id,
        "worker_name": item.worker_name,
        "worker_rut": item.worker_rut,
        "days_worked": item.variable.days_worked,
        "used_fallback": item.used_fallback,
        "indicators": item.indicators.model_dump(mode="json", exclude={"tax_brackets"}),
        "earnings": [_serialise_line(line) for line in result.earnings],
        "deductions": [_serialise_line(line) for line in result.deductions],
        **totals,
    }


def _serialise_period(period: PayrollPeriod) -> dict[str, Any]:
    return {
        "period_id": period.period_id,
        "company_id": period.company_id,
        "year_month": period.year_month,
        "status": period.status,
        "created_at": period.created_at,
        "updated_at": period.updated_at,
        "items": [_serialise_item(item) for item in period.items],
    }


def _parse_period(payload: dict) -> tuple[int, int]:
    try:
        year = int(payload["year"])
        month = int(payload["month"])
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="year and month are required") from exc
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be between 1 and 12")
    return year, month


def _parse_workers(payload: dict) -> list[WorkerPayrollInput]:
    rows = payload.get("workers")
    if not rows:
        raise HTTPException(status_code=400, detail="at least one worker is required")

    workers: list[WorkerPayrollInput] = []
    for index, row in enumerate(rows):
        try:
            facts = WorkerCompensationFacts.model_validate(row.get("facts") or {})
            variable = PeriodVariableInputs.model_validate(row.get("variable") or {})
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False)
            raise HTTPException(status_code=422, detail={"worker": index, "errors": errors}) from exc
        worker_id = str(row.get("worker_id") or index)
        workers.append(
            WorkerPayrollInput(
                worker_id=worker_id,
                worker_name=str(row.get("worker_name") or worker_id),
                worker_rut=row.get("worker_rut"),
                facts=facts,
                variable=variable,
            )
        )
    return workers


def _run(payload: dict) -> tuple[int, int, list[PayrollItem]]:
    year, month = _parse_period(payload)
    workers = _parse_workers(payload)
    service = get_payroll_service()
    try:
        items = service.calculate_period(year, month, workers, strict=bool(payload.get("strict", False)))
    except MissingIndicatorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UnknownFundError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return year, month, items


@router.post("/calculate")
async def calculate_payroll(payload: dict) -> dict:
    year, month, items = _run(payload)
    return {
        "company_id": payload.get("company_id"),
        "year": year,
        "month": month,
        "items": [_serialise_item(item) for item in items],
    }


@router.post("/periods")
async def save_payroll_period(payload: dict) -> dict:
    company_id = payload.get("company_id")
    if not company_id:
        raise HTTPException(status_code=400, detail="company_id is required")
    year, month, items = _run(payload)
    try:
        period = get_payroll_service().save_period(str(company_id), year, month, items)
    except PeriodAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _serialise_period(period)


@router.get("/periods")
async def list_payroll_periods(company_id: str | None = Query(default=None)) -> dict:
    periods = get_payroll_service().list_periods(company_id)
    return {
        "items": [
            {
                "period_id": period.period_id,
                "company_id": period.company_id,
                "year_month": period.year_month,
                "status": period.status,
                "workers": len(period.items),
                "net_total": str(sum((item.result.net_pay for item in period.items), Decimal("0"))),
            }
            for period in periods
        ]
    }


@router.get("/periods/{period_id}")
async def get_payroll_period(period_id: str) -> dict:
    period = get_payroll_service().get_period(period_id)
    if period is None:
        raise HTTPException(status_code=404, detail="payroll period not found")
    return _serialise_period(period)


def _parse_edits(value: Any) -> dict[int, Decimal]:
    if not value:
        return {}
    if not isinstance(value, dict):
        raise HTTPException(status_code=400, detail="edits must map line index to amount")
    try:
        return {int(index): Decimal(str(amount)) for index, amount in value.items()}
    except (ValueError, ArithmeticError) as exc:
        raise HTTPException(status_code=400, detail="invalid line edit") from exc


@router.put("/periods/{period_id}/items/{worker_id}")
async def update_payroll_item(period_id: str, worker_id: str, payload: dict) -> dict:
    days_worked = payload.get("days_worked")
    try:
        item = get_payroll_service().update_item(
            period_id,
            worker_id,
            days_worked=int(days_worked) if days_worked is not None else None,
            earnings_edits=_parse_edits(payload.get("earnings")),
            deduction_edits=_parse_edits(payload.get("deductions")),
        )
    except PeriodNotFoundError as exc:
        raise HTTPException(status_code=404, detail="payroll item not found") from exc
    except LockedLineError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _serialise_item(item)


@router.get("/periods/{period_id}/export")
async def export_payroll_period(
    period_id: str,
    kind: str = Query(default="book"),
    fmt: str = Query(default="csv", alias="format"),
) -> FileResponse:
    period = get_payroll_service().get_period(period_id)
    if period is None:
        raise HTTPException(status_code=404, detail="payroll period not found")
    if fmt not in {"csv", "xlsx"}:
        raise HTTPException(status_code=400, detail="format must be csv or xlsx")

    folder = ensure_export_dir(period.company_id)
    if kind == "bank":
        if fmt != "csv":
            raise HTTPException(status_code=400, detail="bank export is only available as csv")
        path = export_bank_payroll(folder / f"banco_{period.year_month}.csv", period)
    elif kind == "book":
        path = export_payroll_book(folder / f"libro_{period.year_month}.{fmt}", period)
    else:
        raise HTTPException(status_code=400, detail="kind must be book or bank")
    return FileResponse(path, filename=path.name)
