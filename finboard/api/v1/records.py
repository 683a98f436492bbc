"""CRUD endpoints for /v1/transactions, /v1/savings and /v1/bills"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type

from fastapi import APIRouter, Body, Depends, Query

from finboard.api.dependencies import get_principal, get_record_service
from finboard.api.v1.schemas import (
    BillResponse,
    DeleteResponse,
    RecordResponse,
    SavingsGoalResponse,
    TransactionResponse,
)
from finboard.domain.models import CollectionKind, Principal, RecordFilter, TransactionType
from finboard.services.records import RecordService

START = Query(None, description="Inclusive lower bound on the collection's date field")
END = Query(None, description="Inclusive upper bound on the collection's date field")
SORT = Query("-createdAt", description="Sort field, '-' prefix for descending")
LIMIT = Query(None, ge=1, description="Maximum number of records")


def transaction_filter(
    start: Optional[datetime] = START,
    end: Optional[datetime] = END,
    category: Optional[str] = Query(None),
    type_: Optional[TransactionType] = Query(None, alias="type"),
    sort: str = SORT,
    limit: Optional[int] = LIMIT,
) -> RecordFilter:
    return RecordFilter(start=start, end=end, category=category, type=type_, sort=sort, limit=limit)


def savings_filter(
    start: Optional[datetime] = START,
    end: Optional[datetime] = END,
    sort: str = SORT,
    limit: Optional[int] = LIMIT,
) -> RecordFilter:
    return RecordFilter(start=start, end=end, sort=sort, limit=limit)


def bill_filter(
    start: Optional[datetime] = START,
    end: Optional[datetime] = END,
    days: Optional[int] = Query(None, ge=0, description="Only bills due within the next N days"),
    sort: str = SORT,
    limit: Optional[int] = LIMIT,
) -> RecordFilter:
    return RecordFilter(start=start, end=end, upcoming_days=days, sort=sort, limit=limit)


def build_router(
    kind: CollectionKind,
    response_model: Type[RecordResponse],
    filter_dependency: Callable[..., RecordFilter],
) -> APIRouter:
    """Create the five record routes for one collection"""
    router = APIRouter()
    path = f"/{kind.value}"

    @router.post(path, response_model=response_model, status_code=201)
    def create_record(
        fields: Dict[str, Any] = Body(...),
        principal: Principal = Depends(get_principal),
        service: RecordService = Depends(get_record_service),
    ):
        """Create a record owned by the caller; omitted optional fields get defaults"""
        row = service.create_record(principal.user_id, kind, fields)
        return response_model.model_validate(row)

    @router.get(path, response_model=List[response_model])
    def list_records(
        record_filter: RecordFilter = Depends(filter_dependency),
        principal: Principal = Depends(get_principal),
        service: RecordService = Depends(get_record_service),
    ):
        """List the caller's records, newest first unless sort says otherwise"""
        rows = service.list_records(principal.user_id, kind, record_filter)
        return [response_model.model_validate(row) for row in rows]

    @router.get(f"{path}/{{record_id}}", response_model=response_model)
    def get_record(
        record_id: str,
        principal: Principal = Depends(get_principal),
        service: RecordService = Depends(get_record_service),
    ):
        row = service.get_record(principal.user_id, kind, record_id)
        return response_model.model_validate(row)

    @router.patch(f"{path}/{{record_id}}", response_model=response_model)
    def update_record(
        record_id: str,
        patch: Dict[str, Any] = Body(...),
        principal: Principal = Depends(get_principal),
        service: RecordService = Depends(get_record_service),
    ):
        row = service.update_record(principal.user_id, kind, record_id, patch)
        return response_model.model_validate(row)

    @router.delete(f"{path}/{{record_id}}", response_model=DeleteResponse)
    def delete_record(
        record_id: str,
        principal: Principal = Depends(get_principal),
        service: RecordService = Depends(get_record_service),
    ):
        deleted_id = service.delete_record(principal.user_id, kind, record_id)
        return DeleteResponse(message=f"{kind.label} deleted successfully", id=deleted_id)

    return router


transactions_router = build_router(CollectionKind.TRANSACTIONS, TransactionResponse, transaction_filter)
savings_router = build_router(CollectionKind.SAVINGS, SavingsGoalResponse, savings_filter)
bills_router = build_router(CollectionKind.BILLS, BillResponse, bill_filter)
