"""GET /v1/transactions/summary - income, expenses and balance for the caller"""

from fastapi import APIRouter, Depends

from finboard.api.dependencies import get_principal, get_record_service
from finboard.api.v1.schemas import TransactionSummaryResponse
from finboard.domain.models import Principal
from finboard.services.records import RecordService

router = APIRouter()


@router.get("/transactions/summary", response_model=TransactionSummaryResponse)
def get_transaction_summary(
    principal: Principal = Depends(get_principal),
    service: RecordService = Depends(get_record_service),
):
    """
    Totals over all of the caller's transactions.

    Returns:
        totalIncome, totalExpenses, balance (income - expenses) and count
    """
    summary = service.summarize_transactions(principal.user_id)
    return TransactionSummaryResponse(
        total_income=summary.total_income,
        total_expenses=summary.total_expenses,
        balance=summary.balance,
        count=summary.count,
    )
