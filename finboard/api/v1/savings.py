"""POST /v1/savings/{goal_id}/contributions - add money to a savings goal"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from finboard.api.dependencies import get_principal, get_record_service
from finboard.api.v1.schemas import SavingsGoalResponse
from finboard.domain.models import Principal
from finboard.services.records import RecordService

router = APIRouter()


@router.post("/savings/{goal_id}/contributions", response_model=SavingsGoalResponse)
def add_contribution(
    goal_id: str,
    payload: Dict[str, Any] = Body(..., examples=[{"amount": 50}]),
    principal: Principal = Depends(get_principal),
    service: RecordService = Depends(get_record_service),
):
    """
    Increment currentAmount by the given amount (negative withdraws).

    Returns:
        The updated savings goal
    """
    row = service.contribute(principal.user_id, goal_id, payload)
    return SavingsGoalResponse.model_validate(row)
