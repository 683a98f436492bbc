"""Pydantic schemas for API responses (camelCase on the wire)"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RecordResponse(ApiModel):
    """Fields shared by every stored record"""

    id: uuid.UUID
    user_id: str
    created_at: datetime
    updated_at: datetime


class TransactionResponse(RecordResponse):
    amount: float
    description: str
    type: str
    category: str
    date: datetime


class SavingsGoalResponse(RecordResponse):
    name: str
    target_amount: float
    current_amount: float


class BillResponse(RecordResponse):
    name: str
    due_date: datetime
    amount: float
    is_recurring: bool


class DeleteResponse(ApiModel):
    message: str
    id: str


class TransactionSummaryResponse(ApiModel):
    """Response for GET /v1/transactions/summary"""

    total_income: float
    total_expenses: float
    balance: float
    count: int


class UserSummary(ApiModel):
    """User as exposed to admins; carries no password field"""

    id: uuid.UUID
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UsersResponse(BaseModel):
    """Response for GET /v1/admin/users"""

    users: List[UserSummary]


class UserDeletedResponse(ApiModel):
    message: str
    deleted: Dict[str, int]


class UserUpdatedResponse(ApiModel):
    message: str
    user: UserSummary
