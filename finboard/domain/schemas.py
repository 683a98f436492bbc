"""Record schemas - the single source of field names, types and defaults.

Wire names are camelCase (``targetAmount``); attribute names are the
snake_case column names used by the ORM layer (``target_amount``). Every
create goes through ``validate_record`` and every update through
``validate_patch``; both raise the domain ``ValidationError`` with one entry
per offending field.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from finboard.domain.exceptions import ValidationError
from finboard.domain.models import CollectionKind, TransactionType, UserRole, ValidationPolicy

# Fields a caller may never set directly
READ_ONLY_FIELDS = ("id", "userId", "createdAt", "updatedAt")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_datetime(value: Any) -> Any:
    """Accept plain dates / date strings and express every datetime in UTC (naive = UTC)"""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


class RecordFields(BaseModel):
    """Base for validated candidate records"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )


class TransactionFields(RecordFields):
    amount: float
    description: str = Field(..., min_length=1)
    type: TransactionType
    category: str = Field(..., min_length=1)
    date: datetime = Field(default_factory=utcnow)

    @field_validator("date", mode="before")
    @classmethod
    def normalise_date(cls, value: Any) -> Any:
        return normalize_datetime(value)


class SavingsGoalFields(RecordFields):
    name: str = Field(..., min_length=1)
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(0.0, ge=0)


class BillFields(RecordFields):
    name: str = Field(..., min_length=1)
    due_date: datetime
    amount: float = Field(..., gt=0)
    is_recurring: bool = True

    @field_validator("due_date", mode="before")
    @classmethod
    def normalise_due_date(cls, value: Any) -> Any:
        return normalize_datetime(value)


class RecordPatch(BaseModel):
    """Base for partial updates: every field optional, unknown fields rejected"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )


class TransactionPatch(RecordPatch):
    amount: Optional[float] = None
    description: Optional[str] = Field(None, min_length=1)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(None, min_length=1)
    date: Optional[datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalise_date(cls, value: Any) -> Any:
        return normalize_datetime(value)


class SavingsGoalPatch(RecordPatch):
    name: Optional[str] = Field(None, min_length=1)
    target_amount: Optional[float] = Field(None, gt=0)
    current_amount: Optional[float] = Field(None, ge=0)


class BillPatch(RecordPatch):
    name: Optional[str] = Field(None, min_length=1)
    due_date: Optional[datetime] = None
    amount: Optional[float] = Field(None, gt=0)
    is_recurring: Optional[bool] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def normalise_due_date(cls, value: Any) -> Any:
        return normalize_datetime(value)


RECORD_SCHEMAS: Dict[CollectionKind, Type[RecordFields]] = {
    CollectionKind.TRANSACTIONS: TransactionFields,
    CollectionKind.SAVINGS: SavingsGoalFields,
    CollectionKind.BILLS: BillFields,
}

PATCH_SCHEMAS: Dict[CollectionKind, Type[RecordPatch]] = {
    CollectionKind.TRANSACTIONS: TransactionPatch,
    CollectionKind.SAVINGS: SavingsGoalPatch,
    CollectionKind.BILLS: BillPatch,
}


def _field_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors to [{"field": "targetAmount", "message": ...}]"""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        errors.append({"field": field, "message": err["msg"]})
    return errors


def _require_mapping(fields: Any) -> Mapping[str, Any]:
    if not isinstance(fields, Mapping):
        raise ValidationError.for_field("body", "Expected a JSON object")
    return fields


def check_invariants(kind: CollectionKind, values: Mapping[str, Any], policy: ValidationPolicy) -> None:
    """
    Enforce the optional cross-field invariants on a complete set of values.

    Args:
        kind: Collection the values belong to
        values: Attribute-name keyed values of the whole record (after any patch)
        policy: Which invariants are switched on

    Raises:
        ValidationError: If an enabled invariant does not hold
    """
    if kind is CollectionKind.TRANSACTIONS and policy.enforce_transaction_sign:
        if values["amount"] <= 0:
            raise ValidationError.for_field(
                "amount", "Amount must be positive; the transaction type marks income or expense"
            )

    if kind is CollectionKind.SAVINGS and policy.cap_savings_at_target:
        if values["current_amount"] > values["target_amount"]:
            raise ValidationError.for_field("currentAmount", "Current amount cannot exceed target amount")


def validate_record(
    kind: CollectionKind,
    fields: Any,
    policy: Optional[ValidationPolicy] = None,
) -> RecordFields:
    """
    Validate a candidate record and apply defaults for omitted optional fields.

    Returns:
        Typed record fields (TransactionFields, SavingsGoalFields or BillFields)

    Raises:
        ValidationError: Missing required fields, type mismatches, or a broken invariant
    """
    fields = _require_mapping(fields)
    schema = RECORD_SCHEMAS[kind]
    try:
        record = schema.model_validate(dict(fields))
    except PydanticValidationError as e:
        raise ValidationError(_field_errors(e)) from e

    check_invariants(kind, record.model_dump(), policy or ValidationPolicy())
    return record


def _partial_changes(schema: Type[BaseModel], patch: Any, read_only_fields: Tuple[str, ...]) -> Dict[str, Any]:
    patch = _require_mapping(patch)

    read_only = [name for name in read_only_fields if name in patch]
    if read_only:
        raise ValidationError([{"field": name, "message": "Field is read-only"} for name in read_only])
    if not patch:
        raise ValidationError.for_field("body", "At least one field must be provided")

    try:
        validated = schema.model_validate(dict(patch))
    except PydanticValidationError as e:
        raise ValidationError(_field_errors(e)) from e

    changes = validated.model_dump(exclude_unset=True)
    nulls = [name for name, value in changes.items() if value is None]
    if nulls:
        raise ValidationError(
            [{"field": schema.model_fields[name].alias or name, "message": "Field may not be null"} for name in nulls]
        )
    return changes


def validate_patch(kind: CollectionKind, patch: Any) -> Dict[str, Any]:
    """
    Validate a partial update.

    Returns:
        Attribute-name keyed dict holding only the fields the caller supplied
    """
    return _partial_changes(PATCH_SCHEMAS[kind], patch, READ_ONLY_FIELDS)


class ContributionFields(RecordFields):
    """Amount added to (or, when negative, taken from) a savings goal"""

    amount: float


def validate_contribution(payload: Any) -> float:
    payload = _require_mapping(payload)
    try:
        contribution = ContributionFields.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise ValidationError(_field_errors(e)) from e
    if contribution.amount == 0:
        raise ValidationError.for_field("amount", "Amount must be non-zero")
    return contribution.amount


# Credentials are owned by the session service and never edited here
USER_READ_ONLY_FIELDS = ("id", "password", "createdAt", "updatedAt")


class UserPatch(RecordPatch):
    """Admin edit of a user's profile or role"""

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    role: Optional[UserRole] = None


def validate_user_patch(patch: Any) -> Dict[str, Any]:
    changes = _partial_changes(UserPatch, patch, USER_READ_ONLY_FIELDS)
    if "role" in changes:
        changes["role"] = changes["role"].value
    return changes
