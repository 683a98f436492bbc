"""User-scoped record operations: create, list, get, update, delete.

Every operation takes the caller's user id. Reads filter on it and writes
check it against the stored owner before anything is changed. There is no
version token: concurrent updates to one record resolve as last write wins.
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from finboard.domain.exceptions import AuthorizationError, NotFoundError, ValidationError
from finboard.domain.models import (
    CollectionKind,
    RecordFilter,
    TransactionSummary,
    TransactionType,
    ValidationPolicy,
)
from finboard.domain.schemas import (
    RECORD_SCHEMAS,
    check_invariants,
    normalize_datetime,
    utcnow,
    validate_contribution,
    validate_patch,
    validate_record,
)
from finboard.infrastructure.database.repositories import (
    REPOSITORIES,
    RecordRepository,
    SavingsRepository,
    TransactionRepository,
    repository_for,
)
from finboard.infrastructure.observability.logging import log_record_written
from finboard.infrastructure.observability.metrics import record_denial, record_operation

logger = logging.getLogger(__name__)

# Wire sort keys shared by every collection
_COMMON_SORT_FIELDS = {"createdAt": "created_at", "updatedAt": "updated_at"}


def parse_record_id(kind: CollectionKind, record_id: Any) -> uuid.UUID:
    """Malformed ids cannot match a stored record, so they report NotFoundError"""
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        raise NotFoundError(kind.label, str(record_id))


def parse_sort(kind: CollectionKind, sort: str) -> Tuple[str, bool]:
    """
    Translate "-createdAt" style sort keys to (column attribute, descending).

    Allowed keys are createdAt, updatedAt and the collection's date field.
    """
    descending = sort.startswith("-")
    key = sort.lstrip("-+")
    allowed = dict(_COMMON_SORT_FIELDS)
    allowed[kind.date_field] = REPOSITORIES[kind].date_column
    if key not in allowed:
        raise ValidationError.for_field("sort", f"Unsupported sort field '{key}'; use one of {sorted(allowed)}")
    return allowed[key], descending


class RecordService:
    """Per-request facade over the record repositories"""

    def __init__(
        self,
        db: Session,
        policy: Optional[ValidationPolicy] = None,
        request_id: Optional[str] = None,
        default_limit: Optional[int] = None,
    ):
        self.db = db
        self.policy = policy or ValidationPolicy()
        self.request_id = request_id
        self.default_limit = default_limit

    def _owned_row(self, user_id: str, kind: CollectionKind, record_id: Any, repo: RecordRepository):
        """Load a record and verify the caller owns it; nothing is mutated here"""
        row = repo.get(parse_record_id(kind, record_id))
        if row is None:
            raise NotFoundError(kind.label, str(record_id))
        if row.user_id != user_id:
            record_denial("not_owner")
            logger.warning(
                "Ownership check failed",
                extra={
                    "request_id": self.request_id,
                    "user_id": user_id,
                    "collection": kind.value,
                    "record_id": str(record_id),
                },
            )
            raise AuthorizationError(f"{kind.label} belongs to another user")
        return row

    def _written(self, user_id: str, kind: CollectionKind, operation: str, record_id: Any) -> None:
        record_operation(kind.value, operation)
        log_record_written(self.request_id, user_id, kind.value, operation, str(record_id))

    def create_record(self, user_id: str, kind: CollectionKind, fields: Any):
        """
        Validate and persist a new record owned by user_id.

        Returns:
            Stored row including generated id and timestamps

        Raises:
            ValidationError: Bad input
            AuthorizationError: Body names a different owning user
            PersistenceError: Storage failure
        """
        if isinstance(fields, Mapping) and fields.get("userId") not in (None, user_id):
            record_denial("not_owner")
            raise AuthorizationError("Cannot create records for another user")

        record = validate_record(kind, fields, self.policy)
        row = repository_for(kind, self.db).add(user_id, record.model_dump())
        self._written(user_id, kind, "create", row.id)
        return row

    def list_records(
        self,
        user_id: str,
        kind: CollectionKind,
        record_filter: Optional[RecordFilter] = None,
    ) -> List[Any]:
        """
        Return the caller's records, most recently created first by default.

        The result is a fully materialised list; only rows whose owner is
        user_id are ever selected.
        """
        f = record_filter or RecordFilter()

        if kind is not CollectionKind.TRANSACTIONS:
            for name in ("category", "type"):
                if getattr(f, name) is not None:
                    raise ValidationError.for_field(name, f"Filter not supported for {kind.value}")
        if kind is not CollectionKind.BILLS and f.upcoming_days is not None:
            raise ValidationError.for_field("days", f"Filter not supported for {kind.value}")
        if f.limit is not None and f.limit <= 0:
            raise ValidationError.for_field("limit", "Limit must be positive")

        start, end = normalize_datetime(f.start), normalize_datetime(f.end)
        if f.upcoming_days is not None:
            if f.upcoming_days < 0:
                raise ValidationError.for_field("days", "Days must not be negative")
            now = utcnow()
            window_end = now + timedelta(days=f.upcoming_days)
            start = max(start, now) if start else now
            end = min(end, window_end) if end else window_end
        if start and end and start > end:
            raise ValidationError.for_field("start", "Start must not be after end")

        order_by, descending = parse_sort(kind, f.sort)
        filters: Dict[str, Any] = {}
        if kind is CollectionKind.TRANSACTIONS:
            filters["category"] = f.category
            filters["type"] = f.type.value if f.type else None

        rows = repository_for(kind, self.db).list_for_user(
            user_id,
            order_by=order_by,
            descending=descending,
            start=start,
            end=end,
            limit=f.limit or self.default_limit,
            **filters,
        )
        record_operation(kind.value, "list")
        return rows

    def get_record(self, user_id: str, kind: CollectionKind, record_id: Any):
        row = self._owned_row(user_id, kind, record_id, repository_for(kind, self.db))
        record_operation(kind.value, "get")
        return row

    def update_record(self, user_id: str, kind: CollectionKind, record_id: Any, patch: Any):
        """
        Apply a partial update to a record the caller owns.

        Raises:
            NotFoundError: No record with record_id
            AuthorizationError: Record is owned by another user (checked before any change)
            ValidationError: Bad patch, or the merged record breaks an enabled invariant
        """
        repo = repository_for(kind, self.db)
        row = self._owned_row(user_id, kind, record_id, repo)
        changes = validate_patch(kind, patch)

        merged = {name: getattr(row, name) for name in RECORD_SCHEMAS[kind].model_fields}
        merged.update(changes)
        check_invariants(kind, merged, self.policy)

        row = repo.save(row, changes)
        self._written(user_id, kind, "update", row.id)
        return row

    def delete_record(self, user_id: str, kind: CollectionKind, record_id: Any) -> str:
        """Delete a record the caller owns; a second delete reports NotFoundError"""
        repo = repository_for(kind, self.db)
        row = self._owned_row(user_id, kind, record_id, repo)
        deleted_id = str(row.id)
        repo.remove(row)
        self._written(user_id, kind, "delete", deleted_id)
        return deleted_id

    def contribute(self, user_id: str, savings_id: Any, payload: Any):
        """
        Add (or, with a negative amount, withdraw) money to a savings goal.

        The increment runs as a single UPDATE so concurrent contributions are
        not lost; the result must stay non-negative and, when capping is on,
        within the target.
        """
        kind = CollectionKind.SAVINGS
        repo: SavingsRepository = repository_for(kind, self.db)
        row = self._owned_row(user_id, kind, savings_id, repo)
        amount = validate_contribution(payload)

        row = repo.increment(row, amount)
        try:
            if row.current_amount < 0:
                raise ValidationError.for_field("amount", "Contribution would make the current amount negative")
            check_invariants(kind, {"current_amount": row.current_amount, "target_amount": row.target_amount}, self.policy)
        except ValidationError:
            repo.rollback()
            raise
        repo.commit()

        self._written(user_id, kind, "contribute", row.id)
        return row

    def summarize_transactions(self, user_id: str) -> TransactionSummary:
        """Income and expense totals over all of the caller's transactions"""
        totals = TransactionRepository(self.db).totals_by_type(user_id)
        income = totals[TransactionType.INCOME.value]
        expense = totals[TransactionType.EXPENSE.value]
        record_operation(CollectionKind.TRANSACTIONS.value, "summary")
        return TransactionSummary(
            total_income=income["total"],
            total_expenses=expense["total"],
            balance=income["total"] - expense["total"],
            count=income["count"] + expense["count"],
        )
