"""Data access layer for record collections and users"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Type

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from finboard.domain.exceptions import PersistenceError, ValidationError
from finboard.domain.models import CollectionKind, TransactionType
from finboard.infrastructure.database.models import (
    Base,
    BillRecord,
    SavingsGoalRecord,
    TransactionRecord,
    UserAccount,
)
from finboard.infrastructure.observability.metrics import persistence_failures_counter

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(db: Session, collection: str) -> Iterator[None]:
    """Roll back and re-raise storage failures as PersistenceError"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        persistence_failures_counter.labels(collection=collection).inc()
        logger.error(f"Storage failure on {collection}: {e}", extra={"collection": collection})
        raise PersistenceError(f"Storage failure on {collection}") from e


class RecordRepository:
    """Base repository for a user-owned record collection"""

    model: Type[Base]
    kind: CollectionKind
    date_column: str

    def __init__(self, db: Session):
        self.db = db

    @property
    def collection(self) -> str:
        return self.kind.value

    def column(self, attribute: str):
        return getattr(self.model, attribute)

    def add(self, user_id: str, values: Dict[str, Any]):
        """Insert a record and commit; returns the stored row"""
        with storage_guard(self.db, self.collection):
            row = self.model(user_id=user_id, **values)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

    def get(self, record_id: uuid.UUID):
        """Fetch a record by id regardless of owner"""
        with storage_guard(self.db, self.collection):
            return self.db.get(self.model, record_id)

    def list_for_user(
        self,
        user_id: str,
        order_by: str = "created_at",
        descending: bool = True,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
        **filters: Any,
    ) -> List[Any]:
        """Fetch the user's records, narrowed by an inclusive date range and equality filters"""
        query = self.db.query(self.model).filter(self.model.user_id == user_id)

        date_col = self.column(self.date_column)
        if start is not None:
            query = query.filter(date_col >= start)
        if end is not None:
            query = query.filter(date_col <= end)
        for attribute, value in filters.items():
            if value is not None:
                query = query.filter(self.column(attribute) == value)

        col = self.column(order_by)
        # id breaks ties between equal timestamps
        query = query.order_by(col.desc() if descending else col.asc(), self.model.id)
        if limit is not None:
            query = query.limit(limit)

        with storage_guard(self.db, self.collection):
            return query.all()

    def save(self, row, changes: Dict[str, Any]):
        """Apply changes to a loaded row and commit (last write wins)"""
        with storage_guard(self.db, self.collection):
            for attribute, value in changes.items():
                setattr(row, attribute, value)
            self.db.commit()
            self.db.refresh(row)
            return row

    def remove(self, row) -> None:
        with storage_guard(self.db, self.collection):
            self.db.delete(row)
            self.db.commit()


class TransactionRepository(RecordRepository):
    """Repository for income/expense transactions"""

    model = TransactionRecord
    kind = CollectionKind.TRANSACTIONS
    date_column = "date"

    def totals_by_type(self, user_id: str) -> Dict[str, Dict[str, float]]:
        """Sum and count of amounts per transaction type for a user"""
        query = (
            self.db.query(
                TransactionRecord.type,
                func.coalesce(func.sum(TransactionRecord.amount), 0.0),
                func.count(TransactionRecord.id),
            )
            .filter(TransactionRecord.user_id == user_id)
            .group_by(TransactionRecord.type)
        )
        with storage_guard(self.db, self.collection):
            rows = query.all()
        totals = {t.value: {"total": 0.0, "count": 0} for t in TransactionType}
        for type_, total, count in rows:
            totals[type_] = {"total": float(total), "count": int(count)}
        return totals


class SavingsRepository(RecordRepository):
    """Repository for savings goals"""

    model = SavingsGoalRecord
    kind = CollectionKind.SAVINGS
    date_column = "created_at"

    def increment(self, row: SavingsGoalRecord, amount: float) -> SavingsGoalRecord:
        """
        Add amount to currentAmount in a single UPDATE and return the refreshed row.

        The change is flushed but not committed so the caller can check the
        result before committing or rolling back.
        """
        with storage_guard(self.db, self.collection):
            row.current_amount = SavingsGoalRecord.current_amount + amount
            self.db.flush()
            self.db.refresh(row)
            return row

    def commit(self) -> None:
        with storage_guard(self.db, self.collection):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class BillRepository(RecordRepository):
    """Repository for bills"""

    model = BillRecord
    kind = CollectionKind.BILLS
    date_column = "due_date"


REPOSITORIES: Dict[CollectionKind, Type[RecordRepository]] = {
    CollectionKind.TRANSACTIONS: TransactionRepository,
    CollectionKind.SAVINGS: SavingsRepository,
    CollectionKind.BILLS: BillRepository,
}


def repository_for(kind: CollectionKind, db: Session) -> RecordRepository:
    return REPOSITORIES[kind](db)


class UserRepository:
    """Repository for user accounts"""

    collection = "users"

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: uuid.UUID) -> Optional[UserAccount]:
        with storage_guard(self.db, self.collection):
            return self.db.get(UserAccount, user_id)

    def update_user(self, user: UserAccount, changes: Dict[str, Any]) -> UserAccount:
        """Apply profile or role changes; a taken email is a ValidationError"""
        with storage_guard(self.db, self.collection):
            for attribute, value in changes.items():
                setattr(user, attribute, value)
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise ValidationError.for_field("email", "Email is already in use") from e
            self.db.refresh(user)
            return user

    def list_users(self) -> List[Dict[str, Any]]:
        """All users newest first, loaded without the password column"""
        query = self.db.query(
            UserAccount.id,
            UserAccount.name,
            UserAccount.email,
            UserAccount.role,
            UserAccount.created_at,
            UserAccount.updated_at,
        ).order_by(UserAccount.created_at.desc(), UserAccount.id)
        with storage_guard(self.db, self.collection):
            return [row._asdict() for row in query.all()]

    def delete_user_and_records(self, user: UserAccount) -> Dict[str, int]:
        """Delete every record the user owns, then the user, in one commit"""
        owner = str(user.id)
        deleted = {}
        with storage_guard(self.db, self.collection):
            for kind, repo_cls in REPOSITORIES.items():
                deleted[kind.value] = (
                    self.db.query(repo_cls.model)
                    .filter(repo_cls.model.user_id == owner)
                    .delete(synchronize_session=False)
                )
            self.db.delete(user)
            self.db.commit()
        return deleted
