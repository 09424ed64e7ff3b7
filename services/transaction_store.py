"""
Read-only transaction store used by the advice pipeline.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

import models


@dataclass(frozen=True)
class TransactionRecord:
    """A transaction as seen by the pipeline."""
    owner_id: str
    name: str
    amount: float
    kind: str
    occurred_at: datetime
    category: Optional[str] = None


class SqlTransactionStore:
    """Queries the transaction table through a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, owner_id: str, start: datetime, end: datetime) -> List[TransactionRecord]:
        """Return the owner's transactions with start <= date <= end, oldest first."""
        rows: List[models.Transaction] = (
            self.db.query(models.Transaction)
            .filter(
                models.Transaction.email == owner_id,
                models.Transaction.date >= start,
                models.Transaction.date <= end,
            )
            .order_by(models.Transaction.date.asc())
            .all()
        )
        return [
            TransactionRecord(
                owner_id=row.email,
                name=row.name,
                amount=row.amount,
                kind=row.type,
                occurred_at=row.date,
                category=row.category,
            )
            for row in rows
        ]
