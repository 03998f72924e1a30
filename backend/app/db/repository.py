"""Generic persistence contract used by the services.

A thin layer over the SQLAlchemy session: create / get / find_where / update /
delete for one mapped entity. Nothing here commits; transaction boundaries
belong to the caller. Constraint violations surface unchanged as
``sqlalchemy.exc.IntegrityError`` so callers can tell them apart from other
failures.
"""

from __future__ import annotations

from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    def __init__(self, db: Session, model: Type[ModelT]) -> None:
        self.db = db
        self.model = model

    def create(self, record: ModelT) -> ModelT:
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, record_id: Any) -> Optional[ModelT]:
        return self.db.get(self.model, record_id)

    def find_where(
        self,
        *criteria: Any,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[ModelT]:
        stmt = select(self.model).where(*criteria)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt).all())

    def first_where(self, *criteria: Any) -> Optional[ModelT]:
        return self.db.scalars(select(self.model).where(*criteria).limit(1)).first()

    def update(self, record: ModelT) -> ModelT:
        self.db.add(record)
        self.db.flush()
        return record

    def delete(self, record: ModelT) -> None:
        self.db.delete(record)
        self.db.flush()
