import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from stockdesk.core.config import settings
from stockdesk.core.errors import NotFoundError
from stockdesk.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_page(page: int | None, limit: int | None, *, max_limit: int | None = None) -> tuple[int, int]:
    upper = max_limit or settings.max_page_size
    resolved_limit = settings.default_page_size if limit is None else limit
    return max(page or 1, 1), max(1, min(resolved_limit, upper))


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value.strip())}%"


@dataclass
class Page(Generic[ModelT]):
    items: Sequence[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    def meta(self) -> dict[str, int | bool]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
            "count": len(self.items),
            "has_next": self.page * self.limit < self.total,
        }


class BaseRepository(Generic[ModelT]):
    """
    Query helpers shared by every table that carries the audit columns.

    Reads skip soft-deleted rows unless ``with_deleted`` is set. Writes only
    flush; committing is left to the caller so several writes can share one
    transaction.
    """

    model: type[ModelT]
    not_found_message = "Resource not found"
    sortable_fields: dict[str, str] = {"created_at": "created_at"}
    default_sort = "created_at"

    def __init__(self, db: Session):
        self.db = db

    # Reads

    def query(self, *criteria, with_deleted: bool = False) -> Select:
        stmt = select(self.model).where(*criteria)
        if not with_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    def get(self, entity_id: str, *, with_deleted: bool = False) -> ModelT | None:
        return self.db.execute(
            self.query(self.model.id == entity_id, with_deleted=with_deleted)
        ).scalar_one_or_none()

    def get_or_404(self, entity_id: str, *, with_deleted: bool = False, message: str | None = None) -> ModelT:
        obj = self.get(entity_id, with_deleted=with_deleted)
        if obj is None:
            raise NotFoundError(message or self.not_found_message)
        return obj

    def find_one(self, *criteria, with_deleted: bool = False) -> ModelT | None:
        return self.db.execute(self.query(*criteria, with_deleted=with_deleted).limit(1)).scalars().first()

    def find_all(self, *criteria, order_by=None, limit: int | None = None, with_deleted: bool = False) -> list[ModelT]:
        stmt = self.query(*criteria, with_deleted=with_deleted)
        stmt = stmt.order_by(*(order_by if order_by is not None else [self.model.created_at.desc(), self.model.id]))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def exists(self, *criteria, exclude_id: str | None = None, with_deleted: bool = True) -> bool:
        # Unique indexes span soft-deleted rows, so uniqueness checks include them by default.
        stmt = select(self.model.id).where(*criteria)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        if not with_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return self.db.execute(stmt.limit(1)).first() is not None

    def count(self, *criteria, with_deleted: bool = False) -> int:
        stmt = select(func.count(self.model.id)).where(*criteria)
        if not with_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return int(self.db.execute(stmt).scalar_one())

    def sort_column(self, sort_by: str | None):
        attr_name = self.sortable_fields.get(sort_by or "", self.sortable_fields[self.default_sort])
        return getattr(self.model, attr_name)

    def paginate(
        self,
        stmt: Select,
        *,
        page: int | None = None,
        limit: int | None = None,
        sort_by: str | None = None,
        sort_order: str = "desc",
        max_limit: int | None = None,
    ) -> Page[ModelT]:
        page, limit = clamp_page(page, limit, max_limit=max_limit)
        total = int(
            self.db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
        )
        column = self.sort_column(sort_by)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        items = (
            self.db.execute(
                stmt.order_by(ordering, self.model.id).offset((page - 1) * limit).limit(limit)
            )
            .scalars()
            .all()
        )
        return Page(items=list(items), total=total, page=page, limit=limit)

    # Writes

    def create(self, *, actor_id: str, **values: Any) -> ModelT:
        values.setdefault("id", str(uuid.uuid4()))
        obj = self.model(created_by=actor_id, updated_by=actor_id, **values)
        self.db.add(obj)
        self.db.flush()
        return obj

    def update(self, obj: ModelT, values: dict[str, Any], *, actor_id: str) -> ModelT:
        for field, value in values.items():
            setattr(obj, field, value)
        obj.updated_by = actor_id
        obj.updated_at = utcnow()
        self.db.flush()
        return obj

    def soft_delete(self, obj: ModelT, *, actor_id: str) -> ModelT:
        obj.deleted_at = utcnow()
        obj.deleted_by = actor_id
        self.db.flush()
        return obj

    def restore(self, obj: ModelT, *, actor_id: str) -> ModelT:
        if obj.deleted_at is None:
            return obj
        obj.deleted_at = None
        obj.deleted_by = None
        obj.updated_by = actor_id
        obj.updated_at = utcnow()
        self.db.flush()
        return obj

    def hard_delete(self, obj: ModelT) -> None:
        self.db.delete(obj)
        self.db.flush()
