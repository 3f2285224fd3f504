import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from stockdesk.core import messages
from stockdesk.core.errors import BusinessRuleError, ConflictError
from stockdesk.core.observability import log_event
from stockdesk.models.category import Category
from stockdesk.models.product import Product
from stockdesk.repositories.base import Page, contains_pattern
from stockdesk.repositories.categories import CategoryRepository
from stockdesk.repositories.products import ProductRepository
from stockdesk.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger("stockdesk.catalog")


def create_category(db: Session, *, payload: CategoryCreate, actor_id: str) -> Category:
    repo = CategoryRepository(db)
    if repo.name_taken(payload.name):
        raise ConflictError(messages.CATEGORY_NAME_EXISTS)
    return repo.create(actor_id=actor_id, **payload.model_dump())


def list_categories(
    db: Session,
    *,
    name: str | None = None,
    is_active: bool | None = None,
    with_deleted: bool = False,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> Page[Category]:
    repo = CategoryRepository(db)
    criteria = []
    if name:
        criteria.append(Category.name.ilike(contains_pattern(name), escape="\\"))
    if is_active is not None:
        criteria.append(Category.is_active.is_(is_active))
    return repo.paginate(
        repo.query(*criteria, with_deleted=with_deleted),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def list_active_categories(db: Session) -> list[Category]:
    return CategoryRepository(db).find_all(Category.is_active.is_(True), order_by=[Category.name.asc()])


def search_categories(db: Session, *, q: str, limit: int) -> list[Category]:
    term = q.strip()
    if not term:
        return []
    return CategoryRepository(db).find_all(
        Category.is_active.is_(True),
        Category.name.ilike(contains_pattern(term), escape="\\"),
        order_by=[Category.name.asc()],
        limit=limit,
    )


def get_category(db: Session, *, category_id: str, with_deleted: bool = False) -> Category:
    return CategoryRepository(db).get_or_404(category_id, with_deleted=with_deleted)


def update_category(db: Session, *, category_id: str, payload: CategoryUpdate, actor_id: str) -> Category:
    repo = CategoryRepository(db)
    category = repo.get_or_404(category_id)
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and repo.name_taken(changes["name"], exclude_id=category.id):
        raise ConflictError(messages.CATEGORY_NAME_EXISTS)
    return repo.update(category, changes, actor_id=actor_id)


def soft_delete_category(db: Session, *, category_id: str, actor_id: str) -> Category:
    repo = CategoryRepository(db)
    category = repo.get_or_404(category_id)
    if ProductRepository(db).count(Product.category_id == category.id):
        raise BusinessRuleError(messages.CATEGORY_IN_USE)
    return repo.soft_delete(category, actor_id=actor_id)


def restore_category(db: Session, *, category_id: str, actor_id: str) -> Category:
    repo = CategoryRepository(db)
    category = repo.get_or_404(category_id, with_deleted=True)
    return repo.restore(category, actor_id=actor_id)


def purge_category(db: Session, *, category_id: str, actor_id: str) -> None:
    repo = CategoryRepository(db)
    category = repo.get_or_404(category_id, with_deleted=True)
    # Mirrors ON DELETE SET NULL for backends that do not enforce foreign keys.
    detached = db.execute(
        update(Product)
        .where(Product.category_id == category.id)
        .values(category_id=None, updated_by=actor_id, updated_at=func.now())
    ).rowcount
    repo.hard_delete(category)
    log_event(
        logger,
        "category.purged",
        category_id=category_id,
        actor_id=actor_id,
        detached_products=detached,
    )


def count_categories(db: Session, *, with_deleted: bool = False) -> int:
    return CategoryRepository(db).count(with_deleted=with_deleted)
