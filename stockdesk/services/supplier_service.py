from sqlalchemy import or_
from sqlalchemy.orm import Session

from stockdesk.core import messages
from stockdesk.core.errors import ConflictError
from stockdesk.models.supplier import Supplier
from stockdesk.repositories.base import Page, contains_pattern
from stockdesk.repositories.suppliers import SupplierRepository
from stockdesk.schemas.supplier import SupplierCreate, SupplierUpdate

MIN_SEARCH_TERM_LENGTH = 2


def _normalized(values: dict) -> dict:
    if values.get("email"):
        values["email"] = str(values["email"]).lower()
    return values


def create_supplier(db: Session, *, payload: SupplierCreate, actor_id: str) -> Supplier:
    repo = SupplierRepository(db)
    if repo.name_taken(payload.name):
        raise ConflictError(messages.SUPPLIER_NAME_EXISTS)
    if payload.email and repo.email_taken(payload.email):
        raise ConflictError(messages.SUPPLIER_EMAIL_EXISTS)
    return repo.create(actor_id=actor_id, **_normalized(payload.model_dump()))


def list_suppliers(
    db: Session,
    *,
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    is_active: bool | None = None,
    with_deleted: bool = False,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> Page[Supplier]:
    criteria = []
    if name:
        criteria.append(Supplier.name.ilike(contains_pattern(name), escape="\\"))
    if email:
        criteria.append(Supplier.email.ilike(contains_pattern(email), escape="\\"))
    if phone:
        criteria.append(Supplier.phone.ilike(contains_pattern(phone), escape="\\"))
    if is_active is not None:
        criteria.append(Supplier.is_active.is_(is_active))

    repo = SupplierRepository(db)
    return repo.paginate(
        repo.query(*criteria, with_deleted=with_deleted),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def list_active_suppliers(db: Session) -> list[Supplier]:
    return SupplierRepository(db).find_all(Supplier.is_active.is_(True), order_by=[Supplier.name.asc()])


def search_suppliers(db: Session, *, q: str, limit: int) -> list[Supplier]:
    term = q.strip()
    if len(term) < MIN_SEARCH_TERM_LENGTH:
        return []
    pattern = contains_pattern(term)
    return SupplierRepository(db).find_all(
        or_(
            Supplier.name.ilike(pattern, escape="\\"),
            Supplier.contact_person.ilike(pattern, escape="\\"),
            Supplier.email.ilike(pattern, escape="\\"),
        ),
        order_by=[Supplier.name.asc()],
        limit=limit,
    )


def get_supplier(db: Session, *, supplier_id: str, with_deleted: bool = False) -> Supplier:
    return SupplierRepository(db).get_or_404(supplier_id, with_deleted=with_deleted)


def update_supplier(db: Session, *, supplier_id: str, payload: SupplierUpdate, actor_id: str) -> Supplier:
    repo = SupplierRepository(db)
    supplier = repo.get_or_404(supplier_id)
    changes = _normalized(payload.model_dump(exclude_unset=True))
    if "name" in changes and repo.name_taken(changes["name"], exclude_id=supplier.id):
        raise ConflictError(messages.SUPPLIER_NAME_EXISTS)
    if changes.get("email") and repo.email_taken(changes["email"], exclude_id=supplier.id):
        raise ConflictError(messages.SUPPLIER_EMAIL_EXISTS)
    return repo.update(supplier, changes, actor_id=actor_id)


def soft_delete_supplier(db: Session, *, supplier_id: str, actor_id: str) -> Supplier:
    repo = SupplierRepository(db)
    return repo.soft_delete(repo.get_or_404(supplier_id), actor_id=actor_id)


def restore_supplier(db: Session, *, supplier_id: str, actor_id: str) -> Supplier:
    repo = SupplierRepository(db)
    return repo.restore(repo.get_or_404(supplier_id, with_deleted=True), actor_id=actor_id)


def supplier_stats(db: Session) -> dict[str, int]:
    repo = SupplierRepository(db)
    total = repo.count(with_deleted=True)
    active = repo.count(Supplier.is_active.is_(True))
    inactive = repo.count(Supplier.is_active.is_(False))
    return {
        "total": total,
        "active": active,
        "inactive": inactive,
        "deleted": repo.count(Supplier.deleted_at.isnot(None), with_deleted=True),
    }
