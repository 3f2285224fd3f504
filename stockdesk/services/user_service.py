from sqlalchemy import and_
from sqlalchemy.orm import Session

from stockdesk.core import messages
from stockdesk.core.errors import ConflictError
from stockdesk.core.id_utils import generate_shortuuid
from stockdesk.models.user import User, UserRole
from stockdesk.repositories.base import Page, contains_pattern
from stockdesk.repositories.users import UserRepository, UserRoleRepository
from stockdesk.schemas.user import UserCreate, UserUpdate


def create_user(db: Session, *, payload: UserCreate, actor_id: str) -> tuple[User, UserRole]:
    repo = UserRepository(db)
    if repo.email_taken(payload.email):
        raise ConflictError(messages.USER_EMAIL_EXISTS)
    user_id = payload.id or generate_shortuuid()
    if repo.get(user_id, with_deleted=True) is not None:
        raise ConflictError("User id already exists")

    user = repo.create(
        actor_id=actor_id,
        id=user_id,
        email=str(payload.email).lower(),
        is_email_verified=payload.isEmailVerified,
    )
    assignment = UserRoleRepository(db).create(
        actor_id=actor_id,
        user_id=user.id,
        role=payload.role,
        permissions=payload.permissions,
        is_active=True,
        assigned_by=actor_id,
    )
    return user, assignment


def list_users(
    db: Session,
    *,
    role: str | None = None,
    email: str | None = None,
    is_email_verified: bool | None = None,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> Page[User]:
    repo = UserRepository(db)
    stmt = repo.query().outerjoin(
        UserRole, and_(UserRole.user_id == User.id, UserRole.deleted_at.is_(None))
    )
    if role:
        stmt = stmt.where(UserRole.role == role)
    if email:
        stmt = stmt.where(User.email.ilike(contains_pattern(email), escape="\\"))
    if is_email_verified is not None:
        stmt = stmt.where(User.is_email_verified.is_(is_email_verified))
    return repo.paginate(stmt, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def get_user(db: Session, *, user_id: str) -> User:
    return UserRepository(db).get_or_404(user_id)


def list_users_by_role(db: Session, *, role: str) -> list[User]:
    stmt = (
        UserRepository(db)
        .query()
        .join(UserRole, and_(UserRole.user_id == User.id, UserRole.deleted_at.is_(None)))
        .where(UserRole.role == role)
        .order_by(User.email.asc())
    )
    return list(db.execute(stmt).scalars().all())


def update_user(db: Session, *, user_id: str, payload: UserUpdate, actor_id: str) -> tuple[User, UserRole]:
    repo = UserRepository(db)
    role_repo = UserRoleRepository(db)
    user = repo.get_or_404(user_id)
    changes = payload.model_dump(exclude_unset=True)

    user_changes = {}
    if "email" in changes:
        email = str(changes["email"]).lower()
        if repo.email_taken(email, exclude_id=user.id):
            raise ConflictError(messages.USER_EMAIL_EXISTS)
        user_changes["email"] = email
    if "isEmailVerified" in changes:
        user_changes["is_email_verified"] = changes["isEmailVerified"]
    user = repo.update(user, user_changes, actor_id=actor_id)

    role_changes = {}
    if "role" in changes:
        role_changes["role"] = changes["role"]
        role_changes["assigned_by"] = actor_id
    if "permissions" in changes:
        role_changes["permissions"] = changes["permissions"] or []
    if "isRoleActive" in changes:
        role_changes["is_active"] = changes["isRoleActive"]

    assignment = role_repo.for_user(user.id, with_deleted=True)
    if assignment is not None and assignment.deleted_at is not None:
        assignment = role_repo.restore(assignment, actor_id=actor_id)
    if assignment is None:
        role_changes.setdefault("role", "STAFF")
        role_changes.setdefault("assigned_by", actor_id)
        assignment = role_repo.create(actor_id=actor_id, user_id=user.id, **role_changes)
    elif role_changes:
        assignment = role_repo.update(assignment, role_changes, actor_id=actor_id)
    return user, assignment


def soft_delete_user(db: Session, *, user_id: str, actor_id: str) -> User:
    repo = UserRepository(db)
    role_repo = UserRoleRepository(db)
    user = repo.get_or_404(user_id)
    assignment = role_repo.for_user(user.id)
    if assignment is not None:
        role_repo.soft_delete(assignment, actor_id=actor_id)
    return repo.soft_delete(user, actor_id=actor_id)


def role_map(db: Session, users: list[User]) -> dict[str, UserRole]:
    user_ids = {u.id for u in users}
    if not user_ids:
        return {}
    assignments = UserRoleRepository(db).find_all(UserRole.user_id.in_(user_ids))
    return {a.user_id: a for a in assignments}


def user_view(user: User, assignment: UserRole | None) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "isEmailVerified": user.is_email_verified,
        "role": assignment.role if assignment else None,
        "permissions": list(assignment.permissions or []) if assignment else [],
        "isRoleActive": bool(assignment.is_active) if assignment else False,
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
        "deletedAt": user.deleted_at,
    }
