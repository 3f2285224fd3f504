from sqlalchemy import func

from stockdesk.core import messages
from stockdesk.models.user import User, UserRole
from stockdesk.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
    not_found_message = messages.USER_NOT_FOUND
    sortable_fields = {"email": "email", "createdAt": "created_at", "created_at": "created_at"}
    default_sort = "createdAt"

    def sort_column(self, sort_by: str | None):
        if sort_by == "role":
            return UserRole.role
        return super().sort_column(sort_by)

    def email_taken(self, email: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(func.lower(User.email) == email.strip().lower(), exclude_id=exclude_id)


class UserRoleRepository(BaseRepository[UserRole]):
    model = UserRole

    def for_user(self, user_id: str, *, with_deleted: bool = False) -> UserRole | None:
        return self.find_one(UserRole.user_id == user_id, with_deleted=with_deleted)
