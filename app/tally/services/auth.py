from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.security import create_user_access_token, verify_password
from app.tally.repos.users import UserRepository


class AuthService:
    def __init__(self, db):
        self.repo = UserRepository(db)

    def login(self, identifier: str, password: str):
        user = self.repo.get_by_username_or_email(identifier)
        if user is None or not verify_password(password, user.hashed_password):
            raise AppError(ErrorCatalog.INVALID_CREDENTIALS)
        self._ensure_user_active(user)
        return user, create_user_access_token(user)

    @staticmethod
    def _ensure_user_active(user) -> None:
        if not user.is_active or user.status != "active":
            raise AppError(ErrorCatalog.USER_INACTIVE)
