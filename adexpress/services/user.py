import os
from contextvars import ContextVar
from typing import Optional, Protocol

from sqlalchemy import select

from adexpress.database import get_session
from adexpress.models.user import User
from adexpress.utils.enums import UserRole
from adexpress.utils.log import setup_logging

logger = setup_logging()

_current_user: ContextVar[Optional[str]] = ContextVar("current_user", default=None)


class AuthFacade(Protocol):
    def current_user_id(self) -> Optional[str]: ...

    async def is_admin(self, user_id: Optional[str]) -> bool: ...


def _configured_admins() -> set[str]:
    return {value.strip() for value in (os.getenv("ADMIN_ID") or "").split(",") if value.strip()}


class UserService:
    """
    User services. Also the auth facade of the engine: the caller identity lives in a
    context variable so concurrent tasks each see their own user.
    """

    def __init__(self, session_factory=None, admin_ids: Optional[set[str]] = None):
        self._session = session_factory or get_session
        self._admin_ids = admin_ids if admin_ids is not None else _configured_admins()

    @staticmethod
    def set_current_user(user_id: Optional[str]):
        """
        Bind the caller for the current task.

        :param user_id: Id of the signed-in user, None to sign out.
        :return: Token for ``reset_current_user``.
        """
        return _current_user.set(user_id)

    @staticmethod
    def reset_current_user(token) -> None:
        _current_user.reset(token)

    def current_user_id(self) -> Optional[str]:
        return _current_user.get()

    async def is_admin(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        if user_id in self._admin_ids:
            return True

        async with self._session() as session:
            role = (await session.execute(
                select(User.role).where(User.id == user_id)
            )).scalar_one_or_none()
        return role == UserRole.ADMIN.value

    async def get_or_create_user(
            self,
            user_id: str,
            phone_number: Optional[str] = None,
            display_name: Optional[str] = None
    ) -> User:
        async with self._session() as session:
            user = await session.get(User, user_id)
            if not user:
                user = User(
                    id=user_id,
                    phone_number=phone_number,
                    display_name=display_name,
                    role=UserRole.USER.value
                )
                session.add(user)
                await session.commit()
                logger.info(f"Created user {user_id}.")
        return user

    async def set_role(self, user_id: str, role: UserRole) -> User:
        async with self._session() as session:
            user = await session.get(User, user_id)
            if not user:
                user = User(id=user_id, role=role.value)
                session.add(user)
            else:
                user.role = role.value
            await session.commit()
        logger.info(f"User {user_id} is now {role.value}.")
        return user
