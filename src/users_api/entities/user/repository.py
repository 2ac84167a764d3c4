"""Data-access layer for users."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from src.users_api.core.errors import UserStoreError

from .entity import User, UserCreate
from .table import UserTable


class UserRepository:
    """Parameterized reads and writes against the ``users`` table.

    Each write is committed on its own; no transaction spans more than one
    statement.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @contextmanager
    def _statement(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.exception("User store failed to {}", action)
            raise UserStoreError(str(e)) from e

    def list_all(self) -> list[User]:
        with self._statement("list users"):
            rows = self._session.exec(select(UserTable).order_by(UserTable.id)).all()
        return [User.model_validate(row, from_attributes=True) for row in rows]

    def get(self, user_id: int) -> User | None:
        with self._statement("load user"):
            row = self._session.exec(
                select(UserTable).where(UserTable.id == user_id)
            ).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def create(self, user: UserCreate) -> User:
        row = UserTable.model_validate(user.model_dump())
        with self._statement("insert user"):
            self._session.add(row)
            self._session.commit()
            self._session.refresh(row)
        logger.debug("Inserted user {}", row.id)
        return User.model_validate(row, from_attributes=True)

    def update(self, user: User) -> bool:
        """Overwrite every mutable column of ``user.id``.

        Returns False when no row matched.
        """
        statement = (
            update(UserTable)
            .where(UserTable.id == user.id)
            .values(**user.mutable_fields())
        )
        with self._statement("update user"):
            result = self._session.exec(statement)
            self._session.commit()
        return result.rowcount > 0

    def delete(self, user_id: int) -> bool:
        statement = delete(UserTable).where(UserTable.id == user_id)
        with self._statement("delete user"):
            result = self._session.exec(statement)
            self._session.commit()
        return result.rowcount > 0
