from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from typing import Iterator, Mapping

from flask import Flask, current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from flask_sqlalchemy import SQLAlchemy

from .errors import DuplicateUsername, NotConfigured, RosterLocked, ShuffleConflict, TransientStoreFailure
from .models import GameState, Role, User


logger = logging.getLogger(__name__)

STORE_EXTENSION_KEY = "giftexchange.store"

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "password123"


class StoreState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    READY = "ready"


def current_store() -> "StoreClient":
    return current_app.extensions[STORE_EXTENSION_KEY]


class StoreClient:
    """
    Data-access client for the roster and the shuffle flag.

    Lifecycle: UNINITIALIZED -> configure(app) -> CONFIGURED -> bootstrap() -> READY.
    Every read/write below refuses to run with NotConfigured until READY.
    Driver errors are rolled back and re-raised as TransientStoreFailure.
    """

    def __init__(
        self,
        database: SQLAlchemy,
        admin_username: str = DEFAULT_ADMIN_USERNAME,
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
    ):
        self._db = database
        self.admin_username = admin_username
        self.admin_password = admin_password
        self.state = StoreState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.state is StoreState.READY

    def configure(self, app: Flask) -> None:
        if not app.config.get("SQLALCHEMY_DATABASE_URI"):
            raise NotConfigured("No database URL configured. Set DATABASE_URL.")
        if "sqlalchemy" not in app.extensions:
            raise NotConfigured("Database extension has not been initialised for this app.")
        app.extensions[STORE_EXTENSION_KEY] = self
        self.state = StoreState.CONFIGURED

    def bootstrap(self) -> None:
        """Create tables, the shuffle flag row and the seed admin. Safe to repeat."""
        if self.state is StoreState.UNINITIALIZED:
            raise NotConfigured("The data store has no connection target.")

        with self._transaction("bootstrap") as session:
            self._db.create_all()

            if session.get(GameState, GameState.SHUFFLED_KEY) is None:
                session.add(GameState(key=GameState.SHUFFLED_KEY, value=GameState.encode(False), version=0))

            if session.scalar(select(func.count(User.id))) == 0:
                session.add(
                    User(
                        username=self.admin_username,
                        password=self.admin_password,
                        role=Role.ADMIN,
                        wishlist="",
                        assigned_to_id=None,
                    )
                )
                logger.info("Seeded administrator account %r", self.admin_username)

            session.commit()

        self.state = StoreState.READY
        logger.info("Data store ready")

    def _require_ready(self) -> None:
        if not self.is_ready:
            raise NotConfigured("The data store is not ready. Finish setup first.")

    @contextmanager
    def _transaction(self, action: str) -> Iterator:
        session = self._db.session
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Store call %s failed: %s", action, exc)
            raise TransientStoreFailure(f"Data store error during {action}.") from exc

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(self) -> list[User]:
        self._require_ready()
        with self._transaction("list_users"):
            return User.query.order_by(User.username.asc()).all()

    def list_participants(self) -> list[User]:
        self._require_ready()
        with self._transaction("list_participants"):
            return User.query.filter_by(role=Role.PARTICIPANT).order_by(User.username.asc()).all()

    def count_users(self) -> int:
        self._require_ready()
        with self._transaction("count_users") as session:
            return session.scalar(select(func.count(User.id)))

    def get_user(self, user_id: str | None) -> User | None:
        self._require_ready()
        if not user_id:
            return None
        with self._transaction("get_user") as session:
            return session.get(User, str(user_id))

    def create_user(self, username: str, password: str, role: Role = Role.PARTICIPANT) -> User:
        self._require_ready()
        with self._transaction("create_user") as session:
            if self._find_by_username(username) is not None:
                session.rollback()
                raise DuplicateUsername(username)

            if role is Role.PARTICIPANT and not self._touch_roster(session):
                session.rollback()
                raise RosterLocked("The roster is locked until the shuffle is reset.")

            user = User(username=username, password=password, role=role, wishlist="", assigned_to_id=None)
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateUsername(username) from exc
            return user

    def delete_user(self, user_id: str) -> bool:
        self._require_ready()
        with self._transaction("delete_user") as session:
            user = session.get(User, str(user_id))
            if user is None:
                return False
            if user.role is Role.PARTICIPANT and not self._touch_roster(session):
                session.rollback()
                raise RosterLocked("Participants cannot be removed while the shuffle is active.")
            session.delete(user)
            session.commit()
            return True

    def update_wishlist(self, user_id: str, text: str) -> bool:
        self._require_ready()
        with self._transaction("update_wishlist") as session:
            result = session.execute(update(User).where(User.id == str(user_id)).values(wishlist=text or ""))
            session.commit()
            return result.rowcount == 1

    def authenticate(self, username: str, password: str) -> User | None:
        self._require_ready()
        with self._transaction("authenticate"):
            user = User.query.filter_by(username=username, password=password).first()
        # Some backends collate case-insensitively; the match must be exact.
        if user is None or user.username != username or user.password != password:
            return None
        return user

    def _find_by_username(self, username: str) -> User | None:
        for user in User.query.filter_by(username=username).all():
            if user.username == username:
                return user
        return None

    # ------------------------------------------------------------------
    # Assignments and the shuffle flag
    # ------------------------------------------------------------------

    def read_shuffled_state(self) -> tuple[bool, int]:
        self._require_ready()
        with self._transaction("read_shuffled_flag") as session:
            row = session.get(GameState, GameState.SHUFFLED_KEY, populate_existing=True)
            if row is None:
                return False, 0
            return row.is_true, row.version

    def read_shuffled_flag(self) -> bool:
        return self.read_shuffled_state()[0]

    def write_shuffled_flag(self, flag: bool) -> bool:
        self._require_ready()
        with self._transaction("write_shuffled_flag") as session:
            result = session.execute(self._flag_update(flag))
            session.commit()
            return result.rowcount == 1

    def update_assignment(self, user_id: str, assigned_to_id: str | None) -> bool:
        self._require_ready()
        with self._transaction("update_assignment") as session:
            result = session.execute(
                update(User)
                .where(User.id == str(user_id), User.role == Role.PARTICIPANT)
                .values(assigned_to_id=assigned_to_id)
            )
            session.commit()
            return result.rowcount == 1

    def commit_shuffle(self, assignments: Mapping[str, str], expected_version: int) -> None:
        """
        Write every giver -> recipient link and set the flag in one transaction.

        The flag row must still be unshuffled and at ``expected_version``;
        otherwise nothing is written and ShuffleConflict is raised.
        """
        self._require_ready()
        with self._transaction("commit_shuffle") as session:
            for giver_id, recipient_id in assignments.items():
                result = session.execute(
                    update(User)
                    .where(User.id == giver_id, User.role == Role.PARTICIPANT)
                    .values(assigned_to_id=recipient_id)
                )
                if result.rowcount != 1:
                    session.rollback()
                    raise ShuffleConflict("A participant was removed while the shuffle was running. Try again.")

            result = session.execute(
                self._flag_update(True).where(
                    GameState.version == expected_version,
                    GameState.value == GameState.encode(False),
                )
            )
            if result.rowcount != 1:
                session.rollback()
                raise ShuffleConflict("The exchange changed while the shuffle was running. Reload and try again.")

            session.commit()

    def reset_assignments(self) -> None:
        """Clear every assignment and the shuffle flag in one transaction."""
        self._require_ready()
        with self._transaction("reset_assignments") as session:
            session.execute(update(User).values(assigned_to_id=None))
            session.execute(self._flag_update(False))
            session.commit()

    @staticmethod
    def _flag_update(flag: bool):
        return (
            update(GameState)
            .where(GameState.key == GameState.SHUFFLED_KEY)
            .values(value=GameState.encode(flag), version=GameState.version + 1)
        )

    def _touch_roster(self, session) -> bool:
        """Bump the flag version if the roster is unlocked; False means locked."""
        result = session.execute(
            update(GameState)
            .where(GameState.key == GameState.SHUFFLED_KEY, GameState.value == GameState.encode(False))
            .values(version=GameState.version + 1)
        )
        return result.rowcount == 1
