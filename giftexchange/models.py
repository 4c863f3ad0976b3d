from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime

from flask_login import UserMixin

from .extensions import db


def _new_id() -> str:
    return str(uuid.uuid4())


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    PARTICIPANT = "PARTICIPANT"


@dataclass(frozen=True)
class PublicUser:
    """What a giver is allowed to see about their recipient."""

    id: str
    username: str
    wishlist: str


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    username = db.Column(db.String(64), unique=True, nullable=False)

    # Compared as-is; the exchange does not hash credentials.
    password = db.Column(db.String(255), nullable=False)

    role = db.Column(db.Enum(Role, name="user_role"), nullable=False, default=Role.PARTICIPANT)
    wishlist = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Weak reference to the recipient. No foreign key: a deleted recipient
    # leaves this dangling and readers treat it as "no assignment".
    assigned_to_id = db.Column(db.String(36), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def public_view(self) -> PublicUser:
        return PublicUser(id=self.id, username=self.username, wishlist=self.wishlist or "")

    def __repr__(self) -> str:
        return f"<User id={self.id!r} username={self.username!r} role={self.role.value if self.role else None}>"


class GameState(db.Model):
    """
    Key/value rows for process-wide exchange state.

    ``version`` is bumped on every write so a writer can detect that the row
    (or the roster it guards) changed since it was read.
    """
    __tablename__ = "game_state"

    SHUFFLED_KEY = "is_shuffled"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.String(64), nullable=False)
    version = db.Column(db.Integer, nullable=False, default=0)

    @property
    def is_true(self) -> bool:
        return self.value == "true"

    @staticmethod
    def encode(flag: bool) -> str:
        return "true" if flag else "false"
