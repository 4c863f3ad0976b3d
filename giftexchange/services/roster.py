from __future__ import annotations

import logging

from ..errors import AdminProtected, InvalidInput, RosterLocked
from ..models import Role, User
from ..store import StoreClient


logger = logging.getLogger(__name__)


class RosterService:
    def __init__(self, store: StoreClient):
        self.store = store

    def participants(self) -> list[User]:
        return self.store.list_participants()

    def create_participant(self, username: str, password: str) -> User:
        if not username:
            raise InvalidInput("Username is required.")
        if not password:
            raise InvalidInput("Password is required.")
        if self.store.read_shuffled_flag():
            raise RosterLocked("The roster is locked until the shuffle is reset.")

        user = self.store.create_user(username, password, Role.PARTICIPANT)
        logger.info("Added participant %r", user.username)
        return user

    def delete_participant(self, user_id: str) -> bool:
        user = self.store.get_user(user_id)
        if user is None:
            return False
        if user.is_admin:
            raise AdminProtected("The administrator account cannot be removed.")
        if self.store.read_shuffled_flag():
            raise RosterLocked("Participants cannot be removed while the shuffle is active.")

        username = user.username
        deleted = self.store.delete_user(user_id)
        if deleted:
            logger.info("Removed participant %r", username)
        return deleted

    def set_wishlist(self, user_id: str, text: str) -> bool:
        return self.store.update_wishlist(user_id, text)

    def authenticate(self, username: str, password: str) -> User | None:
        if not username or not password:
            return None
        return self.store.authenticate(username, password)

    @staticmethod
    def invite_text(user: User, portal_url: str) -> str:
        """Invitation an organizer can paste into a chat message."""
        return (
            f"Hi {user.username}! You're in this year's gift exchange.\n"
            f"Portal: {portal_url}\n"
            f"User: {user.username}\n"
            f"Pass: {user.password}\n"
        )
