from __future__ import annotations


class GiftExchangeError(RuntimeError):
    """Base for every failure the exchange surfaces to its callers."""


class NotConfigured(GiftExchangeError):
    pass


class DuplicateUsername(GiftExchangeError):
    def __init__(self, username: str):
        super().__init__(f"Username already exists: {username}")
        self.username = username


class InsufficientParticipants(GiftExchangeError):
    def __init__(self, count: int):
        super().__init__("Need at least 2 participants to shuffle.")
        self.count = count


class RosterLocked(GiftExchangeError):
    pass


class AdminProtected(GiftExchangeError):
    pass


class InvalidInput(GiftExchangeError):
    pass


class ShuffleConflict(GiftExchangeError):
    """The roster or the shuffle flag changed between snapshot and commit."""


class TransientStoreFailure(GiftExchangeError):
    pass
