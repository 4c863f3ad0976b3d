from __future__ import annotations

import logging
import random
from typing import Sequence

from ..errors import InsufficientParticipants
from ..models import PublicUser
from ..store import StoreClient


logger = logging.getLogger(__name__)


def build_cycle(participant_ids: Sequence[str], rng: random.Random | None = None) -> dict[str, str]:
    """
    Return a giver -> recipient map forming one cycle through every id.

    The ids are shuffled uniformly, then each one gives to its successor
    (the last wraps to the first). A single cycle of length >= 2 has no
    fixed points, so nobody draws themselves.
    """
    order = list(participant_ids)
    if len(order) < 2:
        raise InsufficientParticipants(len(order))

    (rng or random).shuffle(order)
    return {giver: order[(i + 1) % len(order)] for i, giver in enumerate(order)}


class PairingEngine:
    def __init__(self, store: StoreClient, rng: random.Random | None = None):
        self.store = store
        self.rng = rng or random.SystemRandom()

    def shuffle(self) -> dict[str, str]:
        # Version first: any roster change after this point bumps it and the commit conflicts.
        _, version = self.store.read_shuffled_state()
        participants = self.store.list_participants()
        if len(participants) < 2:
            raise InsufficientParticipants(len(participants))

        assignments = build_cycle([p.id for p in participants], self.rng)
        self.store.commit_shuffle(assignments, expected_version=version)

        logger.info("Shuffled %d participants into a single gift cycle", len(assignments))
        return assignments

    def reset(self) -> None:
        self.store.reset_assignments()
        logger.info("Shuffle reset; assignments cleared")

    def get_assignment_for(self, user_id: str) -> PublicUser | None:
        """Recipient of ``user_id``, or None when there is nothing to show."""
        giver = self.store.get_user(user_id)
        if giver is None or not giver.assigned_to_id:
            return None

        recipient = self.store.get_user(giver.assigned_to_id)
        if recipient is None:
            return None
        return recipient.public_view()
