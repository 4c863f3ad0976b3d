"""Tests for the cycle builder and the PairingEngine."""

from __future__ import annotations

import random
from collections import Counter

import pytest

from giftexchange.errors import InsufficientParticipants, RosterLocked, TransientStoreFailure
from giftexchange.models import PublicUser, User
from giftexchange.services.pairing import PairingEngine, build_cycle


def _cycle_length(mapping: dict[str, str], start: str) -> int:
    hops, current = 0, start
    while True:
        current = mapping[current]
        hops += 1
        if current == start or hops > len(mapping):
            return hops


class TestBuildCycle:
    @pytest.mark.parametrize("n", [2, 3, 5, 17])
    def test_is_a_derangement_and_a_permutation(self, n: int) -> None:
        ids = [f"id-{i}" for i in range(n)]
        for seed in range(25):
            mapping = build_cycle(ids, random.Random(seed))
            assert set(mapping) == set(ids)
            assert Counter(mapping.values()) == Counter(ids)
            assert all(giver != recipient for giver, recipient in mapping.items())

    def test_forms_a_single_cycle(self) -> None:
        ids = [f"id-{i}" for i in range(9)]
        mapping = build_cycle(ids, random.Random(7))
        assert _cycle_length(mapping, ids[0]) == len(ids)

    def test_two_participants_swap(self) -> None:
        assert build_cycle(["a", "b"], random.Random(3)) == {"a": "b", "b": "a"}

    @pytest.mark.parametrize("ids", [[], ["only"]])
    def test_rejects_fewer_than_two(self, ids: list[str]) -> None:
        with pytest.raises(InsufficientParticipants):
            build_cycle(ids)

    def test_does_not_mutate_input(self) -> None:
        ids = ["a", "b", "c", "d"]
        build_cycle(ids, random.Random(0))
        assert ids == ["a", "b", "c", "d"]

    def test_every_three_cycle_is_reachable(self) -> None:
        # Both orientations of a 3-cycle should come up over many draws.
        seen = {tuple(sorted(build_cycle(["a", "b", "c"], random.Random(s)).items())) for s in range(200)}
        assert len(seen) == 2


class TestShuffle:
    def test_three_participants_form_one_cycle(self, store, engine, add_participants) -> None:
        a, b, c = add_participants("A", "B", "C")

        engine.shuffle()

        mapping = {u.id: u.assigned_to_id for u in store.list_participants()}
        assert set(mapping) == {a.id, b.id, c.id}
        assert all(mapping[uid] is not None and mapping[uid] != uid for uid in mapping)
        assert _cycle_length(mapping, a.id) == 3
        assert store.read_shuffled_flag() is True

    def test_two_participants_gift_each_other(self, store, engine, add_participants) -> None:
        a, b = add_participants("A", "B")

        assert engine.shuffle() == {a.id: b.id, b.id: a.id}
        assert store.get_user(a.id).assigned_to_id == b.id
        assert store.get_user(b.id).assigned_to_id == a.id

    def test_admin_is_never_paired(self, store, engine, add_participants) -> None:
        add_participants("A", "B", "C")
        engine.shuffle()

        admin = next(u for u in store.list_users() if u.is_admin)
        assert admin.assigned_to_id is None
        assert admin.id not in {u.assigned_to_id for u in store.list_participants()}

    @pytest.mark.parametrize("names", [(), ("Solo",)])
    def test_insufficient_participants_leaves_state_unchanged(self, store, engine, add_participants, names) -> None:
        add_participants(*names)

        with pytest.raises(InsufficientParticipants):
            engine.shuffle()

        assert store.read_shuffled_flag() is False
        assert all(u.assigned_to_id is None for u in store.list_users())

    def test_roster_is_locked_after_shuffle_and_unlocked_by_reset(self, roster, engine, add_participants) -> None:
        add_participants("A", "B", "C")
        engine.shuffle()

        with pytest.raises(RosterLocked):
            roster.create_participant("D", "x")

        engine.reset()
        assert roster.create_participant("D", "x").username == "D"

    def test_reset_then_shuffle_restores_full_derangement(self, store, engine, add_participants) -> None:
        add_participants("A", "B", "C", "D")
        engine.shuffle()
        engine.reset()

        assert store.read_shuffled_flag() is False
        assert all(u.assigned_to_id is None for u in store.list_users())

        engine.shuffle()
        mapping = {u.id: u.assigned_to_id for u in store.list_participants()}
        assert store.read_shuffled_flag() is True
        assert sorted(mapping.values()) == sorted(mapping)
        assert all(k != v for k, v in mapping.items())

    def test_reset_is_safe_when_already_reset(self, store, engine) -> None:
        engine.reset()
        engine.reset()
        assert store.read_shuffled_flag() is False

    def test_failed_commit_writes_nothing(self, store, engine, add_participants, monkeypatch) -> None:
        add_participants("A", "B", "C")

        def boom(*args, **kwargs):
            from sqlalchemy.exc import OperationalError
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        from giftexchange.extensions import db
        monkeypatch.setattr(db.session, "commit", boom)

        with pytest.raises(TransientStoreFailure):
            engine.shuffle()

        monkeypatch.undo()
        assert store.read_shuffled_flag() is False
        assert all(u.assigned_to_id is None for u in store.list_participants())


class TestGetAssignmentFor:
    def test_returns_public_view_of_recipient(self, store, roster, engine, add_participants) -> None:
        a, b = add_participants("A", "B")
        roster.set_wishlist(b.id, "Socks https://example.com/socks")
        engine.shuffle()

        recipient = engine.get_assignment_for(a.id)
        assert recipient == PublicUser(id=b.id, username="B", wishlist="Socks https://example.com/socks")
        assert not hasattr(recipient, "password")

    def test_no_assignment_before_shuffle(self, engine, add_participants) -> None:
        a, _ = add_participants("A", "B")
        assert engine.get_assignment_for(a.id) is None

    def test_unknown_user_has_no_assignment(self, engine) -> None:
        assert engine.get_assignment_for("does-not-exist") is None

    def test_dangling_assignment_is_treated_as_none(self, store, engine, add_participants) -> None:
        a, b, c = add_participants("A", "B", "C")
        engine.shuffle()
        recipient_id = store.get_user(a.id).assigned_to_id

        # Simulate a row removed behind the exchange's back.
        from giftexchange.extensions import db
        db.session.delete(db.session.get(User, recipient_id))
        db.session.commit()

        assert engine.get_assignment_for(a.id) is None
        assert engine.get_assignment_for(a.id) is None


def test_engine_defaults_to_system_random(store) -> None:
    assert isinstance(PairingEngine(store).rng, random.SystemRandom)
