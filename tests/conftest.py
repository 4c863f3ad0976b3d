"""
Shared pytest fixtures.

Every test gets a fresh app on its own in-memory SQLite database, already
bootstrapped (tables, shuffle flag row, seed admin).
"""

from __future__ import annotations

import random

import pytest

from giftexchange import create_app
from giftexchange.extensions import db
from giftexchange.services.pairing import PairingEngine
from giftexchange.services.roster import RosterService
from giftexchange.store import current_store


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "password123"


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "WTF_CSRF_ENABLED": False,
            "GIFT_ADMIN_USERNAME": ADMIN_USERNAME,
            "GIFT_ADMIN_PASSWORD": ADMIN_PASSWORD,
            "GIFT_PORTAL_URL": "https://gifts.example.com/",
            "LOG_LEVEL": "WARNING",
        }
    )
    with app.app_context():
        current_store().bootstrap()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def store(app):
    """The app's StoreClient with an app context pushed for the whole test."""
    with app.app_context():
        yield current_store()


@pytest.fixture
def roster(store):
    return RosterService(store)


@pytest.fixture
def engine(store):
    return PairingEngine(store, rng=random.Random(1234))


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def add_participants(roster):
    def _add(*usernames: str):
        return [roster.create_participant(name, f"{name}-pw") for name in usernames]
    return _add


def login(client, username: str, password: str):
    return client.post("/auth/login", data={"username": username, "password": password})
