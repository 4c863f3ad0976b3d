from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import click
from flask import Flask, redirect, request, url_for

from .errors import NotConfigured
from .extensions import db, login_manager, migrate, csrf
from .logging_config import setup_logging
from .policies import is_admin_user
from .store import STORE_EXTENSION_KEY, StoreClient, StoreState, current_store
from .text import linkify
from .views.auth import auth_bp
from .views.exchange import exchange_bp
from .views.public import public_bp


logger = logging.getLogger(__name__)

# Reachable before the store is ready.
SETUP_ENDPOINTS = {"public.setup", "static"}


def create_app(config: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL") or None
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Seeded into an empty roster on first start
    app.config["GIFT_ADMIN_USERNAME"] = os.environ.get("GIFT_ADMIN_USERNAME", "admin")
    app.config["GIFT_ADMIN_PASSWORD"] = os.environ.get("GIFT_ADMIN_PASSWORD", "password123")
    app.config["GIFT_PORTAL_URL"] = os.environ.get("GIFT_PORTAL_URL", "").strip()
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")

    if config:
        app.config.update(config)

    setup_logging(app.config["LOG_LEVEL"])

    store = StoreClient(
        db,
        admin_username=app.config["GIFT_ADMIN_USERNAME"],
        admin_password=app.config["GIFT_ADMIN_PASSWORD"],
    )
    app.extensions[STORE_EXTENSION_KEY] = store

    if app.config.get("SQLALCHEMY_DATABASE_URI"):
        db.init_app(app)
        migrate.init_app(app, db)
        store.configure(app)
    else:
        logger.warning("DATABASE_URL is not set; serving the setup page only")

    login_manager.init_app(app)
    csrf.init_app(app)

    # Blueprints
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(exchange_bp)

    app.jinja_env.filters["linkify"] = linkify

    @app.before_request
    def ensure_store_ready():
        store = current_store()
        if store.state is StoreState.CONFIGURED:
            store.bootstrap()
        if not store.is_ready and request.endpoint not in SETUP_ENDPOINTS:
            return redirect(url_for("public.setup"))
        return None

    @app.context_processor
    def inject_global_state():
        store = current_store()
        return {
            "roster_locked": store.read_shuffled_flag() if store.is_ready else False,
            "is_admin": is_admin_user() if store.is_ready else False,
        }

    @app.cli.command("bootstrap")
    def bootstrap_command():
        """Create tables, the shuffle flag and the seed administrator."""
        store = current_store()
        if store.state is StoreState.UNINITIALIZED:
            raise click.ClickException(str(NotConfigured("Set DATABASE_URL before bootstrapping.")))
        store.bootstrap()
        click.echo("Gift exchange store is ready.")

    return app
