from __future__ import annotations

from flask import Blueprint, render_template, redirect, url_for
from flask.views import MethodView
from flask_login import current_user

from ..store import current_store


public_bp = Blueprint("public", __name__)


class LandingView(MethodView):
    def get(self):
        if current_user.is_authenticated:
            return redirect(url_for("exchange.dashboard"))
        return redirect(url_for("auth.login"))


class SetupView(MethodView):
    """Shown while the data store has no connection target or has not finished bootstrapping."""
    def get(self):
        if current_store().is_ready:
            return redirect(url_for("public.landing"))
        return render_template("setup.html"), 503


public_bp.add_url_rule("/", view_func=LandingView.as_view("landing"))
public_bp.add_url_rule("/setup", view_func=SetupView.as_view("setup"))
