from __future__ import annotations

from flask import Blueprint, render_template, redirect, url_for, flash, request
from flask.views import MethodView
from flask_login import login_user, logout_user, current_user

from ..errors import GiftExchangeError
from ..services.roster import RosterService
from ..store import current_store


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


class LoginView(MethodView):
    def get(self):
        if current_user.is_authenticated:
            return redirect(url_for("exchange.dashboard"))
        return render_template("auth/login.html")

    def post(self):
        if current_user.is_authenticated:
            return redirect(url_for("exchange.dashboard"))

        # Credentials are case-sensitive and compared exactly; no trimming.
        username = request.form.get("username") or ""
        password = request.form.get("password") or ""

        try:
            user = RosterService(current_store()).authenticate(username, password)
        except GiftExchangeError as e:
            flash(f"Could not reach the exchange: {e}", "error")
            return render_template("auth/login.html"), 503

        if user is None:
            flash("Invalid username or password.", "error")
            return render_template("auth/login.html"), 401

        login_user(user)
        return redirect(url_for("exchange.dashboard"))


class LogoutView(MethodView):
    def get(self):
        if current_user.is_authenticated:
            logout_user()
        return redirect(url_for("auth.login"))


auth_bp.add_url_rule("/login", view_func=LoginView.as_view("login"), methods=["GET", "POST"])
auth_bp.add_url_rule("/logout", view_func=LogoutView.as_view("logout"), methods=["GET"])
