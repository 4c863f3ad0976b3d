from __future__ import annotations

from flask import redirect, url_for, flash
from flask_login import current_user
from flask.views import MethodView

from .extensions import login_manager
from .models import Role
from .store import current_store


@login_manager.user_loader
def load_user(user_id: str):
    # A cached id that no longer resolves means "not logged in".
    store = current_store()
    if not store.is_ready:
        return None
    return store.get_user(user_id)


def is_admin_user() -> bool:
    return current_user.is_authenticated and current_user.role is Role.ADMIN


def roster_locked() -> bool:
    return current_store().read_shuffled_flag()


class LoginRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return redirect(url_for("auth.login"))
        return super().dispatch_request(*args, **kwargs)


class AdminRequiredMixin(LoginRequiredMixin):
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated and not is_admin_user():
            flash("Not authorized.", "error")
            return redirect(url_for("exchange.dashboard"))
        return super().dispatch_request(*args, **kwargs)


class UnlockedRosterRequiredMixin(AdminRequiredMixin):
    """
    Admin actions that are only valid before the shuffle: adding or removing
    participants, and running the shuffle itself. Resetting is the way back.
    """
    def dispatch_request(self, *args, **kwargs):
        if is_admin_user() and roster_locked():
            flash("The roster is locked. Reset the shuffle first.", "info")
            return redirect(url_for("exchange.dashboard"))
        return super().dispatch_request(*args, **kwargs)
