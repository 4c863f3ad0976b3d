from __future__ import annotations

from flask import Blueprint, Response, abort, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user

from ..errors import GiftExchangeError
from ..policies import AdminRequiredMixin, LoginRequiredMixin, UnlockedRosterRequiredMixin, is_admin_user
from ..services.pairing import PairingEngine
from ..services.roster import RosterService
from ..store import current_store


exchange_bp = Blueprint("exchange", __name__)


def _roster() -> RosterService:
    return RosterService(current_store())


def _pairing() -> PairingEngine:
    return PairingEngine(current_store())


class DashboardView(LoginRequiredMixin):
    def get(self):
        store = current_store()
        is_shuffled = store.read_shuffled_flag()

        if is_admin_user():
            return render_template(
                "exchange/admin_dashboard.html",
                participants=_roster().participants(),
                is_shuffled=is_shuffled,
            )

        return render_template(
            "exchange/participant_dashboard.html",
            assigned_to=_pairing().get_assignment_for(current_user.id),
            wishlist=current_user.wishlist or "",
            is_shuffled=is_shuffled,
        )


class WishlistView(LoginRequiredMixin):
    def post(self):
        if is_admin_user():
            flash("The administrator does not keep a wishlist.", "info")
            return redirect(url_for("exchange.dashboard"))

        wishlist = request.form.get("wishlist") or ""
        try:
            _roster().set_wishlist(current_user.id, wishlist)
            flash("Wishlist saved.", "success")
        except GiftExchangeError as e:
            flash(f"Could not save your wishlist: {e}", "error")
        return redirect(url_for("exchange.dashboard"))


class AdminCreateParticipantView(UnlockedRosterRequiredMixin):
    def post(self):
        username = (request.form.get("username") or "").strip()
        password = request.form.get("password") or ""

        try:
            user = _roster().create_participant(username, password)
            flash(f"Added participant: {user.username}", "success")
        except GiftExchangeError as e:
            flash(str(e), "error")
        return redirect(url_for("exchange.dashboard"))


class AdminDeleteParticipantView(UnlockedRosterRequiredMixin):
    def post(self, participant_id: str):
        try:
            if _roster().delete_participant(participant_id):
                flash("Participant removed.", "success")
            else:
                flash("No such participant.", "error")
        except GiftExchangeError as e:
            flash(str(e), "error")
        return redirect(url_for("exchange.dashboard"))


class AdminShuffleView(UnlockedRosterRequiredMixin):
    def post(self):
        try:
            _pairing().shuffle()
            flash("Assignments generated. The roster is now locked.", "success")
        except GiftExchangeError as e:
            flash(f"Failed to shuffle: {e}", "error")
        return redirect(url_for("exchange.dashboard"))


class AdminResetView(AdminRequiredMixin):
    def post(self):
        try:
            _pairing().reset()
            flash("Shuffle reset. Participants can be added or removed again.", "success")
        except GiftExchangeError as e:
            flash(f"Failed to reset: {e}", "error")
        return redirect(url_for("exchange.dashboard"))


class AdminInviteView(AdminRequiredMixin):
    def get(self, participant_id: str):
        user = current_store().get_user(participant_id)
        if user is None or user.is_admin:
            abort(404)
        portal_url = current_app.config.get("GIFT_PORTAL_URL") or request.host_url
        return Response(RosterService.invite_text(user, portal_url), mimetype="text/plain")


# Register routes
exchange_bp.add_url_rule("/dashboard", view_func=DashboardView.as_view("dashboard"))
exchange_bp.add_url_rule("/wishlist", view_func=WishlistView.as_view("wishlist"), methods=["POST"])

exchange_bp.add_url_rule(
    "/admin/participants",
    view_func=AdminCreateParticipantView.as_view("admin_create_participant"),
    methods=["POST"],
)
exchange_bp.add_url_rule(
    "/admin/participants/<participant_id>/delete",
    view_func=AdminDeleteParticipantView.as_view("admin_delete_participant"),
    methods=["POST"],
)
exchange_bp.add_url_rule(
    "/admin/participants/<participant_id>/invite",
    view_func=AdminInviteView.as_view("admin_invite"),
)
exchange_bp.add_url_rule("/admin/shuffle", view_func=AdminShuffleView.as_view("admin_shuffle"), methods=["POST"])
exchange_bp.add_url_rule("/admin/reset", view_func=AdminResetView.as_view("admin_reset"), methods=["POST"])
