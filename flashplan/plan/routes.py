"""Routes for the plan blueprint."""

import datetime

from firebase_admin import firestore
from flask import current_app, jsonify, request

from flashplan.auth.decorators import login_required
from flashplan.auth.session import IdentitySession
from flashplan.errors import ValidationError
from flashplan.utils import plan_url

from . import bp
from .services import PlanService, my_vote, tally


def _parse_when(value):
    """Parse an ISO 8601 timestamp from the request body."""
    if not isinstance(value, str):
        raise ValidationError("Plan time is required.")
    try:
        when = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid plan time: {value!r}.") from e
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    return when


@bp.route("/", methods=["GET"])
@login_required
def view_plans():
    """List the latest plans."""
    service = PlanService(firestore.client())
    plans = service.list_plans(current_app.config["PLAN_LIST_LIMIT"])
    return jsonify({"status": "success", "plans": [p.to_json() for p in plans]})


@bp.route("/", methods=["POST"])
@login_required
def create_plan():
    """Propose a new plan."""
    identity = IdentitySession.current()
    data = request.get_json(silent=True) or {}
    plan_id = PlanService(firestore.client()).create_plan(
        data.get("title", ""),
        _parse_when(data.get("when")),
        data.get("location", ""),
        data.get("notes", ""),
        identity.current_user_id(),
    )
    return (
        jsonify(
            {
                "status": "success",
                "plan_id": plan_id,
                "share_url": plan_url(plan_id, current_app.config["APP_BASE_URL"]),
            }
        ),
        201,
    )


@bp.route("/<string:plan_id>", methods=["GET"])
@login_required
def view_plan(plan_id):
    """A plan with its votes and tally."""
    identity = IdentitySession.current()
    service = PlanService(firestore.client())
    plan = service.get_plan(plan_id)
    votes = service.get_votes(plan_id)
    mine = my_vote(votes, identity.current_user_id())
    return jsonify(
        {
            "status": "success",
            "plan": plan.to_json(),
            "votes": [v.to_json() for v in votes],
            "tally": tally(votes)._asdict(),
            "my_vote": mine.value if mine else None,
            "share_url": plan_url(plan_id, current_app.config["APP_BASE_URL"]),
        }
    )


@bp.route("/<string:plan_id>/vote", methods=["PUT"])
@login_required
def vote(plan_id):
    """Cast or change the signed-in user's vote."""
    identity = IdentitySession.current()
    data = request.get_json(silent=True) or {}
    service = PlanService(firestore.client())
    cast = service.set_vote(
        plan_id,
        identity.current_user_id(),
        identity.current_display_name(),
        data.get("vote"),
    )
    return jsonify(
        {
            "status": "success",
            "vote": cast.value,
            "tally": tally(service.get_votes(plan_id))._asdict(),
        }
    )
