"""Routes for the group blueprint."""

from firebase_admin import firestore
from flask import current_app, jsonify, request

from flashplan.auth.decorators import login_required
from flashplan.auth.session import IdentitySession
from flashplan.errors import UnauthorizedError, ValidationError
from flashplan.utils import group_url

from . import bp
from .services import (
    AvailabilityService,
    MembershipService,
    classify,
    top_dates,
)


def _json_body():
    return request.get_json(silent=True) or {}


def _ranked_dates(histogram, member_count):
    """Top dates with their counts and consensus level."""
    limit = current_app.config["TOP_DATES_LIMIT"]
    return [
        {
            "date": date,
            "count": histogram[date],
            "consensus": classify(date, histogram, member_count).value,
        }
        for date in top_dates(histogram, limit)
    ]


@bp.route("/", methods=["GET"])
@login_required
def view_groups():
    """List the signed-in user's groups."""
    identity = IdentitySession.current()
    service = MembershipService(firestore.client())
    groups = service.groups_for_user(
        identity.current_user_id(), current_app.config["GROUP_LIST_LIMIT"]
    )
    return jsonify({"status": "success", "groups": [g.to_json() for g in groups]})


@bp.route("/", methods=["POST"])
@login_required
def create_group():
    """Create a group owned by the signed-in user."""
    identity = IdentitySession.current()
    service = MembershipService(firestore.client())
    group_id = service.create_group(
        _json_body().get("name", ""),
        identity.current_user_id(),
        identity.current_display_name(),
    )
    base_url = current_app.config["APP_BASE_URL"]
    return (
        jsonify(
            {
                "status": "success",
                "group_id": group_id,
                "share_url": group_url(group_id, base_url),
            }
        ),
        201,
    )


@bp.route("/join", methods=["POST"])
@login_required
def join_with_code():
    """Join a group using its invite code."""
    identity = IdentitySession.current()
    service = MembershipService(firestore.client())
    group_id = service.join_with_code(
        _json_body().get("code", ""),
        identity.current_user_id(),
        identity.current_display_name(),
    )
    return jsonify({"status": "success", "group_id": group_id})


@bp.route("/calendar", methods=["GET"])
@login_required
def calendar():
    """Free-date histogram across every group the user belongs to."""
    identity = IdentitySession.current()
    db = firestore.client()
    groups = MembershipService(db).groups_for_user(
        identity.current_user_id(), current_app.config["GROUP_LIST_LIMIT"]
    )
    histogram = AvailabilityService(db).calendar_histogram(groups)
    return jsonify(
        {
            "status": "success",
            "group_ids": [group.id for group in groups],
            "histogram": histogram,
        }
    )


@bp.route("/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id):
    """Group details; members and availability only for members."""
    identity = IdentitySession.current()
    uid = identity.current_user_id()
    db = firestore.client()
    membership = MembershipService(db)
    group = membership.get_group(group_id)

    payload = {
        "status": "success",
        "group": group.to_json() if group.is_member(uid) else None,
        "name": group.name,
        "is_member": group.is_member(uid),
        "is_admin": group.is_admin(uid),
        "is_pending": group.is_pending(uid),
        "share_url": group_url(group_id, current_app.config["APP_BASE_URL"]),
    }
    if group.is_member(uid):
        availability = AvailabilityService(db)
        _, histogram = availability.group_histogram(group_id)
        payload["members"] = [m.to_json() for m in membership.get_members(group_id)]
        payload["histogram"] = histogram
        payload["top_dates"] = _ranked_dates(histogram, len(group.member_ids))
    return jsonify(payload)


@bp.route("/<string:group_id>/request", methods=["POST"])
@login_required
def request_to_join(group_id):
    """Ask to join a group."""
    identity = IdentitySession.current()
    MembershipService(firestore.client()).request_to_join(
        group_id, identity.current_user_id(), identity.current_display_name()
    )
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/leave", methods=["POST"])
@login_required
def leave_group(group_id):
    """Leave a group, or withdraw a pending join request."""
    identity = IdentitySession.current()
    user_id = identity.current_user_id()
    service = MembershipService(firestore.client())
    group = service.get_group(group_id)
    if not (group.is_member(user_id) or group.is_pending(user_id)):
        raise UnauthorizedError("Only group members can do that.")
    service.leave(group_id, user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/approve/<string:user_id>", methods=["POST"])
@login_required(group_admin=True)
def approve_request(group_id, user_id):
    """Approve a pending join request."""
    service = MembershipService(firestore.client())
    member = service.get_member(group_id, user_id)
    display_name = _json_body().get("name") or (member.name if member else "")
    service.approve_request(group_id, user_id, display_name)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/deny/<string:user_id>", methods=["POST"])
@login_required(group_admin=True)
def deny_request(group_id, user_id):
    """Deny a pending join request."""
    MembershipService(firestore.client()).deny_request(group_id, user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/promote/<string:user_id>", methods=["POST"])
@login_required(group_admin=True)
def promote(group_id, user_id):
    """Make a member an admin."""
    MembershipService(firestore.client()).promote(group_id, user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/demote/<string:user_id>", methods=["POST"])
@login_required(group_admin=True)
def demote(group_id, user_id):
    """Make an admin a regular member."""
    MembershipService(firestore.client()).demote(group_id, user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/remove/<string:user_id>", methods=["POST"])
@login_required(group_admin=True)
def remove_member(group_id, user_id):
    """Remove a user from the group."""
    MembershipService(firestore.client()).remove(group_id, user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/invite/<string:user_id>", methods=["POST"])
@login_required(group_admin=True)
def invite_user(group_id, user_id):
    """Invite a user directly."""
    MembershipService(firestore.client()).invite_user(group_id, user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/invite_code", methods=["POST"])
@login_required(group_admin=True)
def regenerate_invite_code(group_id):
    """Issue a new invite code, retiring the old one."""
    code = MembershipService(firestore.client()).regenerate_invite_code(group_id)
    return jsonify({"status": "success", "invite_code": code})


@bp.route("/<string:group_id>/theme", methods=["PUT"])
@login_required(group_admin=True)
def set_theme(group_id):
    """Change the group's theme."""
    theme_key = _json_body().get("themeKey", "")
    MembershipService(firestore.client()).set_theme(group_id, theme_key)
    return jsonify({"status": "success", "themeKey": theme_key})


@bp.route("/<string:group_id>/availability", methods=["GET"])
@login_required(group_member=True)
def view_availability(group_id):
    """Every member's free dates plus the group histogram."""
    service = AvailabilityService(firestore.client())
    group, histogram = service.group_histogram(group_id)
    records = [
        r.to_json() for r in service.get_availability(group_id) if group.is_member(r.id)
    ]
    return jsonify(
        {
            "status": "success",
            "availability": records,
            "histogram": histogram,
            "top_dates": _ranked_dates(histogram, len(group.member_ids)),
        }
    )


@bp.route("/<string:group_id>/availability", methods=["PUT"])
@login_required(group_member=True)
def set_availability(group_id):
    """Replace the signed-in member's free dates."""
    identity = IdentitySession.current()
    free_dates = _json_body().get("freeDates", [])
    if not isinstance(free_dates, list):
        raise ValidationError("freeDates must be a list of dates.")
    dates = AvailabilityService(firestore.client()).set_availability(
        group_id,
        identity.current_user_id(),
        identity.current_display_name(),
        free_dates,
    )
    return jsonify({"status": "success", "freeDates": sorted(dates)})
