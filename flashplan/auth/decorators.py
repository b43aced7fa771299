"""Decorators for the auth blueprint."""

from functools import wraps

from firebase_admin import firestore
from flask import g

from flashplan.errors import UnauthorizedError


def login_required(f=None, group_member=False, group_admin=False):
    """Reject the request unless a user is signed in.

    With ``group_member`` or ``group_admin`` the signed-in user must also be a
    member or an admin of the group named by the ``group_id`` view argument.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(group_admin=True)
    def admin_view(group_id):
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if g.get("user") is None:
                raise UnauthorizedError("You must be logged in.", 401)
            if group_member or group_admin:
                from flashplan.group.services import MembershipService

                service = MembershipService(firestore.client())
                group = service.get_group(kwargs["group_id"])
                uid = g.user["uid"]
                if group_admin and not group.is_admin(uid):
                    raise UnauthorizedError("Only group admins can do that.")
                if group_member and not group.is_member(uid):
                    raise UnauthorizedError("Only group members can do that.")
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
