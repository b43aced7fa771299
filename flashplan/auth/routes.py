"""Routes for the auth blueprint."""

from firebase_admin import auth, exceptions, firestore
from flask import current_app, g, jsonify, request, session

from flashplan.errors import UnauthorizedError
from flashplan.user.services import UsersService
from flashplan.utils import display_name_from_email

from . import bp
from .decorators import login_required
from .session import IdentitySession


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called by the client after a successful Firebase sign-in.
    Verifies the ID token, makes sure a profile exists and opens a session.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    try:
        decoded_token = auth.verify_id_token(id_token)
    except (ValueError, exceptions.FirebaseError) as e:
        current_app.logger.warning(f"Rejected ID token: {e}")
        raise UnauthorizedError("Invalid or expired sign-in token.", 401) from e

    uid = decoded_token["uid"]
    email = decoded_token.get("email")
    display_name = decoded_token.get("name") or display_name_from_email(email)
    UsersService(firestore.client()).ensure_user_document(uid, display_name, email)

    session.clear()
    session["user_id"] = uid
    current_app.logger.info(f"User {uid} signed in")
    return jsonify({"status": "success", "uid": uid, "displayName": display_name})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session. Firebase sign-out happens on the client."""
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/me", methods=["GET"])
@login_required
def me():
    """Return the signed-in user's id and display name."""
    identity = IdentitySession(g.user)
    return jsonify(
        {
            "status": "success",
            "uid": identity.current_user_id(),
            "displayName": identity.current_display_name(),
        }
    )
