"""Initialize the Flask app and Firebase."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, jsonify, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .constants import (
    DEFAULT_APP_BASE_URL,
    GROUP_LIST_LIMIT,
    PLAN_LIST_LIMIT,
    TOP_DATES_LIMIT,
)


def _load_credentials(app):
    """Find Firebase credentials: env var, then local file, then ADC."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path) as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    return cred, project_id


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        APP_BASE_URL=os.environ.get("APP_BASE_URL") or DEFAULT_APP_BASE_URL,
        GROUP_LIST_LIMIT=int(os.environ.get("GROUP_LIST_LIMIT") or GROUP_LIST_LIMIT),
        PLAN_LIST_LIMIT=int(os.environ.get("PLAN_LIST_LIMIT") or PLAN_LIST_LIMIT),
        TOP_DATES_LIMIT=int(os.environ.get("TOP_DATES_LIMIT") or TOP_DATES_LIMIT),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        cred, project_id = _load_credentials(app)
        if cred and not firebase_admin._apps:
            try:
                options = {"projectId": project_id} if project_id else None
                firebase_admin.initialize_app(cred, options)
            except ValueError:
                # This can happen if the app is already initialized, which is fine.
                app.logger.info("Firebase app already initialized.")

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import plan as plan_bp

    app.register_blueprint(plan_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the profile from Firestore into g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        from .user.services import UsersService

        user = UsersService(firestore.client()).get_user(user_id)
        if user is None:
            # User ID in session but no profile in Firestore. Clear the session.
            session.clear()
            current_app.logger.warning(
                f"User {user_id} in session but not found in Firestore."
            )
            return
        user["uid"] = user_id
        g.user = user

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return jsonify(
            {"status": "ok", "version": os.environ.get("APP_VERSION", "dev")}
        )

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
