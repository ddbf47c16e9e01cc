# main.py
# Course Catalog API: Flask facade over Datastore, Auth0 and Cloud Storage.

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from clients import build_services
from config import Settings
from utils import AuthError
from handlers.courses import courses_bp
from handlers.images import images_bp
from handlers.users import users_bp

logger = logging.getLogger("course_api")


def configure_logging(level="INFO"):
    # Avoid duplicate handlers when the factory runs more than once
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        logger.addHandler(handler)
    logger.setLevel(level)


def create_app(settings=None, services=None):
    """Build the Flask application.

    ``settings`` defaults to the environment; ``services`` defaults to the
    real Datastore, Auth0 and Cloud Storage clients built from it.
    """
    if settings is None:
        settings = Settings.from_env()
    if services is None:
        services = build_services(settings)

    configure_logging(settings.log_level)

    if not settings.jwt_secret:
        logger.warning("No JWT_SECRET or AUTH0_CLIENT_SECRET; every bearer token will be rejected")
    elif settings.jwt_secret == settings.auth0_client_secret:
        # Auth0 signs ID tokens with RS256 unless the application says otherwise
        logger.warning("Verifying bearer tokens with the Auth0 client secret; "
                       "the Auth0 application must sign ID tokens with HS256")

    # Initialize the Flask application
    app = Flask(__name__)
    app.extensions['course_api'] = {'settings': settings, 'services': services}
    CORS(app)

    # Register course, user and image blueprints
    app.register_blueprint(courses_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(images_bp)

    # Root route to verify the service is running
    @app.route('/')
    def index():
        return jsonify("Our backend is running!"), 200

    # Global error handler for AuthError exceptions
    @app.errorhandler(AuthError)
    def handle_auth_error(e):
        return jsonify({"error": e.error["description"]}), e.status_code

    return app


# Run the app in local development mode
if __name__ == '__main__':
    settings = Settings.from_env()
    app = create_app(settings)
    logger.info("Server running on port %s", settings.port)
    app.run(host='0.0.0.0', port=settings.port, threaded=True)
