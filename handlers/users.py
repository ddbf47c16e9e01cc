import logging

from flask import Blueprint, request, jsonify

from utils import (require_fields, app_services,
                   ConflictError, InvalidCredentials, ValidationError)

users_bp = Blueprint('users', __name__)

logger = logging.getLogger("course_api.users")


def _credentials():
    data = require_fields(request.get_json(silent=True), ('username', 'password'))
    return data['username'], data['password']


## Functionality: User registration
## Endpoint: POST /register
## Protection: Unprotected
## Description: Signs the user up with the identity provider. No session
## is issued; the client logs in afterwards.
@users_bp.route('/register', methods=['POST'])
def register():
    try:
        username, password = _credentials()
    except ValidationError:
        return jsonify({"message": "Username and password are required"}), 400

    try:
        app_services().identity.register(username, password)
    except ConflictError:
        return jsonify({"message": "Username already exists"}), 400
    except Exception:
        logger.exception("Error during registration")
        return jsonify({"message": "Internal Server Error"}), 500

    logger.debug("Registered a new identity")
    return jsonify({"message": "User registered successfully"}), 201


## Functionality: User login
## Endpoint: POST /login
## Protection: Unprotected
## Description: Password grant against the identity provider; returns
## the provider-issued token.
@users_bp.route('/login', methods=['POST'])
def login():
    try:
        username, password = _credentials()
    except ValidationError:
        return jsonify({"message": "Username and password are required"}), 400

    try:
        token = app_services().identity.login(username, password)
    except InvalidCredentials:
        return jsonify({"message": "Invalid credentials"}), 400
    except Exception:
        logger.exception("Login error")
        return jsonify({"message": "Internal Server Error"}), 500

    return jsonify({"token": token}), 200
