# utils.py
import time

from flask import current_app, g
from jose import jwt, JWTError


class AuthError(Exception):
    def __init__(self, error, status_code):
        self.error = error
        self.status_code = status_code


class CourseApiError(Exception):
    """Base class for failures surfaced by the service clients."""


class ValidationError(CourseApiError):
    pass


class ConflictError(CourseApiError):
    pass


class NotFoundError(CourseApiError):
    pass


class ServiceError(CourseApiError):
    pass


class InvalidCredentials(AuthError):
    def __init__(self):
        super().__init__({"code": "invalid_credentials",
                          "description": "Invalid credentials"}, 400)


def verify_jwt(request, settings):
    if 'Authorization' not in request.headers:
        raise AuthError({"code": "unauthorized",
                         "description": "Authorization header missing"}, 401)

    # Expecting "Bearer <token>"
    auth_header = request.headers['Authorization'].split()
    if len(auth_header) < 2 or auth_header[0].lower() != 'bearer':
        raise AuthError({"code": "unauthorized",
                         "description": "Access token required"}, 401)

    token = auth_header[1]

    if not settings.jwt_secret:
        raise AuthError({"code": "forbidden",
                         "description": "Invalid or expired token"}, 403)

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=list(settings.jwt_algorithms),
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except JWTError:
        raise AuthError({"code": "forbidden",
                         "description": "Invalid or expired token"}, 403)

    g.user = payload
    return payload


def generate_token(payload, secret, expires_in=3600, algorithm="HS256"):
    claims = dict(payload)
    claims.setdefault("exp", int(time.time()) + expires_in)
    return jwt.encode(claims, secret, algorithm=algorithm)


def app_settings():
    return current_app.extensions['course_api']['settings']


def app_services():
    return current_app.extensions['course_api']['services']


def require_fields(data, names):
    """Return the named values from a JSON body, all present and non-empty."""
    if not isinstance(data, dict) or not all(data.get(n) for n in names):
        raise ValidationError(", ".join(names))
    return {n: data[n] for n in names}
