# config.py
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_PORT = 1450
DEFAULT_CONNECTION = "Username-Password-Authentication"


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""

    project: Optional[str] = None
    auth0_domain: Optional[str] = None
    auth0_client_id: Optional[str] = None
    auth0_client_secret: Optional[str] = None
    auth0_connection: str = DEFAULT_CONNECTION
    idp_timeout: float = 10.0
    bucket_name: Optional[str] = None
    upload_folder: str = "courses"
    upload_requires_auth: bool = False
    jwt_secret: Optional[str] = None
    jwt_algorithms: Tuple[str, ...] = ("HS256",)
    jwt_audience: Optional[str] = None
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @classmethod
    def from_mapping(cls, env: Mapping[str, str]) -> "Settings":
        client_secret = env.get("AUTH0_CLIENT_SECRET")
        algorithms = env.get("JWT_ALGORITHMS") or "HS256"
        return cls(
            project=env.get("GOOGLE_CLOUD_PROJECT"),
            auth0_domain=env.get("AUTH0_DOMAIN"),
            auth0_client_id=env.get("AUTH0_CLIENT_ID"),
            auth0_client_secret=client_secret,
            auth0_connection=env.get("AUTH0_CONNECTION") or DEFAULT_CONNECTION,
            idp_timeout=float(env.get("IDP_TIMEOUT") or 10),
            bucket_name=env.get("GCS_BUCKET_NAME"),
            upload_folder=(env.get("UPLOAD_FOLDER") or "courses").strip("/"),
            upload_requires_auth=_as_bool(env.get("UPLOAD_REQUIRES_AUTH")),
            jwt_secret=env.get("JWT_SECRET") or client_secret,
            jwt_algorithms=tuple(a.strip() for a in algorithms.split(",") if a.strip()),
            jwt_audience=env.get("JWT_AUDIENCE") or None,
            port=int(env.get("PORT") or DEFAULT_PORT),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls.from_mapping(os.environ)
