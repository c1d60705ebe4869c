"""Static allow-list authentication for the HTTP front door.

Checks, in priority order: a custom predicate (which short-circuits the
rest), ``Authorization: Bearer``, ``X-API-Key`` and HTTP Basic. There is no
token expiry and no rate limiting.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass, field

from starlette.requests import HTTPConnection
from starlette.types import Send

from mcp_web3_stats.settings import AuthSettings
from mcp_web3_stats.types import AUTHENTICATION_REQUIRED, error_envelope

API_KEY_HEADER = "x-api-key"
DEFAULT_REALM = "MCP Server"
AUTH_HINT = "Provide API key via Authorization: Bearer <token> or X-API-Key header"

CustomValidator = Callable[[HTTPConnection], bool]


@dataclass(frozen=True)
class AuthConfig:
    """Process-wide auth configuration. Loaded once, never mutated."""

    enabled: bool = False
    api_keys: frozenset[str] = frozenset()
    basic_credentials: frozenset[tuple[str, str]] = frozenset()
    custom_validator: CustomValidator | None = field(default=None, compare=False)
    realm: str = DEFAULT_REALM

    @classmethod
    def from_settings(cls, settings: AuthSettings | None = None, **overrides: object) -> AuthConfig:
        settings = settings or AuthSettings()
        values: dict[str, object] = {
            "enabled": settings.auth_enabled,
            "api_keys": settings.api_key_set(),
            "basic_credentials": settings.basic_credential_set(),
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    @property
    def challenge_scheme(self) -> str:
        if self.basic_credentials and not self.api_keys and self.custom_validator is None:
            return "Basic"
        return "Bearer"


def _token_allowed(token: str, allowed: frozenset[str]) -> bool:
    # Compare against every key so timing does not reveal which prefix matched
    matched = False
    for key in allowed:
        matched |= hmac.compare_digest(token.encode(), key.encode())
    return matched


def _basic_credentials(value: str) -> tuple[str, str] | None:
    try:
        decoded = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def validate(connection: HTTPConnection, config: AuthConfig) -> bool:
    """Return True if the request may proceed."""
    if not config.enabled:
        return True

    if config.custom_validator is not None:
        return config.custom_validator(connection)

    scheme, _, credentials = connection.headers.get("authorization", "").partition(" ")
    credentials = credentials.strip()

    if scheme.lower() == "bearer" and credentials and _token_allowed(credentials, config.api_keys):
        return True

    api_key = connection.headers.get(API_KEY_HEADER)
    if api_key and _token_allowed(api_key, config.api_keys):
        return True

    if scheme.lower() == "basic" and credentials:
        pair = _basic_credentials(credentials)
        if pair is not None:
            return any(
                hmac.compare_digest(pair[0].encode(), user.encode())
                and hmac.compare_digest(pair[1].encode(), password.encode())
                for user, password in config.basic_credentials
            )

    return False


def auth_required_body() -> dict[str, object]:
    return error_envelope(AUTHENTICATION_REQUIRED, "Authentication required", data={"hint": AUTH_HINT})


async def send_auth_required(send: Send, config: AuthConfig) -> None:
    """Send a 401 with a WWW-Authenticate challenge and a JSON-RPC error body."""
    body = json.dumps(auth_required_body()).encode()
    await send(
        {
            "type": "http.response.start",
            "status": 401,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
                (b"www-authenticate", f'{config.challenge_scheme} realm="{config.realm}"'.encode()),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})


def generate_api_key() -> str:
    """Return a new random API key of the form ``mcp_`` + 32 alphanumerics."""
    alphabet = string.ascii_letters + string.digits
    return "mcp_" + "".join(secrets.choice(alphabet) for _ in range(32))
