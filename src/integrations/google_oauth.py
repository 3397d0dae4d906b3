"""Service-account access tokens via the OAuth 2.0 JWT-bearer grant.

A service account signs a short-lived JWT assertion with its RSA key and
exchanges it at Google's token endpoint for a bearer token.
"""

import base64
import binascii
import json
import time
from typing import Any

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from src.integrations.base import ProviderAuthError, ProviderNotConfiguredError
from src.logging_config import get_logger

logger = get_logger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


class GoogleOAuthError(ProviderAuthError):
    """Token exchange failed or returned no access token."""

    pass


def _decode_base64(raw: str) -> str | None:
    try:
        return base64.b64decode(raw.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


def load_service_account_key(raw: str) -> dict[str, Any]:
    """Parse a service-account key stored as raw or base64-encoded JSON.

    Base64 is tried first unless the value already looks like JSON; if
    decoding or parsing the decoded text fails, the raw value is used.

    Raises:
        ProviderNotConfiguredError: if no candidate parses as a JSON object
    """
    candidates = [] if raw.lstrip().startswith("{") else [_decode_base64(raw)]
    candidates.append(raw)

    last_error = "empty key"
    for candidate in candidates:
        if candidate is None:
            continue
        try:
            key = json.loads(candidate)
        except ValueError as e:
            last_error = str(e)
            continue
        if isinstance(key, dict):
            return key
        last_error = "key is not a JSON object"

    raise ProviderNotConfiguredError(
        f"Failed to parse service account key: {last_error}"
    )


def build_assertion(
    service_account: dict[str, Any],
    scope: str,
    issued_at: int | None = None,
    token_url: str = TOKEN_URL,
) -> str:
    """Build the RS256-signed JWT assertion for the token exchange.

    Header carries ``kid`` = the key's ``private_key_id``; python-jose adds
    ``alg`` and ``typ`` and base64url-encodes all three segments.

    Raises:
        ProviderNotConfiguredError: missing ``client_email``/``private_key``
            or a private key that cannot sign
    """
    client_email = service_account.get("client_email")
    private_key = service_account.get("private_key")
    if not client_email or not private_key:
        raise ProviderNotConfiguredError(
            "Service account key is missing client_email or private_key"
        )

    now = int(time.time()) if issued_at is None else issued_at
    claims = {
        "iss": client_email,
        "scope": scope,
        "aud": token_url,
        "iat": now,
        "exp": now + ASSERTION_LIFETIME_SECONDS,
    }
    headers = {}
    if service_account.get("private_key_id"):
        headers["kid"] = service_account["private_key_id"]

    try:
        return jwt.encode(claims, private_key, algorithm="RS256", headers=headers)
    except JOSEError as e:
        raise ProviderNotConfiguredError(
            f"Service account private key cannot sign: {e}"
        ) from e


async def exchange_assertion(
    client: httpx.AsyncClient,
    assertion: str,
    token_url: str = TOKEN_URL,
) -> str:
    """Exchange a signed assertion for a bearer token.

    Raises:
        GoogleOAuthError: on a non-2xx response or a body without
            ``access_token``
    """
    response = await client.post(
        token_url,
        data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
    )

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    if not response.is_success:
        error = body.get("error_description") or body.get("error") or "Unknown error"
        logger.warning(
            "Google OAuth token exchange rejected",
            status_code=response.status_code,
            error=error,
        )
        raise GoogleOAuthError(f"Failed to get Google OAuth token: {error}")

    access_token = body.get("access_token")
    if not access_token:
        raise GoogleOAuthError("No access token in response")

    return access_token


async def mint_access_token(
    client: httpx.AsyncClient,
    service_account: dict[str, Any],
    scope: str,
    token_url: str = TOKEN_URL,
) -> str:
    """Sign an assertion for ``scope`` and exchange it for a bearer token."""
    assertion = build_assertion(service_account, scope, token_url=token_url)
    return await exchange_assertion(client, assertion, token_url=token_url)
