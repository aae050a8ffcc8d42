"""Interactive OAuth 2 authorization for Google APIs.

Meant for an operator sitting at a terminal: when no usable token is cached,
a consent URL is printed, the operator logs into a Google account, and pastes
the code Google hands back. The resulting token is cached in a JSON file so
later runs skip the consent screen.

The client descriptor is the ``credentials.json`` file downloaded from a
Google Cloud project that has an OAuth 2.0 client id of the "Desktop" (formerly
"Other") type.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from pydantic import BaseModel, Field, ValidationError

from repo_archiver.config import ConfigurationError
from repo_archiver.errors import RemoteApiError

LOG = logging.getLogger(__name__)

DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"
DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"

Ask = Callable[[str], str]


class OAuthClientSecrets(BaseModel):
    client_id: str
    client_secret: str = Field(repr=False)
    redirect_uris: List[str] = Field(min_length=1)
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: str = DEFAULT_TOKEN_URI

    @property
    def redirect_uri(self) -> str:
        return self.redirect_uris[0]

    def to_client_config(self) -> Dict[str, Any]:
        return {"installed": self.model_dump()}


def load_drive_credentials(
    scopes: Iterable[str],
    client_secrets_path: Path,
    token_cache_path: Path,
    ask: Ask = input,
) -> Credentials:
    """Return Google credentials, from the token cache or the consent flow."""
    scope_list = sorted(set(scopes))
    secrets = read_client_secrets(client_secrets_path)

    credentials = read_cached_token(token_cache_path, secrets, scope_list)
    if credentials is not None:
        LOG.debug("Using cached Google token from %s", token_cache_path)
        return credentials

    credentials = acquire_token_interactively(secrets, scope_list, ask)
    write_token_cache(token_cache_path, credentials)
    return credentials


def read_client_secrets(path: Path) -> OAuthClientSecrets:
    if not path.exists():
        raise ConfigurationError(f"Google OAuth client file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Unable to read Google OAuth client file {path}: {exc}") from exc

    block = None
    if isinstance(raw, dict):
        block = raw.get("installed") or raw.get("web")
    if not isinstance(block, dict):
        raise ConfigurationError(f"Google OAuth client file {path} has no 'installed' client")

    try:
        return OAuthClientSecrets.model_validate(block)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid Google OAuth client file {path}: {exc}") from exc


def read_cached_token(
    path: Path,
    secrets: OAuthClientSecrets,
    scopes: List[str],
) -> Optional[Credentials]:
    try:
        info = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        LOG.warning("Ignoring unreadable token cache %s: %s", path, exc)
        return None

    if not isinstance(info, dict):
        LOG.warning("Ignoring token cache %s: not a JSON object", path)
        return None

    # Caches written by other OAuth clients store the raw token response.
    if "token" not in info and "access_token" in info:
        info["token"] = info["access_token"]
    for key, value in (
        ("client_id", secrets.client_id),
        ("client_secret", secrets.client_secret),
        ("token_uri", secrets.token_uri),
    ):
        info.setdefault(key, value)

    if not info.get("refresh_token"):
        if not info.get("token"):
            LOG.warning("Ignoring token cache %s: no access or refresh token", path)
            return None
        # Access token only: used as is until Google rejects it.
        return Credentials(
            token=info["token"],
            client_id=info["client_id"],
            client_secret=info["client_secret"],
            token_uri=info["token_uri"],
            scopes=scopes,
        )

    try:
        return Credentials.from_authorized_user_info(info, scopes)
    except ValueError as exc:
        LOG.warning("Ignoring token cache %s: %s", path, exc)
        return None


def acquire_token_interactively(
    secrets: OAuthClientSecrets,
    scopes: List[str],
    ask: Ask = input,
) -> Credentials:
    flow = Flow.from_client_config(
        secrets.to_client_config(),
        scopes=scopes,
        redirect_uri=secrets.redirect_uri,
    )
    # prompt=consent makes Google hand out a refresh token on every grant.
    auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
    print("Authorize this app by visiting this url:", auth_url)
    code = ask("Enter the code from that page here: ").strip()

    try:
        flow.fetch_token(code=code)
    except (OAuth2Error, requests.RequestException) as exc:
        raise RemoteApiError(f"Unable to exchange authorization code for a Google token: {exc}") from exc
    return flow.credentials


def write_token_cache(path: Path, credentials: Credentials) -> None:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(credentials.to_json())
    except OSError as exc:
        LOG.warning("Unable to write token cache %s: %s", path, exc)
