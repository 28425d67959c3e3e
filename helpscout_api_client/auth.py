"""
OAuth2 client-credentials authentication for the Help Scout API.

:class:`TokenManager` owns the single bearer token used by a client.
It requests a token by POSTing the application's ``client_id`` and
``client_secret`` with ``grant_type=client_credentials`` to the token
endpoint, keeps it for the lifetime reported in ``expires_in`` and
replaces it wholesale whenever a new one is requested.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .exceptions import HelpScoutConnectionError, UnauthorizedError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://api.helpscout.net/v2/oauth2/token"

# Help Scout issues tokens valid for two days
DEFAULT_TOKEN_LIFETIME = 172800
EXPIRY_BUFFER = 60


@dataclass(frozen=True)
class Credentials:
    """Application credentials for the client-credentials grant."""

    client_id: str
    client_secret: str

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must be provided")
        if not self.client_secret:
            raise ValueError("client_secret must be provided")

    def __repr__(self) -> str:
        return "Credentials(client_id=%r, client_secret='***')" % self.client_id


class TokenManager:
    """Acquire and hold the bearer token for one client.

    Parameters
    ----------
    credentials : Credentials
        The application's client ID and secret.
    token_url : str, optional
        Override the token endpoint URL.
    session : requests.Session, optional
        Session used to talk to the token endpoint.  A new session is
        created when omitted.
    timeout : float, optional
        Timeout in seconds for the token request.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        token_url: str = DEFAULT_TOKEN_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.credentials = credentials
        self.token_url = token_url
        self.session = session or requests.Session()
        self.timeout = timeout

        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0  # epoch seconds when token expires

    @property
    def has_token(self) -> bool:
        return self._access_token is not None

    def acquire(self) -> str:
        """Request a fresh token and make it the live one.

        Raises
        ------
        UnauthorizedError
            If the token endpoint rejects the credentials or answers
            without a usable ``access_token``.
        HelpScoutConnectionError
            If the token endpoint could not be reached.
        """
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
        }
        try:
            response = self.session.post(
                self.token_url, data=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise HelpScoutConnectionError(
                f"Failed to connect to token endpoint {self.token_url}: {exc}"
            ) from exc

        if not response.ok:
            raise UnauthorizedError(
                f"Token request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            token_info: Dict[str, Any] = response.json()
        except ValueError:
            token_info = {}
        access_token = token_info.get("access_token") if isinstance(token_info, dict) else None
        if not access_token:
            raise UnauthorizedError(
                "Token response did not contain an access_token",
                status_code=response.status_code,
            )

        expires_in = token_info.get("expires_in")
        if not isinstance(expires_in, (int, float)):
            expires_in = DEFAULT_TOKEN_LIFETIME

        self._access_token = access_token
        self._token_expiry = time.time() + float(expires_in)
        logger.info(
            "Acquired Help Scout access token for client %s (expires in %ss)",
            self.credentials.client_id,
            int(expires_in),
        )
        return access_token

    def invalidate(self) -> None:
        """Forget the live token; the next :attr:`token` access re-acquires."""
        self._access_token = None
        self._token_expiry = 0.0

    @property
    def token(self) -> str:
        """Return the live token, acquiring one if missing or about to expire."""
        if not self._access_token or time.time() >= (self._token_expiry - EXPIRY_BUFFER):
            return self.acquire()
        return self._access_token
