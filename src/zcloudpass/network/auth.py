"""
Session lifecycle against the zcloudpass service.

Session creation walks a fixed chain of endpoint shapes so that older and
newer backends both work:

  1. {api_base}/auth/session
  2. {api_base}/auth/login
  3. {root}/auth/session
  4. {root}/auth/login

The first response that is not a 404 ends the walk, and the shape that produced
it is remembered for the lifetime of the client. Sessions are never refreshed
silently: `ensure_session` is the only path that logs in again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from zcloudpass.core.exceptions import AuthenticationRequiredError, HttpError, ZCloudPassError
from zcloudpass.core.models import SessionInfo
from zcloudpass.security.session import SessionStore, normalize_expires

from .http import ApiTransport, parse_error_response

logger = logging.getLogger(__name__)

NOT_FOUND = 404


class AuthClient:
    def __init__(self, transport: ApiTransport, store: Optional[SessionStore] = None):
        self.transport = transport
        self.store = store or SessionStore()
        self._session_url: Optional[str] = None

    # ------------------------------------------------------------------
    # Endpoint resolution
    # ------------------------------------------------------------------

    def session_endpoints(self) -> List[str]:
        """The session-creation URLs in the order they are tried."""
        base = self.transport.api_base
        root = self.transport.root_base
        return [
            f"{base}/auth/session",
            f"{base}/auth/login",
            f"{root}/auth/session",
            f"{root}/auth/login",
        ]

    def _post_session(self, payload: Dict[str, Any]):
        if self._session_url is not None:
            response = self.transport.request("POST", self._session_url, json_body=payload)
            if response.status_code != NOT_FOUND:
                return response
            # the backend moved; probe the whole chain again
            logger.info("cached session endpoint %s returned 404, re-probing", self._session_url)
            self._session_url = None

        response = None
        for url in self.session_endpoints():
            response = self.transport.request("POST", url, json_body=payload)
            if response.status_code != NOT_FOUND:
                self._session_url = url
                logger.debug("session endpoint resolved to %s", url)
                break
        return response

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def create_session(self, email: str, password: Optional[str] = None) -> SessionInfo:
        """Authenticate and persist a new session.

        Raises:
            HttpError: the service rejected the request (code is the service's
                own or ``http_<status>``).
            TransportError: no response was obtained.
        """
        payload: Dict[str, Any] = {"email": email}
        if password:
            payload["master_password"] = password

        response = self._post_session(payload)
        if not response.is_success:
            err = parse_error_response(response, "Failed to create session")
            logger.info("session creation rejected: %s (status %d)", err.code, response.status_code)
            raise err

        try:
            data = response.json()
            token = data["session_token"]
            if not isinstance(token, str) or not token:
                raise TypeError("session_token must be a non-empty string")
        except (ValueError, KeyError, TypeError):
            raise HttpError(
                "Session response did not include a session token",
                code="invalid_response",
                status=response.status_code,
            ) from None

        session = self.store.save(
            SessionInfo(token=token, expires_at=normalize_expires(data.get("expires_at")))
        )
        logger.info("session created, expires at %s", session.expires_at.isoformat())
        return session

    def ensure_session(self, email: str, password: Optional[str] = None) -> SessionInfo:
        """Return the cached session if still valid, else authenticate."""
        session = self.store.current()
        if session is not None:
            return session
        return self.create_session(email, password)

    def auth_header_if_available(self) -> Dict[str, str]:
        """Bearer header for a valid session, or ``{}``. Never logs in."""
        session = self.store.current()
        if session is None:
            return {}
        return session.auth_header()

    def require_auth_header(self) -> Dict[str, str]:
        headers = self.auth_header_if_available()
        if not headers:
            raise AuthenticationRequiredError("Not authenticated")
        return headers

    def session_token(self) -> Optional[str]:
        session = self.store.current()
        return session.token if session else None

    def is_authenticated(self) -> bool:
        return self.store.current() is not None

    # ------------------------------------------------------------------
    # Account operations
    # ------------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        encrypted_vault: Optional[str],
        username: Optional[str] = None,
    ) -> Any:
        """Create an account and log in with it.

        Returns the service's response body.
        """
        if not email:
            raise ValueError("email is required")
        if not password:
            raise ValueError("masterPassword is required for registration")

        payload: Dict[str, Any] = {
            "email": email,
            "master_password": password,
            "encrypted_vault": encrypted_vault,
        }
        if username:
            payload["username"] = username

        response = self.transport.request(
            "POST", f"{self.transport.api_base}/auth/register", json_body=payload
        )
        if not response.is_success:
            raise parse_error_response(response)

        self.create_session(email, password)
        logger.info("account registered")
        try:
            return response.json()
        except ValueError:
            return None

    def login(self, email: str, password: str) -> SessionInfo:
        if not email or not password:
            raise ValueError("email and masterPassword required for login")
        return self.create_session(email, password)

    def change_password(self, current_password: str, new_password: str) -> Any:
        """Switch the server-side login credential. Needs a valid session."""
        headers = self.require_auth_header()
        response = self.transport.request(
            "POST",
            f"{self.transport.api_base}/auth/change-password",
            json_body={"current_password": current_password, "new_password": new_password},
            headers=headers,
        )
        if not response.is_success:
            raise parse_error_response(response, "Failed to change password")
        logger.info("server credential changed")
        try:
            return response.json()
        except ValueError:
            return None

    def logout(self) -> None:
        """Tell the server (best effort) and always drop the local session."""
        try:
            headers = self.auth_header_if_available()
            if headers:
                self.transport.request(
                    "POST", f"{self.transport.api_base}/auth/logout", headers=headers
                )
        except ZCloudPassError as exc:
            logger.debug("logout request failed, ignoring: %s", exc)
        finally:
            self.store.clear()

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def fetch_health(self) -> str:
        return self._health(f"{self.transport.root_base}/health", "Health check failed")

    def fetch_auth_health(self) -> str:
        return self._health(f"{self.transport.api_base}/auth/health", "Auth health check failed")

    def _health(self, url: str, label: str) -> str:
        response = self.transport.request("GET", url)
        if not response.is_success:
            raise HttpError(f"{label}: {response.status_code} {response.text}".rstrip(), status=response.status_code)
        return response.text
