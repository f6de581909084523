"""
Microsoft Graph authentication using MSAL (client credentials flow).
"""

from __future__ import annotations

import logging
from typing import Optional

import keyring
import msal
from keyring.errors import KeyringError

from ..domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


KEYRING_SERVICE_NAME = "slotbooker"


class GraphAuthenticator:
    """
    Handles app-only authentication with Microsoft Graph.

    The booking service runs unattended, so it signs in as the app
    registration itself:
    1. Client secret comes from config or the OS keyring
    2. MSAL exchanges it for an access token
    3. MSAL keeps the token in its in-memory cache until it expires
    """

    # App-only tokens carry the permissions granted to the registration
    SCOPES = ["https://graph.microsoft.com/.default"]

    def __init__(
        self,
        client_id: str,
        tenant_id: str,
        client_secret: str | None = None,
        authority_url: str | None = None,
    ):
        """
        Initialize the authenticator.

        Args:
            client_id: Azure AD application (client) ID
            tenant_id: Azure AD tenant ID
            client_secret: Client secret; looked up in the keyring when empty
            authority_url: Optional custom authority URL
        """
        self.client_id = client_id
        self.tenant_id = tenant_id

        # Build authority URL
        if authority_url:
            self.authority = authority_url
        else:
            self.authority = f"https://login.microsoftonline.com/{tenant_id}"

        self._key_identifier = f"{self.client_id}:{self.tenant_id}"
        self._client_secret = client_secret or None
        self._app: Optional[msal.ConfidentialClientApplication] = None

    def get_access_token(self) -> str:
        """
        Get a valid access token, using the MSAL cache when possible.

        Returns:
            Access token string

        Raises:
            AuthenticationError: If authentication fails
        """
        result = self._get_app().acquire_token_for_client(scopes=self.SCOPES)

        if not result or "access_token" not in result:
            error = (result or {}).get("error_description", "Unknown error")
            raise AuthenticationError(f"Authentication failed: {error}")

        return result["access_token"]

    def store_secret(self, client_secret: str) -> None:
        """Save the client secret in the OS keyring."""
        try:
            keyring.set_password(KEYRING_SERVICE_NAME, self._key_identifier, client_secret)
        except KeyringError as exc:
            raise AuthenticationError(f"Could not store client secret in keyring: {exc}") from exc
        self._client_secret = client_secret
        self._app = None

    def clear_secret(self) -> None:
        """Remove the client secret from the OS keyring."""
        try:
            keyring.delete_password(KEYRING_SERVICE_NAME, self._key_identifier)
        except KeyringError as exc:
            logger.warning("Could not remove client secret from keyring: %s", exc)
        self._client_secret = None
        self._app = None

    def _get_app(self) -> msal.ConfidentialClientApplication:
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self.client_id,
                authority=self.authority,
                client_credential=self._resolve_secret(),
            )
        return self._app

    def _resolve_secret(self) -> str:
        if self._client_secret:
            return self._client_secret

        try:
            secret = keyring.get_password(KEYRING_SERVICE_NAME, self._key_identifier)
        except KeyringError as exc:
            raise AuthenticationError(f"Reading client secret from keyring failed: {exc}") from exc

        if not secret:
            raise AuthenticationError(
                "No client secret configured. Set graph.client_secret or run "
                "'slotbooker store-secret'."
            )

        self._client_secret = secret
        return secret
