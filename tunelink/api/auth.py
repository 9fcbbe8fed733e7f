"""
Handles authentication with the Deezer gateway using a long-lived ARL
session cookie.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict

from tunelink.exceptions import AuthenticationError, DecodeError

if TYPE_CHECKING:
    from .client import DeezerAPIClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeezerSession:
    """
    Tokens issued for one authenticated session.

    A session belongs to a single download attempt and is discarded with the
    HTTP client that obtained it.
    """

    api_token: str
    license_token: str
    user_id: int


class DeezerAuthenticator:
    """
    Manages the authentication flow for the Deezer API client.
    """

    def __init__(self, api_client: "DeezerAPIClient"):
        """
        Initializes the authenticator.

        Args:
            api_client: A reference to the owning DeezerAPIClient instance.
        """
        self._api_client = api_client

    async def authenticate(self) -> DeezerSession:
        """
        Exchanges the ARL cookie for an API token and a license token.

        Returns:
            The new session, which is also stored on the API client.

        Raises:
            AuthenticationError: If the cookie is missing, invalid or expired.
        """
        if not self._api_client.arl:
            raise AuthenticationError("No ARL cookie configured for Deezer.")

        log.debug("Authenticating with Deezer...")
        response = await self._api_client.gateway_call(
            "deezer.getUserData",
            api_token="",
            timeout=self._api_client.auth_timeout,
            cookies={"arl": self._api_client.arl},
        )
        session = self._parse_user_data(response)
        self._api_client.session = session
        log.debug(f"Authenticated with Deezer as user {session.user_id}")
        return session

    @staticmethod
    def _parse_user_data(response: Dict[str, Any]) -> DeezerSession:
        results = response.get("results")
        if not isinstance(results, dict):
            raise DecodeError("Deezer user data response has no 'results' object.")

        user = results.get("USER") or {}
        try:
            user_id = int(user.get("USER_ID") or 0)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Unexpected USER_ID in user data: {e}") from e

        if user_id == 0:
            raise AuthenticationError("The ARL cookie is invalid or has expired.")

        return DeezerSession(
            api_token=str(results.get("checkForm") or ""),
            license_token=str((user.get("OPTIONS") or {}).get("license_token") or ""),
            user_id=user_id,
        )
