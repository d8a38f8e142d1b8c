"""
Token endpoint client: authorization-code exchange (with the PKCE verifier) and
refresh-token grant. Every credential it obtains is written to the TokenStore
before being returned.
"""
from typing import Callable, Optional, Tuple

import requests

from .config import Config
from .errors import ExchangeError, RefreshError
from .logger import logger
from .token_store import Credential, TokenStore
from .x_client import XClient

TOKEN_URL = "https://api.twitter.com/2/oauth2/token"


def lookup_identity(access_token: str) -> dict:
    """Resolve the user behind an access token ("who am I")."""
    return XClient(access_token).get_me()


class OAuthClient:
    def __init__(
        self,
        store: TokenStore,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        token_url: Optional[str] = None,
        identity_lookup: Callable[[str], dict] = lookup_identity,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.client_id = client_id if client_id is not None else Config.TW_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else Config.TW_CLIENT_SECRET
        self.redirect_uri = redirect_uri or Config.TW_REDIRECT_URI
        self.token_url = token_url or Config.TW_TOKEN_URL or TOKEN_URL
        self.identity_lookup = identity_lookup
        self.timeout = timeout if timeout is not None else Config.OAUTH_TIMEOUT_SECONDS

    def _post_token(self, data: dict) -> dict:
        """POST to the token endpoint. Raises requests exceptions / ValueError on failure."""
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        # Confidential clients authenticate with HTTP Basic; public PKCE clients send client_id
        if self.client_secret:
            auth = (self.client_id, self.client_secret)
        else:
            auth = None
            data = dict(data, client_id=self.client_id)
        resp = requests.post(self.token_url, data=data, headers=headers, auth=auth, timeout=self.timeout)
        if resp.status_code != 200:
            raise ValueError(f"token endpoint returned {resp.status_code}: {resp.text}")
        token_data = resp.json()
        if not isinstance(token_data, dict):
            raise ValueError("token response is not a JSON object")
        if not token_data.get("access_token"):
            raise ValueError("token response has no access_token")
        return token_data

    def exchange_with_profile(
        self, code: str, code_verifier: str, redirect_uri: Optional[str] = None
    ) -> Tuple[Credential, dict]:
        """Exchange an authorization code; returns the stored credential and the user profile."""
        try:
            token_data = self._post_token({
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri or self.redirect_uri,
                "code_verifier": code_verifier,
            })
        except (requests.RequestException, ValueError) as e:
            logger.warning("Token exchange failed: %s", e)
            raise ExchangeError(f"Token exchange failed: {e}") from e

        access_token = token_data["access_token"]
        try:
            profile = self.identity_lookup(access_token)
            user_id = str(profile["id"])
        except Exception as e:
            logger.warning("Identity lookup after token exchange failed: %s", e)
            raise ExchangeError(f"Identity lookup failed: {e}") from e

        credential = Credential(
            access_token=access_token,
            refresh_token=token_data.get("refresh_token") or "",
            user_id=user_id,
        )
        self.store.save(credential)
        logger.info("OAuth tokens obtained for user %s (@%s)", user_id, profile.get("username"))
        return credential, profile

    def exchange(self, code: str, code_verifier: str, redirect_uri: Optional[str] = None) -> Credential:
        credential, _ = self.exchange_with_profile(code, code_verifier, redirect_uri)
        return credential

    def refresh(self, credential: Credential) -> Credential:
        """Trade the refresh token for a new pair. Not retried: a rejection means re-auth."""
        if not credential.refresh_token:
            raise RefreshError(f"No refresh token stored for user {credential.user_id}")
        try:
            token_data = self._post_token({
                "grant_type": "refresh_token",
                "refresh_token": credential.refresh_token,
            })
        except (requests.RequestException, ValueError) as e:
            logger.warning("Token refresh failed for user %s: %s", credential.user_id, e)
            raise RefreshError(f"Token refresh failed: {e}") from e

        # Providers may not rotate the refresh token on every refresh
        refreshed = Credential(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token") or credential.refresh_token,
            user_id=credential.user_id,
        )
        self.store.save(refreshed)
        logger.info("Refreshed OAuth token for user %s", credential.user_id)
        return refreshed
