"""
Authenticated action dispatcher.

Every provider-facing call goes through ``ActionDispatcher.invoke``:
load credential -> call -> on 401 refresh once (serialized per user) -> retry once.
No token is cached between calls; each invoke re-loads from the TokenStore.
"""
import threading
from typing import Callable, Dict, TypeVar

from .errors import ActionFailed, NotAuthenticated, RefreshError, TweetGateError
from .logger import logger
from .oauth_client import OAuthClient
from .token_store import Credential, TokenStore

T = TypeVar("T")


def is_auth_rejection(exception: Exception) -> bool:
    """Check if exception carries a 401 response (expired or revoked access token)."""
    response = getattr(exception, "response", None)
    if response is None:
        return False
    status_code = getattr(response, "status_code", None)
    if status_code is None:
        # http.client.HTTPResponse
        status_code = getattr(response, "status", None)
    return status_code == 401


class ActionDispatcher:
    def __init__(self, store: TokenStore, oauth_client: OAuthClient):
        self.store = store
        self.oauth_client = oauth_client
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def forget(self, user_id: str) -> None:
        """Drop the refresh lock kept for ``user_id`` (on logout)."""
        with self._locks_guard:
            self._locks.pop(user_id, None)

    def _load(self, user_id: str) -> Credential:
        credential = self.store.load(user_id)
        if credential is None or credential.user_id != user_id:
            raise NotAuthenticated(f"User {user_id} is not authenticated")
        return credential

    def _refreshed_credential(self, user_id: str, rejected_token: str) -> Credential:
        """Return a credential newer than ``rejected_token``, refreshing at most once per user at a time."""
        with self._user_lock(user_id):
            current = self._load(user_id)
            if current.access_token != rejected_token:
                # Another caller refreshed while we waited for the lock
                logger.debug("Using token refreshed concurrently for user %s", user_id)
                return current
            try:
                return self.oauth_client.refresh(current)
            except RefreshError as e:
                raise NotAuthenticated(f"Re-authentication required for user {user_id}") from e

    def invoke(self, user_id: str, provider_call: Callable[[str], T]) -> T:
        credential = self._load(user_id)
        try:
            return provider_call(credential.access_token)
        except TweetGateError:
            raise
        except Exception as e:
            if not is_auth_rejection(e):
                logger.warning("Provider call failed for user %s: %s", user_id, e)
                raise ActionFailed(f"Provider call failed: {e}", cause=e) from e
            logger.info("Access token rejected for user %s, refreshing", user_id)

        credential = self._refreshed_credential(user_id, credential.access_token)
        try:
            return provider_call(credential.access_token)
        except TweetGateError:
            raise
        except Exception as e:
            logger.warning("Provider call failed after token refresh for user %s: %s", user_id, e)
            raise ActionFailed(f"Provider call failed after token refresh: {e}", cause=e) from e

