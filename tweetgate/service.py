"""
The four operations the web layer uses:

    begin_authorization()  -> (auth_url, PendingAuthorization)
    complete_authorization(code, state, pending) -> Credential
    dispatch(user_id, action, params) -> dict
    logout(user_id)

Callback protocol: NO_PENDING_AUTH -> AWAITING_CALLBACK -> AUTHENTICATED | FAILED.
Pending authorizations are kept here, keyed by state; the web layer only holds
the state and redeems it with take_pending(), which removes the record, so a
pending record never satisfies two callbacks.
"""
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .config import Config
from .dispatcher import ActionDispatcher
from .errors import ActionFailed, ContentNotFound, CsrfMismatch, InvalidRequest
from .llm_provider import ReplyGenerator
from .logger import logger
from .oauth_client import OAuthClient
from .oauth_pkce import build_authorization_url, generate_challenge, generate_state, generate_verifier
from .token_store import Credential, TokenStore, make_token_store
from .x_client import XClient


@dataclass
class PendingAuthorization:
    code_verifier: str
    state: str
    created_at: float = field(default_factory=time.monotonic, compare=False)

    def expired(self, ttl: float) -> bool:
        return (time.monotonic() - self.created_at) > ttl


def _require(params: dict, *names: str) -> None:
    missing = [name for name in names if not params.get(name)]
    if missing:
        raise InvalidRequest(f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")


class TweetService:
    def __init__(
        self,
        store: TokenStore,
        oauth_client: OAuthClient,
        generator: ReplyGenerator,
        client_factory: Callable[[str, str], XClient] = XClient,
        dispatcher: Optional[ActionDispatcher] = None,
        pending_ttl: Optional[float] = None,
    ):
        self.store = store
        self.oauth_client = oauth_client
        self.generator = generator
        self.client_factory = client_factory
        self.dispatcher = dispatcher or ActionDispatcher(store, oauth_client)
        self.pending_ttl = pending_ttl if pending_ttl is not None else Config.SESSION_MAX_AGE_SECONDS
        self._pending: Dict[str, PendingAuthorization] = {}
        self._pending_lock = threading.Lock()
        self._actions = {
            "tweet": self._tweet,
            "reply": self._reply,
            "reply_ai": self._reply_ai,
            "reply_preview": self._reply_preview,
            "like": self._like,
            "unlike": self._unlike,
            "retweet": self._retweet,
            "unretweet": self._unretweet,
            "me": self._me,
        }

    # ============ Authorization ============

    def begin_authorization(self) -> Tuple[str, PendingAuthorization]:
        verifier = generate_verifier()
        pending = PendingAuthorization(code_verifier=verifier, state=generate_state())
        auth_url = build_authorization_url(
            client_id=self.oauth_client.client_id,
            redirect_uri=self.oauth_client.redirect_uri,
            code_challenge=generate_challenge(verifier),
            state=pending.state,
            auth_url=Config.TW_AUTH_URL,
        )
        with self._pending_lock:
            for key in [k for k, p in self._pending.items() if p.expired(self.pending_ttl)]:
                del self._pending[key]
            self._pending[pending.state] = pending
        return auth_url, pending

    def take_pending(self, state: Optional[str]) -> Optional[PendingAuthorization]:
        """Remove and return the pending authorization issued with ``state``."""
        if not state:
            return None
        with self._pending_lock:
            pending = self._pending.pop(state, None)
        if pending is None or pending.expired(self.pending_ttl):
            return None
        return pending

    def complete_authorization_with_profile(
        self, code: Optional[str], state: Optional[str], pending: Optional[PendingAuthorization]
    ) -> Tuple[Credential, dict]:
        if pending is None or not state or not secrets.compare_digest(state.encode(), pending.state.encode()):
            logger.warning("OAuth callback rejected: state mismatch")
            raise CsrfMismatch("Invalid callback parameters")
        if not code:
            raise InvalidRequest("Authorization code missing from callback")
        return self.oauth_client.exchange_with_profile(code, pending.code_verifier)

    def complete_authorization(
        self, code: Optional[str], state: Optional[str], pending: Optional[PendingAuthorization]
    ) -> Credential:
        credential, _ = self.complete_authorization_with_profile(code, state, pending)
        return credential

    def logout(self, user_id: str) -> None:
        self.dispatcher.forget(user_id)
        if self.store.delete(user_id):
            logger.info("User %s logged out", user_id)

    # ============ Actions ============

    def dispatch(self, user_id: str, action: str, params: Optional[dict] = None) -> dict:
        if not user_id:
            raise InvalidRequest("loggedUserId is required")
        handler = self._actions.get(action)
        if handler is None:
            raise InvalidRequest(f"Unknown action: {action}")
        return handler(user_id, params or {})

    def _call(self, user_id: str, method: str, *args, **kwargs):
        """Run an XClient method through the dispatcher with a freshly loaded token."""
        return self.dispatcher.invoke(
            user_id, lambda token: getattr(self.client_factory(token, user_id), method)(*args, **kwargs)
        )

    def _source_text(self, user_id: str, tweet_id: str) -> str:
        try:
            return self._call(user_id, "get_tweet_text", tweet_id)
        except ActionFailed as e:
            logger.warning("Error fetching tweet %s: %s", tweet_id, e)
            return ""

    def _tweet(self, user_id: str, params: dict) -> dict:
        _require(params, "text")
        data = self._call(user_id, "create_tweet", params["text"], params.get("media_ids") or None)
        return {"tweet": data}

    def _reply(self, user_id: str, params: dict) -> dict:
        _require(params, "reply_to_tweet_id")
        use_ai = bool(params.get("use_ai"))
        text = params.get("text")
        if not text and not use_ai:
            raise InvalidRequest("Either provide text or set useAI to true")

        tweet_id = params["reply_to_tweet_id"]
        if use_ai:
            text = self.generator.generate(self._source_text(user_id, tweet_id), params.get("custom_prompt"))

        result = {"reply": self._call(user_id, "reply", text, tweet_id)}
        if use_ai:
            result["generated_text"] = text
        return result

    def _generate_for(self, user_id: str, params: dict) -> Tuple[str, str, str]:
        _require(params, "reply_to_tweet_id")
        original = self._source_text(user_id, params["reply_to_tweet_id"])
        if not original:
            raise ContentNotFound("Could not fetch original tweet")
        model = params.get("model") or self.generator.model
        generated = self.generator.generate(original, params.get("custom_prompt"), model=model)
        return original, generated, model

    def _reply_ai(self, user_id: str, params: dict) -> dict:
        original, generated, model = self._generate_for(user_id, params)
        data = self._call(user_id, "reply", generated, params["reply_to_tweet_id"])
        return {"reply": data, "original_tweet": original, "generated_reply": generated, "model": model}

    def _reply_preview(self, user_id: str, params: dict) -> dict:
        original, generated, model = self._generate_for(user_id, params)
        return {"original_tweet": original, "generated_reply": generated, "model": model, "preview": True}

    def _like(self, user_id: str, params: dict) -> dict:
        _require(params, "tweet_id")
        return {"liked": self._call(user_id, "like", params["tweet_id"])}

    def _unlike(self, user_id: str, params: dict) -> dict:
        _require(params, "tweet_id")
        return {"liked": self._call(user_id, "unlike", params["tweet_id"])}

    def _retweet(self, user_id: str, params: dict) -> dict:
        _require(params, "tweet_id")
        return {"retweeted": self._call(user_id, "retweet", params["tweet_id"])}

    def _unretweet(self, user_id: str, params: dict) -> dict:
        _require(params, "tweet_id")
        return {"retweeted": self._call(user_id, "unretweet", params["tweet_id"])}

    def _me(self, user_id: str, params: dict) -> dict:
        return {"user": self._call(user_id, "get_me")}


def build_service(store: Optional[TokenStore] = None) -> TweetService:
    store = store or make_token_store()
    oauth_client = OAuthClient(store)
    return TweetService(store, oauth_client, ReplyGenerator())
