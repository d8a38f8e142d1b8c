"""
PKCE code_verifier / code_challenge generation and the X authorization URL.

The verifier stays with the caller (session) until the callback; only the
challenge and the state travel to the provider inside the authorization URL.
"""
import base64
import hashlib
import secrets
import urllib.parse
from typing import Iterable, Tuple

AUTH_URL = "https://twitter.com/i/oauth2/authorize"
# offline.access is what makes the provider issue a refresh token
SCOPES = (
    "tweet.read",
    "tweet.write",
    "users.read",
    "follows.read",
    "follows.write",
    "like.read",
    "like.write",
    "offline.access",
)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def generate_verifier() -> str:
    return _b64url(secrets.token_bytes(32))


def generate_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _b64url(digest)


def generate_state() -> str:
    """Opaque anti-forgery token, unrelated to the verifier."""
    return secrets.token_hex(16)


def generate_pkce_pair() -> Tuple[str, str]:
    verifier = generate_verifier()
    return verifier, generate_challenge(verifier)


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    code_challenge: str,
    state: str,
    scopes: Iterable[str] = SCOPES,
    auth_url: str = AUTH_URL,
) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    return auth_url + "?" + urllib.parse.urlencode(params)
