# Tests for oauth_pkce.py: verifier/challenge/state generation and the authorization URL.

import base64
import hashlib
import re
import urllib.parse

from tweetgate.oauth_pkce import (
    AUTH_URL,
    SCOPES,
    build_authorization_url,
    generate_challenge,
    generate_pkce_pair,
    generate_state,
    generate_verifier,
)

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestVerifier:
    def test_length_and_alphabet(self):
        for _ in range(200):
            verifier = generate_verifier()
            assert len(verifier) >= 43
            assert URL_SAFE.match(verifier)
            assert "=" not in verifier

    def test_fresh_each_call(self):
        assert len({generate_verifier() for _ in range(1000)}) == 1000


class TestChallenge:
    def test_is_base64url_sha256(self):
        verifier = generate_verifier()
        expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest()).rstrip(b"=").decode()
        assert generate_challenge(verifier) == expected

    def test_rfc7636_example(self):
        # Appendix B of RFC 7636
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert generate_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_deterministic(self):
        assert generate_challenge("abc") == generate_challenge("abc")

    def test_pair_matches(self):
        verifier, challenge = generate_pkce_pair()
        assert challenge == generate_challenge(verifier)


class TestState:
    def test_no_collisions(self):
        states = {generate_state() for _ in range(10_000)}
        assert len(states) == 10_000

    def test_entropy(self):
        # 16 bytes hex encoded
        assert re.match(r"^[0-9a-f]{32}$", generate_state())

    def test_unrelated_to_verifier(self):
        verifier, challenge = generate_pkce_pair()
        state = generate_state()
        assert state not in (verifier, challenge)


class TestAuthorizationUrl:
    def test_query_parameters(self):
        url = build_authorization_url(
            client_id="client-abc",
            redirect_uri="http://localhost:3000/auth/callback",
            code_challenge="challenge-xyz",
            state="state-123",
        )
        parsed = urllib.parse.urlparse(url)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == AUTH_URL
        query = urllib.parse.parse_qs(parsed.query)
        assert query == {
            "response_type": ["code"],
            "client_id": ["client-abc"],
            "redirect_uri": ["http://localhost:3000/auth/callback"],
            "scope": [" ".join(SCOPES)],
            "state": ["state-123"],
            "code_challenge": ["challenge-xyz"],
            "code_challenge_method": ["S256"],
        }

    def test_custom_scopes_and_endpoint(self):
        url = build_authorization_url(
            client_id="c",
            redirect_uri="https://example.com/cb",
            code_challenge="x",
            state="s",
            scopes=["tweet.read", "users.read"],
            auth_url="https://x.com/i/oauth2/authorize",
        )
        assert url.startswith("https://x.com/i/oauth2/authorize?response_type=code&")
        query = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
        assert query["scope"] == ["tweet.read users.read"]

    def test_requests_offline_access(self):
        assert "offline.access" in SCOPES
