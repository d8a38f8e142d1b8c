# Shared fixtures: token stores, fake token endpoint, fake X client.

import json

import pytest
import requests
import tweepy

from tweetgate.token_store import Credential, FileTokenStore, MemoryTokenStore


def make_response(status_code=200, payload=None, reason="OK"):
    """Real requests.Response so tweepy / requests error handling sees what it expects."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = reason
    resp._content = json.dumps(payload if payload is not None else {}).encode()
    resp.headers["Content-Type"] = "application/json"
    return resp


def unauthorized():
    return tweepy.Unauthorized(
        make_response(401, {"title": "Unauthorized", "type": "about:blank", "status": 401, "detail": "Unauthorized"},
                      reason="Unauthorized")
    )


def forbidden():
    return tweepy.Forbidden(
        make_response(403, {"title": "Forbidden", "type": "about:blank", "status": 403, "detail": "Forbidden"},
                      reason="Forbidden")
    )


@pytest.fixture
def credential():
    return Credential(access_token="access-1", refresh_token="refresh-1", user_id="42")


@pytest.fixture
def memory_store():
    return MemoryTokenStore()


@pytest.fixture
def file_store(tmp_path):
    return FileTokenStore(tmp_path / "tokens.json")


class TokenEndpoint:
    """Stands in for requests.post against the token endpoint."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, status_code=200, payload=None):
        self.responses.append(make_response(status_code, payload, reason="OK" if status_code == 200 else "Error"))

    def __call__(self, url, data=None, headers=None, auth=None, timeout=None):
        self.calls.append({"url": url, "data": dict(data or {}), "auth": auth, "timeout": timeout})
        if not self.responses:
            raise AssertionError("unexpected call to token endpoint")
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def grants(self):
        return [c["data"].get("grant_type") for c in self.calls]


@pytest.fixture
def token_endpoint(monkeypatch):
    endpoint = TokenEndpoint()
    monkeypatch.setattr("tweetgate.oauth_client.requests.post", endpoint)
    return endpoint


class FakeX:
    """XClient replacement. Tokens listed in ``rejected`` raise 401 on every call."""

    def __init__(self):
        self.rejected = set()
        self.failures = {}
        self.calls = []
        self.tweets = {"100": "Original tweet text"}
        self.user_ids = []

    def __call__(self, access_token, user_id=None):
        self.user_ids.append(user_id)
        return _FakeXSession(self, access_token)


class _FakeXSession:
    def __init__(self, fake, token):
        self.fake = fake
        self.token = token

    def _record(self, method, *args):
        self.fake.calls.append((method, self.token) + args)
        if self.token in self.fake.rejected:
            raise unauthorized()
        if method in self.fake.failures:
            raise self.fake.failures[method]

    def get_me(self):
        self._record("get_me")
        return {"id": "42", "username": "jack"}

    def get_tweet_text(self, tweet_id):
        self._record("get_tweet_text", tweet_id)
        return self.fake.tweets.get(tweet_id, "")

    def create_tweet(self, text, media_ids=None):
        self._record("create_tweet", text, media_ids)
        return {"id": "200", "text": text}

    def reply(self, text, in_reply_to_tweet_id):
        self._record("reply", text, in_reply_to_tweet_id)
        return {"id": "201", "text": text}

    def like(self, tweet_id):
        self._record("like", tweet_id)
        return True

    def unlike(self, tweet_id):
        self._record("unlike", tweet_id)
        return False

    def retweet(self, tweet_id):
        self._record("retweet", tweet_id)
        return True

    def unretweet(self, tweet_id):
        self._record("unretweet", tweet_id)
        return False


@pytest.fixture
def fake_x():
    return FakeX()


class FakeGenerator:
    model = "test-model"

    def __init__(self, text="Generated reply"):
        self.text = text
        self.calls = []

    def generate(self, source_text, steering_text=None, model=None):
        self.calls.append((source_text, steering_text, model))
        return self.text


@pytest.fixture
def fake_generator():
    return FakeGenerator()
