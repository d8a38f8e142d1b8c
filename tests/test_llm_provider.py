# Tests for llm_provider.py: reply generation and the fallback path.

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from tweetgate.config import Config
from tweetgate.llm_provider import FALLBACK_REPLY, ReplyGenerator, _truncate_to_tweet, build_messages


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def groq():
    client = MagicMock()
    client.chat.completions.create.return_value = _completion("  Great point, thanks!  ")
    return client


class TestBuildMessages:
    def test_roles_and_source(self):
        messages = build_messages("hello world")
        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[1]["content"] == 'Generate a reply to this tweet: "hello world"'
        assert "Additional context" not in messages[0]["content"]

    def test_steering_text(self):
        messages = build_messages("hello", "be playful")
        assert "Additional context: be playful" in messages[0]["content"]


class TestReplyGenerator:
    def test_returns_trimmed_text(self, groq):
        gen = ReplyGenerator(model="m1", temperature=0.7, max_tokens=100, client=groq)
        assert gen.generate("source") == "Great point, thanks!"
        kwargs = groq.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m1"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 100
        assert kwargs["messages"] == build_messages("source")

    def test_model_override(self, groq):
        gen = ReplyGenerator(model="m1", client=groq)
        gen.generate("source", "ctx", model="m2")
        assert groq.chat.completions.create.call_args.kwargs["model"] == "m2"

    def test_timeout_falls_back(self, groq):
        groq.chat.completions.create.side_effect = TimeoutError("timed out")
        assert ReplyGenerator(client=groq).generate("source") == FALLBACK_REPLY

    def test_api_error_falls_back(self, groq):
        groq.chat.completions.create.side_effect = RuntimeError("500 from provider")
        assert ReplyGenerator(client=groq).generate("source") == FALLBACK_REPLY

    def test_empty_content_falls_back(self, groq):
        groq.chat.completions.create.return_value = _completion("   ")
        assert ReplyGenerator(client=groq).generate("source") == FALLBACK_REPLY

    def test_none_content_falls_back(self, groq):
        groq.chat.completions.create.return_value = _completion(None)
        assert ReplyGenerator(client=groq).generate("source") == FALLBACK_REPLY

    def test_malformed_response_falls_back(self, groq):
        groq.chat.completions.create.return_value = SimpleNamespace(choices=[])
        assert ReplyGenerator(client=groq).generate("source") == FALLBACK_REPLY

    def test_missing_api_key_falls_back(self, monkeypatch):
        monkeypatch.setattr(Config, "GROQ_API_KEY", None)
        assert ReplyGenerator().generate("source") == FALLBACK_REPLY

    def test_long_output_truncated(self, groq):
        groq.chat.completions.create.return_value = _completion("word " * 100)
        assert len(ReplyGenerator(client=groq).generate("source")) <= 280


class TestTruncate:
    def test_short_untouched(self):
        assert _truncate_to_tweet("short") == "short"

    def test_cuts_at_sentence(self):
        text = "First sentence is long enough to keep around here. " * 10
        out = _truncate_to_tweet(text)
        assert len(out) <= 280
        assert out.endswith(".")
