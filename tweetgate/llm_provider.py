"""
Groq-backed reply generation.

Uses the official groq.Client (sync). Generation is best-effort: any failure
(network, timeout, malformed or empty response) yields FALLBACK_REPLY so the
reply pipeline never stalls on an LLM outage.
"""
from typing import Optional

from groq import Client

from .config import Config
from .logger import logger

FALLBACK_REPLY = "Thanks for sharing!"
TWEET_MAX_CHARS = 280


def _truncate_to_tweet(text: str) -> str:
    if len(text) <= TWEET_MAX_CHARS:
        return text
    trunc = text[:275]
    last_sent = trunc.rsplit('.', 1)[0]
    if last_sent and len(last_sent) > 50:
        return (last_sent + '.').strip()[:TWEET_MAX_CHARS]
    return (trunc[:277] + '...').strip()


def build_messages(source_text: str, steering_text: Optional[str] = None) -> list:
    system = (
        "You are a helpful Twitter bot that generates thoughtful, engaging replies to tweets. "
        "Keep responses under 280 characters, be friendly and conversational, and avoid controversial topics."
    )
    if steering_text:
        system += f"\nAdditional context: {steering_text}"
    user = f"Generate a reply to this tweet: \"{source_text}\""
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


class ReplyGenerator:
    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client=None,
    ):
        self.model = model or Config.LLM_MODEL
        self.temperature = temperature if temperature is not None else Config.LLM_TEMPERATURE
        self.max_tokens = max_tokens or Config.LLM_MAX_TOKENS
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not Config.GROQ_API_KEY:
                raise RuntimeError("GROQ_API_KEY not set in environment")
            kwargs = {"api_key": Config.GROQ_API_KEY, "timeout": Config.LLM_TIMEOUT_SECONDS, "max_retries": 0}
            if Config.GROQ_BASE_URL:
                kwargs["base_url"] = Config.GROQ_BASE_URL
            self._client = Client(**kwargs)
        return self._client

    def generate(self, source_text: str, steering_text: Optional[str] = None, model: Optional[str] = None) -> str:
        """Return reply text for ``source_text``; FALLBACK_REPLY on any failure."""
        messages = build_messages(source_text, steering_text)
        try:
            resp = self._get_client().chat.completions.create(
                model=model or self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            content = resp.choices[0].message.content
        except Exception as e:
            logger.warning("Reply generation failed, using fallback: %s", e)
            return FALLBACK_REPLY

        if not isinstance(content, str) or not content.strip():
            logger.warning("Reply generation returned empty content, using fallback")
            return FALLBACK_REPLY
        return _truncate_to_tweet(content.strip().replace("\n", " "))

