"""
Twitter API v2 wrapper acting on behalf of a user (OAuth2 user-context access token).

tweepy.Client accepts the PKCE access token as its bearer token; every call passes
``user_auth=False`` so tweepy sends it as ``Authorization: Bearer`` instead of
signing with OAuth1 keys. tweepy.HTTPException subclasses propagate unchanged:
the dispatcher inspects their status code to detect an expired token.
"""
from typing import List, Optional

import tweepy


def _as_dict(obj) -> dict:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    # tweepy.User / tweepy.Tweet keep the raw payload in .data
    return dict(getattr(obj, "data", {}) or {})


class XClient:
    """Wrapper for Twitter API v2 using an OAuth2 user access token."""

    def __init__(self, access_token: str, user_id: Optional[str] = None):
        self.client = tweepy.Client(bearer_token=access_token)
        if user_id:
            # like/retweet look up the acting user id unless tweepy already has it
            self.client._user_id = user_id

    def get_me(self) -> dict:
        """Get authenticated user info."""
        resp = self.client.get_me(user_auth=False, user_fields=["username", "name"])
        return _as_dict(resp.data)

    def get_tweet_text(self, tweet_id: str) -> str:
        resp = self.client.get_tweet(
            tweet_id,
            tweet_fields=["text", "author_id", "created_at"],
            user_auth=False,
        )
        return _as_dict(resp.data).get("text", "") or ""

    def create_tweet(self, text: str, media_ids: Optional[List[str]] = None) -> dict:
        kwargs = {"text": text, "user_auth": False}
        if media_ids:
            kwargs["media_ids"] = media_ids
        resp = self.client.create_tweet(**kwargs)
        return _as_dict(resp.data)

    def reply(self, text: str, in_reply_to_tweet_id: str) -> dict:
        resp = self.client.create_tweet(
            text=text,
            in_reply_to_tweet_id=in_reply_to_tweet_id,
            user_auth=False,
        )
        return _as_dict(resp.data)

    def like(self, tweet_id: str) -> bool:
        resp = self.client.like(tweet_id, user_auth=False)
        return bool(_as_dict(resp.data).get("liked"))

    def unlike(self, tweet_id: str) -> bool:
        resp = self.client.unlike(tweet_id, user_auth=False)
        return bool(_as_dict(resp.data).get("liked"))

    def retweet(self, tweet_id: str) -> bool:
        resp = self.client.retweet(tweet_id, user_auth=False)
        return bool(_as_dict(resp.data).get("retweeted"))

    def unretweet(self, tweet_id: str) -> bool:
        resp = self.client.unretweet(tweet_id, user_auth=False)
        return bool(_as_dict(resp.data).get("retweeted"))
