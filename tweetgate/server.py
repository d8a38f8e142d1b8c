"""
Flask app exposing the OAuth2 PKCE flow and the tweet actions over HTTP.

The signed session cookie carries only the state between /auth/url (or
/auth/login) and /auth/callback; the code verifier stays in TweetService.
Run: python -m tweetgate.main
"""
from datetime import datetime, timedelta, timezone

from flask import Flask, jsonify, redirect, request, session
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import (
    ActionFailed,
    ContentNotFound,
    CsrfMismatch,
    ExchangeError,
    InvalidRequest,
    NotAuthenticated,
)
from .logger import logger
from .service import TweetService, build_service

PENDING_KEY = "oauth_pending"

# JSON body field -> service param
ACTION_FIELDS = {
    "text": "text",
    "mediaIds": "media_ids",
    "replyToTweetId": "reply_to_tweet_id",
    "useAI": "use_ai",
    "customPrompt": "custom_prompt",
    "model": "model",
    "tweetId": "tweet_id",
}

# action -> message used when the provider call fails
ACTION_ERRORS = {
    "tweet": "Failed to tweet",
    "reply": "Failed to reply",
    "reply_ai": "Failed to generate AI reply",
    "reply_preview": "Failed to generate preview",
    "like": "Failed to like tweet",
    "unlike": "Failed to unlike tweet",
    "retweet": "Failed to retweet",
    "unretweet": "Failed to unretweet",
    "me": "Failed to get user info",
}

RESPONSE_KEYS = {
    "generated_text": "generatedText",
    "original_tweet": "originalTweet",
    "generated_reply": "generatedReply",
}


def _camel(result: dict) -> dict:
    return {RESPONSE_KEYS.get(k, k): v for k, v in result.items()}


def create_app(service: TweetService = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = Config.SESSION_SECRET
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=Config.is_production(),
        PERMANENT_SESSION_LIFETIME=timedelta(seconds=Config.SESSION_MAX_AGE_SECONDS),
    )
    service = service or build_service()
    app.extensions["tweetgate"] = service

    def _start_authorization():
        auth_url, pending = service.begin_authorization()
        session.permanent = True
        session[PENDING_KEY] = pending.state
        return auth_url, pending

    @app.route("/auth/url")
    def auth_url():
        url, pending = _start_authorization()
        return jsonify(
            authUrl=url,
            state=pending.state,
            instructions="Copy this URL and paste it in a browser with JavaScript enabled to authenticate",
        )

    @app.route("/auth/login")
    def auth_login():
        url, pending = _start_authorization()
        if request.args.get("json") == "true":
            return jsonify(authUrl=url, state=pending.state, message="Visit this URL in your browser to authenticate")
        logger.info("Redirecting to authorization URL")
        return redirect(url)

    @app.route("/auth/callback")
    def auth_callback():
        # consumed whatever the outcome
        pending = service.take_pending(session.pop(PENDING_KEY, None))
        error = request.args.get("error")
        if error:
            logger.warning("Provider returned error on callback: %s", error)
            return jsonify(error=f"Error from provider: {error}"), 400
        try:
            credential, profile = service.complete_authorization_with_profile(
                request.args.get("code"), request.args.get("state"), pending
            )
        except (CsrfMismatch, InvalidRequest):
            return jsonify(error="Invalid callback parameters"), 400
        except ExchangeError as e:
            logger.error("OAuth callback error: %s", e)
            return jsonify(error="Authentication failed"), 500

        session["loggedUserId"] = credential.user_id
        return jsonify(
            success=True,
            message="Authentication successful",
            userId=credential.user_id,
            username=profile.get("username"),
        )

    def _run_action(action: str, user_id: str = None):
        body = request.get_json(silent=True) or {}
        user_id = user_id or body.get("loggedUserId")
        params = {ACTION_FIELDS[k]: v for k, v in body.items() if k in ACTION_FIELDS}
        try:
            result = service.dispatch(user_id, action, params)
        except InvalidRequest as e:
            return jsonify(error=str(e)), 400
        except NotAuthenticated:
            return jsonify(error="User not authenticated"), 401
        except ContentNotFound as e:
            return jsonify(error=str(e)), 404
        except ActionFailed as e:
            logger.error("%s error for user %s: %s", action, user_id, e)
            return jsonify(error=ACTION_ERRORS[action]), 500
        return jsonify(success=True, **_camel(result))

    @app.route("/tweet", methods=["POST"])
    def tweet():
        return _run_action("tweet")

    @app.route("/reply", methods=["POST"])
    def reply():
        return _run_action("reply")

    @app.route("/reply/ai", methods=["POST"])
    def reply_ai():
        return _run_action("reply_ai")

    @app.route("/reply/preview", methods=["POST"])
    def reply_preview():
        return _run_action("reply_preview")

    @app.route("/like", methods=["POST"])
    def like():
        return _run_action("like")

    @app.route("/unlike", methods=["POST"])
    def unlike():
        return _run_action("unlike")

    @app.route("/retweet", methods=["POST"])
    def retweet():
        return _run_action("retweet")

    @app.route("/unretweet", methods=["POST"])
    def unretweet():
        return _run_action("unretweet")

    @app.route("/user/<logged_user_id>")
    def get_user(logged_user_id):
        return _run_action("me", logged_user_id)

    @app.route("/logout/<logged_user_id>", methods=["POST"])
    def logout(logged_user_id):
        service.logout(logged_user_id)
        if session.get("loggedUserId") == logged_user_id:
            session.pop("loggedUserId")
        return jsonify(success=True, message="Logged out successfully")

    @app.route("/health")
    def health():
        return jsonify(status="OK", timestamp=datetime.now(timezone.utc).isoformat())

    @app.errorhandler(Exception)
    def unhandled(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error: %s", e)
        return jsonify(error="Internal server error"), 500

    return app
