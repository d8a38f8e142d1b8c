"""Error taxonomy shared by the OAuth flow, the dispatcher and the web layer."""
from typing import Optional


class TweetGateError(Exception):
    """Base class for every error this package raises on purpose."""


class NotAuthenticated(TweetGateError):
    """No usable credential for the user; they must run the authorization flow again."""


class CsrfMismatch(TweetGateError):
    """Callback state missing or different from the one issued with the auth URL."""


class ExchangeError(TweetGateError):
    """Provider rejected the authorization code / verifier, or identity lookup failed."""


class RefreshError(TweetGateError):
    """Provider rejected the refresh token."""


class InvalidRequest(TweetGateError):
    """Caller supplied missing or malformed parameters."""


class ActionFailed(TweetGateError):
    """Provider call failed for a reason unrelated to authorization."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ContentNotFound(ActionFailed):
    """Source content for a reply could not be fetched."""
