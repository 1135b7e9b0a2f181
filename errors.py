"""
Exceptions raised by the token manager, the Spotify/LRCLIB clients and the
request handlers. app.py maps each family to an HTTP status.
"""
from typing import Optional


class AuthError(Exception):
    """The user has to (re)authenticate with Spotify."""


class MissingCodeError(AuthError):
    def __init__(self, message: str = "No code found in callback URL"):
        super().__init__(message)


class MissingVerifierError(AuthError):
    def __init__(self, message: str = "No code verifier found in storage"):
        super().__init__(message)


class RefreshFailedError(AuthError):
    def __init__(self, message: str = "Failed to refresh tokens"):
        super().__init__(message)


class TokenExchangeError(AuthError):
    def __init__(self, status_code: int):
        super().__init__(f"Token exchange failed with status {status_code}")
        self.status_code = status_code


class UpstreamError(Exception):
    """A third-party service answered with something we can't use."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(UpstreamError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, 404)


class UnexpectedStatusError(UpstreamError):
    pass


class ValidationError(Exception):
    """Malformed request from our own caller."""


class ConfigError(Exception):
    """A required setting (client id, sp_dc cookie) is missing."""
