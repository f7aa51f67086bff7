"""
Authentication collaborators consulted at connect time
"""

from typing import Any, Dict, Mapping, Optional

from .errors import AuthFailure
from .logger import log_security_event
from .validators import validate_username


class Authenticator:
    """Resolve connect credentials to a user identity or raise AuthFailure"""

    async def authenticate(self, credentials: Mapping[str, Any]) -> Optional[str]:
        raise NotImplementedError


class AnonymousAuthenticator(Authenticator):
    """Accepts every connection; an optional ``username`` becomes the identity"""

    async def authenticate(self, credentials: Mapping[str, Any]) -> Optional[str]:
        username = credentials.get("username")
        if username is None:
            return None
        if not validate_username(username):
            log_security_event("invalid_username", {"username": str(username)[:40]})
            raise AuthFailure("Username must be 1-20 alphanumeric characters")
        return username


class TokenAuthenticator(Authenticator):
    """
    Static bearer tokens mapped to user identities

    Connections without a ``token`` credential are accepted as anonymous
    only when ``allow_anonymous`` is set.
    """

    def __init__(self, tokens: Dict[str, str], allow_anonymous: bool = False):
        self.tokens = dict(tokens)
        self.allow_anonymous = allow_anonymous

    async def authenticate(self, credentials: Mapping[str, Any]) -> Optional[str]:
        token = credentials.get("token")
        if not token:
            if self.allow_anonymous:
                return None
            log_security_event("missing_token", {})
            raise AuthFailure("Missing token")

        user = self.tokens.get(token)
        if user is None:
            log_security_event("invalid_token", {"token_prefix": str(token)[:4]})
            raise AuthFailure()
        return user


def build_authenticator(settings) -> Authenticator:
    """Pick the authenticator for the configured token table"""
    if settings.auth_tokens:
        return TokenAuthenticator(settings.auth_tokens, allow_anonymous=settings.allow_anonymous)
    if not settings.allow_anonymous:
        # No tokens and no anonymous access: every connect is rejected
        return TokenAuthenticator({}, allow_anonymous=False)
    return AnonymousAuthenticator()
