import pytest

from chatroom import (
    AnonymousAuthenticator,
    AuthFailure,
    Settings,
    TokenAuthenticator,
    build_authenticator,
    load_settings,
)
from chatroom.config import parse_auth_tokens


class TestAuthenticators:

    @pytest.mark.asyncio
    async def test_anonymous_accepts_everyone(self):
        auth = AnonymousAuthenticator()

        assert await auth.authenticate({}) is None
        assert await auth.authenticate({"username": "alice"}) == "alice"

    @pytest.mark.asyncio
    async def test_anonymous_rejects_bad_username(self):
        with pytest.raises(AuthFailure):
            await AnonymousAuthenticator().authenticate({"username": "not a name!"})

    @pytest.mark.asyncio
    async def test_token_lookup(self):
        auth = TokenAuthenticator({"s3cret": "alice"})

        assert await auth.authenticate({"token": "s3cret"}) == "alice"
        with pytest.raises(AuthFailure):
            await auth.authenticate({"token": "guess"})
        with pytest.raises(AuthFailure):
            await auth.authenticate({})

    @pytest.mark.asyncio
    async def test_token_with_anonymous_fallback(self):
        auth = TokenAuthenticator({"s3cret": "alice"}, allow_anonymous=True)

        assert await auth.authenticate({}) is None
        with pytest.raises(AuthFailure):
            await auth.authenticate({"token": "guess"})

    def test_build_authenticator(self):
        assert isinstance(build_authenticator(Settings()), AnonymousAuthenticator)
        assert isinstance(build_authenticator(Settings(auth_tokens={"t": "u"})), TokenAuthenticator)
        locked = build_authenticator(Settings(allow_anonymous=False))
        assert isinstance(locked, TokenAuthenticator)
        assert locked.allow_anonymous is False


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("CHAT_PORT", "CHAT_DEFAULT_ROOM", "CHAT_ECHO_TO_SENDER", "CHAT_AUTH_TOKENS"):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings()

        assert settings.port == 8000
        assert settings.default_room == "chat_room:lobby"
        assert settings.echo_to_sender is False
        assert settings.auth_tokens == {}

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CHAT_PORT", "9001")
        monkeypatch.setenv("CHAT_ECHO_TO_SENDER", "yes")
        monkeypatch.setenv("CHAT_ALLOW_ANONYMOUS", "false")
        monkeypatch.setenv("CHAT_AUTH_TOKENS", "abc:alice, def:bob")
        monkeypatch.setenv("CHAT_DELIVERY_TIMEOUT", "0.5")
        monkeypatch.setenv("CHAT_LOG_LEVEL", "debug")

        settings = load_settings()

        assert settings.port == 9001
        assert settings.echo_to_sender is True
        assert settings.allow_anonymous is False
        assert settings.auth_tokens == {"abc": "alice", "def": "bob"}
        assert settings.delivery_timeout == 0.5
        assert settings.log_level == "DEBUG"

    def test_malformed_tokens(self):
        with pytest.raises(ValueError):
            parse_auth_tokens("missing-separator")
        assert parse_auth_tokens("") == {}
