"""Tests for the login, trust and logout flow through the App facade."""

import bcrypt
import pytest

from parishsite.app import App
from parishsite.errors import AccessDeniedError, AuthenticationError, RateLimitedError


class TestLogin:
    """Tests for App.login."""

    @pytest.mark.asyncio
    async def test_password_and_code_issue_session(self, app, clock, totp, admin_password):
        result = await app.login(admin_password, totp.at(clock()), remember_device=False, remote_addr="1.2.3.4")

        assert result.session.is_authenticated_admin
        assert result.device_token is None
        assert await app.get_session(result.session.id) is not None

    @pytest.mark.asyncio
    async def test_wrong_code_fails_generically(self, app, clock, admin_password):
        with pytest.raises(AuthenticationError) as wrong_code:
            await app.login(admin_password, "000000", remember_device=False, remote_addr="1.2.3.4")
        with pytest.raises(AuthenticationError) as wrong_password:
            await app.login("nope", "000000", remember_device=False, remote_addr="1.2.3.4")

        assert str(wrong_code.value) == str(wrong_password.value) == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_replaces_previous_session(self, app, clock, totp, admin_password):
        """Test that the pre-login session id is destroyed and never reused."""
        first = await app.login(admin_password, totp.at(clock()), remember_device=False, remote_addr="1.2.3.4")
        second = await app.login(
            admin_password,
            totp.at(clock()),
            remember_device=False,
            remote_addr="1.2.3.4",
            previous_session_id=first.session.id,
        )

        assert second.session.id != first.session.id
        assert await app.get_session(first.session.id) is None
        assert await app.get_session(second.session.id) is not None

    @pytest.mark.asyncio
    async def test_remembered_device_skips_code(self, app, clock, totp, admin_password):
        first = await app.login(admin_password, totp.at(clock()), remember_device=True, remote_addr="1.2.3.4")
        assert first.device_token

        second = await app.login(
            admin_password, "garbage", remember_device=True, remote_addr="1.2.3.4", device_token=first.device_token
        )
        assert second.session.is_authenticated_admin
        # Already trusted, so no second token is minted
        assert second.device_token is None

    @pytest.mark.asyncio
    async def test_expired_device_needs_code_again(self, app, clock, totp, admin_password):
        first = await app.login(admin_password, totp.at(clock()), remember_device=True, remote_addr="1.2.3.4")

        clock.advance(days=31)
        with pytest.raises(AuthenticationError):
            await app.login(admin_password, "wrong", remember_device=False, remote_addr="1.2.3.4", device_token=first.device_token)

        result = await app.login(
            admin_password, totp.at(clock()), remember_device=False, remote_addr="1.2.3.4", device_token=first.device_token
        )
        assert result.session.is_authenticated_admin

    @pytest.mark.asyncio
    async def test_rate_limit_fires_before_credential_check(self, app, clock, totp, admin_password):
        for _ in range(5):
            with pytest.raises(AuthenticationError):
                await app.login(admin_password, "000000", remember_device=False, remote_addr="1.2.3.4")

        with pytest.raises(RateLimitedError):
            await app.login(admin_password, totp.at(clock()), remember_device=False, remote_addr="1.2.3.4")


    @pytest.mark.asyncio
    async def test_overlong_password_with_hashed_config_fails_generically(self, config, storage, clock, totp):
        hashed = bcrypt.hashpw(b"s3cret", bcrypt.gensalt(rounds=4)).decode("utf-8")
        app = App(config.model_copy(update={"admin_password": hashed}), storage)

        with pytest.raises(AuthenticationError):
            await app.login("x" * 100, totp.at(clock()), remember_device=False, remote_addr="1.2.3.4")

    @pytest.mark.asyncio
    async def test_session_store_outage_fails_generically(self, config, sessions_down_storage, clock, totp, admin_password):
        """Test that a session that cannot be stored is reported as a failed login."""
        app = App(config, sessions_down_storage)

        with pytest.raises(AuthenticationError):
            await app.login(admin_password, totp.at(clock()), remember_device=True, remote_addr="1.2.3.4")

class TestLogout:
    """Tests for App.logout."""

    @pytest.mark.asyncio
    async def test_logout_keeps_device_trust_by_default(self, app, clock, totp, admin_password):
        result = await app.login(admin_password, totp.at(clock()), remember_device=True, remote_addr="1.2.3.4")

        await app.logout(result.session.id, device_token=result.device_token)

        assert await app.get_session(result.session.id) is None
        again = await app.login(admin_password, "x", remember_device=False, remote_addr="1.2.3.4", device_token=result.device_token)
        assert again.session.is_authenticated_admin

    @pytest.mark.asyncio
    async def test_logout_can_forget_device(self, app, clock, totp, admin_password):
        result = await app.login(admin_password, totp.at(clock()), remember_device=True, remote_addr="1.2.3.4")

        await app.logout(result.session.id, device_token=result.device_token, forget_device=True)

        with pytest.raises(AuthenticationError):
            await app.login(admin_password, "x", remember_device=False, remote_addr="1.2.3.4", device_token=result.device_token)


class TestAdminGuard:
    """Tests for content operations requiring an admin session."""

    @pytest.mark.asyncio
    async def test_anonymous_cannot_edit(self, app):
        with pytest.raises(AccessDeniedError):
            await app.save_events(None, {"events": []})
        with pytest.raises(AccessDeniedError):
            await app.add_team_member(None, "Jane", "Music")

    @pytest.mark.asyncio
    async def test_admin_can_edit(self, app, clock, totp, admin_password):
        result = await app.login(admin_password, totp.at(clock()), remember_device=False, remote_addr="1.2.3.4")

        await app.save_events(result.session, {"events": [{"title": "Fall Festival"}]})
        document = await app.add_team_member(result.session, "Jane", "Music")

        assert app.get_events()["events"][0]["title"] == "Fall Festival"
        assert document.team[0].name == "Jane"
