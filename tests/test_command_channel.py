"""
Tests for the Command Channel
=============================

Tests for:
- Polling until a terminal status, and the timeout outcome
- One-shot result formatting
- PollingProfile validation
- SupabaseCommandChannel requests and error handling
- The one-shot command catalog
"""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from phone_agent.channel.command_channel import (
    FAST_PROFILE,
    STANDARD_PROFILE,
    CommandResponse,
    CommandStatus,
    PollingProfile,
    format_command_response,
    send_command,
    send_command_fast,
)
from phone_agent.channel.commands import PHONE_COMMANDS, get_command
from phone_agent.channel.supabase_channel import SupabaseCommandChannel, create_command_channel
from phone_agent.config import ChannelSettings
from phone_agent.errors import CommandChannelError
from tests.conftest import INSTANT_PROFILE, FakeCommandChannel


class _Pending:
    """Stays pending for a number of polls, then completes."""

    def __init__(self, polls_before_done: int, response: CommandResponse):
        self.remaining = polls_before_done
        self.response = response


class SlowChannel(FakeCommandChannel):
    def __init__(self, pending: _Pending):
        super().__init__()
        self.pending = pending

    async def poll(self, command_id):
        self.polls += 1
        if self.pending.remaining > 0:
            self.pending.remaining -= 1
            return None
        return self.pending.response


class TestProfiles:
    def test_defaults(self):
        assert (STANDARD_PROFILE.interval, STANDARD_PROFILE.timeout) == (0.5, 15.0)
        assert (FAST_PROFILE.interval, FAST_PROFILE.timeout) == (0.2, 10.0)
        assert FAST_PROFILE.interval < STANDARD_PROFILE.interval
        assert FAST_PROFILE.timeout < STANDARD_PROFILE.timeout

    @pytest.mark.parametrize("interval,timeout", [(-1, 1), (0.1, 0), (0.1, -5)])
    def test_invalid(self, interval, timeout):
        with pytest.raises(ValueError):
            PollingProfile(interval=interval, timeout=timeout)


class TestSendCommandFast:
    @pytest.mark.asyncio
    async def test_completed(self):
        channel = FakeCommandChannel({"tap": CommandResponse.completed({"ok": True})})
        response = await send_command_fast(channel, "tap", {"x": 1, "y": 2}, INSTANT_PROFILE)

        assert response.status == CommandStatus.COMPLETED
        assert response.ok
        assert response.response == {"ok": True}
        assert channel.sent == [("tap", {"x": 1, "y": 2})]

    @pytest.mark.asyncio
    async def test_failed(self):
        channel = FakeCommandChannel({"launch_app": CommandResponse.failed("App not installed")})
        response = await send_command_fast(channel, "launch_app", {"package_name": "x"}, INSTANT_PROFILE)

        assert response.status == CommandStatus.FAILED
        assert not response.ok
        assert response.error == "App not installed"

    @pytest.mark.asyncio
    async def test_polls_until_terminal(self):
        channel = SlowChannel(_Pending(3, CommandResponse.completed("done")))
        response = await send_command_fast(channel, "ring", profile=INSTANT_PROFILE)

        assert response.ok
        assert channel.polls == 4

    @pytest.mark.asyncio
    async def test_timeout_is_distinct_from_failure(self):
        channel = FakeCommandChannel({"tap": None})
        profile = PollingProfile(interval=0.01, timeout=0.05)
        response = await send_command_fast(channel, "tap", {"x": 1, "y": 1}, profile)

        assert response.status == CommandStatus.TIMEOUT
        assert response.error == "Device did not respond within 0.05 seconds"
        assert channel.polls >= 1

    @pytest.mark.asyncio
    async def test_params_default_to_empty(self):
        channel = FakeCommandChannel()
        await send_command_fast(channel, "get_ui_elements", profile=INSTANT_PROFILE)
        assert channel.sent == [("get_ui_elements", {})]

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self):
        channel = FakeCommandChannel()
        channel.submit = AsyncMock(side_effect=CommandChannelError("Supabase insert failed: 401"))

        with pytest.raises(CommandChannelError):
            await send_command_fast(channel, "tap", {"x": 1, "y": 1}, INSTANT_PROFILE)


class TestSendCommand:
    @pytest.mark.asyncio
    async def test_structured_payload(self):
        channel = FakeCommandChannel({"device_info": CommandResponse.completed({"battery": 80})})
        assert await send_command(channel, "device_info", profile=INSTANT_PROFILE) == '[completed] {"battery": 80}'

    @pytest.mark.asyncio
    async def test_failed(self):
        channel = FakeCommandChannel({"ring": CommandResponse.failed("Muted")})
        assert await send_command(channel, "ring", profile=INSTANT_PROFILE) == "[failed] Muted"

    @pytest.mark.asyncio
    async def test_timeout(self):
        channel = FakeCommandChannel({"ring": None})
        result = await send_command(channel, "ring", profile=PollingProfile(interval=0.01, timeout=0.03))
        assert result == "[timeout] Device did not respond within 0.03 seconds"

    def test_format_plain_payload(self):
        assert format_command_response(CommandResponse.completed("Ringing")) == "[completed] Ringing"

    def test_format_empty_payload(self):
        assert format_command_response(CommandResponse.completed()) == "[completed]"

    def test_format_failure_without_reason(self):
        response = CommandResponse(status=CommandStatus.FAILED)
        assert format_command_response(response) == "[failed] Unknown error"


# ---------------------------------------------------------------------------
# Supabase
# ---------------------------------------------------------------------------


class _FakeResponse:
    def __init__(self, status: int, json_data=None, text: str = ""):
        self.status = status
        self._json = json_data
        self._text = text

    async def json(self):
        return self._json

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


def _session(post=None, get=None) -> MagicMock:
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    if post is not None:
        session.post = MagicMock(return_value=post)
    if get is not None:
        session.get = MagicMock(return_value=get)
    return session


class TestSupabaseCommandChannel:
    @pytest.fixture
    def channel(self):
        return SupabaseCommandChannel(
            url="https://proj.supabase.co/",
            anon_key="anon",
            table="commands",
        )

    def test_endpoint(self, channel):
        assert channel.endpoint == "https://proj.supabase.co/rest/v1/commands"

    def test_headers(self, channel):
        headers = channel._headers()
        assert headers["apikey"] == "anon"
        assert headers["Authorization"] == "Bearer anon"

    @pytest.mark.asyncio
    async def test_submit(self, channel):
        channel._session = _session(post=_FakeResponse(201, [{"id": 42}]))

        command_id = await channel.submit("tap", {"x": 1, "y": 2})

        assert command_id == "42"
        args, kwargs = channel._session.post.call_args
        assert args[0] == channel.endpoint
        assert kwargs["json"] == {"type": "tap", "params": {"x": 1, "y": 2}}
        assert kwargs["headers"]["Prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_submit_http_error(self, channel):
        channel._session = _session(post=_FakeResponse(401, text="Invalid API key"))

        with pytest.raises(CommandChannelError, match="401"):
            await channel.submit("tap", {})

    @pytest.mark.asyncio
    async def test_submit_without_id(self, channel):
        channel._session = _session(post=_FakeResponse(201, []))

        with pytest.raises(CommandChannelError, match="no id"):
            await channel.submit("tap", {})

    @pytest.mark.asyncio
    async def test_submit_transport_error(self, channel):
        session = _session()
        session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        channel._session = session

        with pytest.raises(CommandChannelError, match="refused"):
            await channel.submit("tap", {})

    @pytest.mark.asyncio
    async def test_submit_timeout(self, channel):
        session = _session()
        session.post = MagicMock(side_effect=asyncio.TimeoutError())
        channel._session = session

        with pytest.raises(CommandChannelError, match="Supabase insert failed: no answer within 10 seconds"):
            await channel.submit("tap", {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["pending", "running", None])
    async def test_poll_pending(self, channel, status):
        channel._session = _session(get=_FakeResponse(200, [{"status": status}]))
        assert await channel.poll("42") is None

    @pytest.mark.asyncio
    async def test_poll_completed(self, channel):
        row = {"status": "completed", "response": {"ui_elements": []}, "error": None}
        channel._session = _session(get=_FakeResponse(200, [row]))

        response = await channel.poll("42")

        assert response.status == CommandStatus.COMPLETED
        assert response.response == {"ui_elements": []}
        kwargs = channel._session.get.call_args.kwargs
        assert kwargs["params"]["id"] == "eq.42"

    @pytest.mark.asyncio
    async def test_poll_failed(self, channel):
        channel._session = _session(get=_FakeResponse(200, [{"status": "failed", "error": None}]))

        response = await channel.poll("42")

        assert response.status == CommandStatus.FAILED
        assert response.error == "Unknown error"

    @pytest.mark.asyncio
    async def test_poll_missing_row(self, channel):
        channel._session = _session(get=_FakeResponse(200, []))

        with pytest.raises(CommandChannelError, match="not found"):
            await channel.poll("42")

    @pytest.mark.asyncio
    async def test_poll_http_error(self, channel):
        channel._session = _session(get=_FakeResponse(500, text="boom"))

        with pytest.raises(CommandChannelError, match="Poll failed"):
            await channel.poll("42")

    @pytest.mark.asyncio
    async def test_poll_timeout(self, channel):
        session = _session()
        session.get = MagicMock(side_effect=asyncio.TimeoutError())
        channel._session = session

        with pytest.raises(CommandChannelError, match="Poll failed: no answer within 10 seconds"):
            await channel.poll("42")

    @pytest.mark.asyncio
    async def test_close(self, channel):
        session = _session()
        channel._session = session

        await channel.close()

        session.close.assert_awaited_once()
        assert channel._session is None

    def test_create_from_settings(self):
        settings = ChannelSettings(
            supabase_url="https://x.supabase.co",
            supabase_anon_key="key",
            supabase_phone_table="phone_commands",
        )
        channel = create_command_channel(settings)
        assert channel.endpoint == "https://x.supabase.co/rest/v1/phone_commands"


class TestCommandCatalog:
    def test_contains_original_commands(self):
        expected = {
            "tap", "double_tap", "long_press", "swipe", "screenshot", "list_apps",
            "launch_app", "terminate_app", "install_app", "uninstall_app", "open_url",
            "send_text", "press_button", "get_orientation", "set_orientation",
            "screen_size", "get_ui_elements", "ring", "vibrate", "flash", "device_info",
        }
        assert set(PHONE_COMMANDS) == expected

    def test_required_params(self):
        assert get_command("tap").required_params == ["x", "y"]
        assert get_command("ring").required_params == []

    def test_validate_missing(self):
        assert get_command("open_url").validate({}) == ["Missing required parameter: url"]

    def test_validate_enum(self):
        problems = get_command("press_button").validate({"button": "power"})
        assert len(problems) == 1
        assert "power" in problems[0]

    def test_validate_ok(self):
        assert get_command("swipe").validate({"direction": "up"}) == []

    def test_unknown(self):
        assert get_command("self_destruct") is None

    def test_to_dict(self):
        data = get_command("set_orientation").to_dict()
        assert data["parameters"]["orientation"]["enum"] == ["portrait", "landscape"]
