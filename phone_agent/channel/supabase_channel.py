"""
Supabase Command Channel
========================

Command store backed by a Supabase ``commands`` table, accessed through
the PostgREST API.

The phone app subscribes to the table, executes each new row and writes
``status`` (``completed`` or ``failed``) together with ``response`` or
``error`` back into the same row. This module only inserts rows and
reads them back by id.

Table layout:
    id        primary key
    type      command name
    params    JSON parameters
    status    pending | running | completed | failed
    response  JSON payload written by the phone
    error     failure reason written by the phone
"""

import asyncio
from typing import Any, Optional

import aiohttp

from phone_agent.channel.command_channel import (
    CommandChannel,
    CommandResponse,
    CommandStatus,
)
from phone_agent.config import ChannelSettings, get_settings
from phone_agent.errors import CommandChannelError
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

_REQUEST_TIMEOUT = 10.0


class SupabaseCommandChannel(CommandChannel):
    """
    Command channel over the Supabase REST API.

    One aiohttp session is created lazily and reused for every request
    until close() is called.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        table: Optional[str] = None,
        request_timeout: float = _REQUEST_TIMEOUT,
    ) -> None:
        """
        Initialize the channel.

        Args:
            url: Supabase project URL. Defaults to settings.
            anon_key: Supabase anon key. Defaults to settings.
            table: Commands table name. Defaults to settings.
            request_timeout: Per-request HTTP timeout in seconds.
        """
        settings = get_settings().channel
        self.url = (url or settings.supabase_url).rstrip("/")
        self.anon_key = anon_key or settings.supabase_anon_key
        self.table = table or settings.supabase_phone_table
        self.request_timeout = request_timeout

        self._session: Optional[aiohttp.ClientSession] = None

        if not self.url or not self.anon_key:
            logger.warning("Supabase credentials not configured")

    @property
    def endpoint(self) -> str:
        """REST endpoint of the commands table."""
        return f"{self.url}/rest/v1/{self.table}"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            )
        return self._session

    async def submit(
        self,
        command_type: str,
        params: Optional[dict[str, Any]] = None,
    ) -> str:
        """Insert a command row and return its id."""
        session = await self._get_session()
        row = {"type": command_type, "params": params or {}}

        try:
            async with session.post(
                self.endpoint,
                json=row,
                params={"select": "id"},
                headers={"Prefer": "return=representation"},
            ) as response:
                if response.status not in (200, 201):
                    error_text = await response.text()
                    raise CommandChannelError(
                        f"Supabase insert failed: {response.status} {error_text[:200]}"
                    )
                data = await response.json()
        except asyncio.TimeoutError as e:
            raise CommandChannelError(
                f"Supabase insert failed: no answer within {self.request_timeout:g} seconds"
            ) from e
        except aiohttp.ClientError as e:
            raise CommandChannelError(f"Supabase insert failed: {e}") from e

        command_id = _first_row(data).get("id")
        if command_id is None:
            raise CommandChannelError("Supabase insert failed: no id returned")

        logger.debug("Command submitted", command_type=command_type, command_id=command_id)
        return str(command_id)

    async def poll(self, command_id: str) -> Optional[CommandResponse]:
        """Read status, response and error of a command row."""
        session = await self._get_session()

        try:
            async with session.get(
                self.endpoint,
                params={"id": f"eq.{command_id}", "select": "status,response,error"},
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise CommandChannelError(
                        f"Poll failed: {response.status} {error_text[:200]}"
                    )
                data = await response.json()
        except asyncio.TimeoutError as e:
            raise CommandChannelError(
                f"Poll failed: no answer within {self.request_timeout:g} seconds"
            ) from e
        except aiohttp.ClientError as e:
            raise CommandChannelError(f"Poll failed: {e}") from e

        row = _first_row(data)
        if not row:
            raise CommandChannelError(f"Poll failed: command {command_id} not found")

        status = row.get("status")
        if status == CommandStatus.COMPLETED.value:
            return CommandResponse.completed(row.get("response"))
        if status == CommandStatus.FAILED.value:
            return CommandResponse.failed(row.get("error") or "Unknown error")
        return None

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


def _first_row(data: Any) -> dict[str, Any]:
    if isinstance(data, list):
        data = data[0] if data else {}
    return data if isinstance(data, dict) else {}


def create_command_channel(settings: Optional[ChannelSettings] = None) -> SupabaseCommandChannel:
    """
    Create the command channel described by the settings.

    Args:
        settings: Channel settings. Defaults to the application settings.

    Returns:
        A SupabaseCommandChannel.
    """
    settings = settings or get_settings().channel
    return SupabaseCommandChannel(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        table=settings.supabase_phone_table,
    )
