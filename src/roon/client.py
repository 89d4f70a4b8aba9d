"""Async connection wrapper around the Roon extension SDK."""

import asyncio
import json
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from roonapi import RoonApi, RoonDiscovery

from .exceptions import (
    RoonBrowseError,
    RoonConnectionTimeout,
    RoonControlError,
    RoonError,
    RoonNotConnectedError,
)
from .models import RoonConfig, Zone, ZoneEvent, ZoneEventKind

logger = logging.getLogger(__name__)

TRANSPORT_ACTIONS = ("play", "pause", "playpause", "stop", "previous", "next")


def _zones_from(payloads) -> List[Zone]:
    """Build zones from Core payloads, skipping malformed entries."""
    zones = []
    for data in payloads:
        try:
            zones.append(Zone.from_roon(data))
        except ValueError as e:
            logger.debug(f"Skipping zone payload: {e}")
    return zones


class RoonConnection:
    """Paired session with a Roon Core.

    The ``roonapi`` SDK is synchronous and delivers zone updates on its own
    websocket thread. This class runs every SDK call in a worker thread and
    forwards zone updates into ``events``, an ``asyncio.Queue`` owned by the
    event loop that called ``connect()``.

    Attributes:
        config: RoonConfig with pairing details
        events: Queue of ZoneEvent pushed by the zone subscription

    Example:
        >>> connection = RoonConnection(RoonConfig(token_file=Path("token.json")))
        >>> if await connection.connect(timeout=3):
        ...     result = await connection.browse({"hierarchy": "search", "input": "Idioteque"})
        >>> await connection.close()
    """

    def __init__(self, config: RoonConfig):
        self.config = config
        self.events: "asyncio.Queue[ZoneEvent]" = asyncio.Queue()
        self._api: Optional[RoonApi] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pairing: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._api is not None

    async def connect(self, timeout: float) -> bool:
        """Start pairing and wait up to ``timeout`` seconds for it to finish.

        Pairing keeps running in the background after a timeout, so the Core
        can still be approved later (Roon Settings > Extensions).

        Args:
            timeout: Seconds to wait for pairing

        Returns:
            True if paired within the wait, False otherwise

        Raises:
            RoonError: If discovery or pairing failed outright
        """
        self._loop = asyncio.get_running_loop()
        if self._pairing is None:
            self._pairing = asyncio.create_task(self._pair())
            self._pairing.add_done_callback(self._pairing_finished)

        try:
            await asyncio.wait_for(asyncio.shield(self._pairing), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Roon Core not paired after {timeout:g}s, continuing in background")
            return False
        return self.is_connected

    async def _pair(self) -> None:
        try:
            api = await self._open_in_thread()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Failures after connect() stopped waiting are only seen through events.
            await self.events.put(ZoneEvent(ZoneEventKind.FAILED, error=str(e)))
            raise

        self._api = api
        self._save_token(api)
        api.register_state_callback(self._on_state_change)

        zones = _zones_from((api.zones or {}).values())
        await self.events.put(ZoneEvent(ZoneEventKind.SUBSCRIBED, zones=zones))
        logger.info(f"Connected to Roon Core {getattr(api, 'core_name', '')} ({len(zones)} zones)")

    @staticmethod
    def _pairing_finished(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Roon pairing failed: {error}")

    def _open_in_thread(self) -> "asyncio.Future[RoonApi]":
        # Pairing blocks until the extension is approved in Roon, which may
        # never happen; a daemon thread keeps that from holding up exit.
        loop = self._loop
        future = loop.create_future()

        def settle(api, error):
            if future.cancelled():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(api)

        def worker():
            try:
                api, error = self._open_api(), None
            except Exception as e:
                api, error = None, e
            try:
                loop.call_soon_threadsafe(settle, api, error)
            except RuntimeError:
                logger.debug("Event loop closed before Roon pairing finished")

        threading.Thread(target=worker, name="roon-pairing", daemon=True).start()
        return future

    def _open_api(self) -> RoonApi:
        token, core_id = self._load_token()
        host, port = self.config.host, self.config.port

        if not host:
            logger.info("Discovering Roon Core on the local network")
            discovery = RoonDiscovery(core_id)
            try:
                server = discovery.first()
            finally:
                discovery.stop()
            if not server:
                raise RoonConnectionTimeout("No Roon Core found on the network")
            host, port = server[0], server[1]

        logger.info(f"Pairing with Roon Core at {host}:{port}")
        try:
            return RoonApi(self.config.appinfo(), token, host, port, blocking_init=True)
        except Exception as e:
            raise RoonError(f"Could not pair with Roon Core at {host}:{port}: {e}") from e

    def _load_token(self) -> Tuple[Optional[str], Optional[str]]:
        try:
            with open(self.config.token_file) as f:
                data = json.load(f)
        except FileNotFoundError:
            return None, None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable token file {self.config.token_file}: {e}")
            return None, None
        return data.get("token"), data.get("core_id")

    def _save_token(self, api: RoonApi) -> None:
        data = {"token": api.token, "core_id": api.core_id}
        try:
            with open(self.config.token_file, "w") as f:
                json.dump(data, f)
        except OSError as e:
            logger.warning(f"Could not save Roon token to {self.config.token_file}: {e}")

    def _on_state_change(self, event: str, changed_ids) -> None:
        # Called on the SDK's websocket thread.
        if event == "zones_removed":
            zone_event = ZoneEvent(ZoneEventKind.REMOVED, removed_ids=list(changed_ids))
        elif event.startswith("zones_"):
            known = self._api.zones if self._api else {}
            zone_event = ZoneEvent(
                ZoneEventKind.CHANGED,
                zones=_zones_from(known[zone_id] for zone_id in changed_ids if zone_id in known),
            )
        else:
            return

        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.events.put_nowait, zone_event)

    def _require_api(self) -> RoonApi:
        if self._api is None:
            raise RoonNotConnectedError()
        return self._api

    async def _browse_request(self, request: str, opts: Dict[str, Any]) -> Dict[str, Any]:
        api = self._require_api()
        call = api.browse_browse if request == "browse" else api.browse_load

        logger.debug(f"-> {request} {json.dumps(opts)}")
        try:
            result = await asyncio.to_thread(call, opts)
        except Exception as e:
            raise RoonBrowseError(request, opts, str(e)) from e

        if not result:
            raise RoonBrowseError(request, opts, "no response from Core")
        logger.debug(f"<- {request} {str(result)[:500]}")
        return result

    async def browse(self, opts: Dict[str, Any]) -> Dict[str, Any]:
        """Issue a browse request (one level of the browse tree)."""
        return await self._browse_request("browse", opts)

    async def load(self, opts: Dict[str, Any]) -> Dict[str, Any]:
        """Load items of the list the last browse request opened."""
        return await self._browse_request("load", opts)

    async def control(self, zone_id: str, action: str) -> None:
        """Send a transport control command to a zone.

        Raises:
            ValueError: If ``action`` is not a known transport control
            RoonNotConnectedError: If not paired
            RoonControlError: If the Core rejected or failed the request
        """
        if action not in TRANSPORT_ACTIONS:
            raise ValueError(f"Unknown transport action: {action}")
        api = self._require_api()

        logger.debug(f"-> control {zone_id} {action}")
        try:
            await asyncio.to_thread(api.playback_control, zone_id, action)
        except Exception as e:
            raise RoonControlError(f"Roon {action} failed: {e}") from e

    async def close(self) -> None:
        """Stop the SDK connection and publish a disconnect event."""
        if self._pairing is not None and not self._pairing.done():
            self._pairing.cancel()
        if self._api is None:
            return

        api, self._api = self._api, None
        await asyncio.to_thread(api.stop)
        await self.events.put(ZoneEvent(ZoneEventKind.DISCONNECTED))
        logger.info("Disconnected from Roon Core")
