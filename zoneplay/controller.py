from typing import Any

from zoneplay.browse import BrowseCascade
from zoneplay.config import ZoneplaySettings
from zoneplay.constants import ZONEPLAY_VER
from zoneplay.didl import didl_class
from zoneplay.episodes import pick_latest
from zoneplay.exceptions import ZoneplayError, ZoneplayInputError
from zoneplay.favorites import FavoritesCache
from zoneplay.grouping import GroupCoordinator
from zoneplay.logger import logger
from zoneplay.models import (
    BrowseResultItem,
    DeviceGroup,
    FavoriteRecord,
    PlaybackResult,
    PlaybackTarget,
    SpeakerInfo,
)
from zoneplay.rendering import RenderingControl
from zoneplay.soap import SoapTransport
from zoneplay.topology import (
    DeviceAddressCache,
    TopologySnapshot,
    ZoneGroupTopologySnapshot,
)
from zoneplay.transport import AVTransport, TransportCommitter, is_queue_class
from zoneplay.types import (
    DeviceId,
    DidlMetadata,
    UpdateMessageHandler,
    UpdateMessageType,
)


class Zoneplay:
    def __init__(
        self,
        settings: ZoneplaySettings | None = None,
        transport: SoapTransport | None = None,
        snapshot: TopologySnapshot | None = None,
        on_update: UpdateMessageHandler | None = None,
    ):
        """The main zoneplay class.

        Responsibilities include:

            * Tracking the household's speakers (DeviceAddressCache) and
              favorites (FavoritesCache).
            * Playing a favorite on a list of speakers:
                * Resolving the favorite to something playable, browsing into
                  containers (shows, podcasts) and picking the latest episode.
                * Grouping the speakers, with the first as coordinator.
                * Committing playback on the coordinator.
            * Volume control across an explicit list of speakers.
            * Sending "Favorites", "Speakers" and "Toast" update messages to
              any registered handlers.

        The collaborators (SOAP transport, topology snapshot) can be injected;
        by default they're built from the settings.
        """
        logger.info(f"Initializing zoneplay v{ZONEPLAY_VER}")

        self._settings = settings or ZoneplaySettings()
        self._on_update_handlers: list[UpdateMessageHandler] = []

        if on_update is not None:
            self._on_update_handlers.append(on_update)

        self._owns_transport = transport is None
        self._transport = transport or SoapTransport(
            port=self._settings.port, timeout=self._settings.soap_timeout
        )

        self._address_cache = DeviceAddressCache(
            snapshot
            or ZoneGroupTopologySnapshot(
                self._transport, self._settings.bootstrap_address
            )
        )
        self._favorites = FavoritesCache(
            self._transport, requested_count=self._settings.favorites_requested_count
        )
        self._browse_cascade = BrowseCascade(
            self._transport,
            self._favorites,
            requested_count=self._settings.browse_requested_count,
        )
        self._av_transport = AVTransport(self._transport)
        self._rendering_control = RenderingControl(self._transport)
        self._group_coordinator = GroupCoordinator(
            self._av_transport, self._address_cache
        )
        self._committer = TransportCommitter(
            self._av_transport,
            retry_delay=self._settings.uri_set_retry_delay,
            play_delay=self._settings.play_delay,
        )

    def __str__(self):
        return f"Zoneplay(bootstrap_address={self._settings.bootstrap_address})"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def settings(self) -> ZoneplaySettings:
        return self._settings

    @property
    def av_transport(self) -> AVTransport:
        return self._av_transport

    @property
    def favorites(self) -> list[FavoriteRecord]:
        return self._favorites.all

    def on_update(self, handler: UpdateMessageHandler):
        """Register a handler to receive update messages.

        Handlers are called with ("Favorites", list[FavoriteRecord]) after a
        favorites refresh, ("Speakers", list[SpeakerInfo]) after a topology
        refresh, and ("Toast", str) when something user-visible went wrong.
        """
        self._on_update_handlers.append(handler)

    def _send_update(self, message_type: UpdateMessageType, data: Any):
        for handler in self._on_update_handlers:
            handler(message_type, data)

    async def close(self):
        if self._owns_transport:
            await self._transport.close()

    # -------------------------------------------------------------------------
    # Speakers

    async def address_for(self, device_id: DeviceId) -> str:
        return await self._address_cache.address_for(device_id)

    async def speakers(self, refresh: bool = False) -> list[SpeakerInfo]:
        if refresh or not self._address_cache.speakers:
            await self._address_cache.refresh()
            self._send_update("Speakers", list(self._address_cache.speakers.values()))

        return list(self._address_cache.speakers.values())

    async def form_group(self, device_ids: list[DeviceId]) -> DeviceGroup:
        return await self._group_coordinator.form_group(device_ids)

    async def leave_group(self, device_id: DeviceId) -> None:
        await self._group_coordinator.leave_group(device_id)

    # -------------------------------------------------------------------------
    # Favorites

    def _bootstrap_address(self) -> str:
        if not self._settings.bootstrap_address:
            raise ZoneplayInputError("No bootstrap speaker address configured")

        return self._settings.bootstrap_address

    async def refresh_favorites(self) -> list[FavoriteRecord]:
        favorites = await self._favorites.refresh(self._bootstrap_address())
        self._send_update("Favorites", favorites)

        return favorites

    async def _favorite(self, favorite_id: str) -> FavoriteRecord:
        if not self._favorites.all:
            await self.refresh_favorites()

        return self._favorites.get(favorite_id)

    async def browse_favorite(
        self, favorite_id: str, device_id: DeviceId | None = None
    ) -> list[BrowseResultItem]:
        """The children of a container favorite, as seen by the given speaker."""
        favorite = await self._favorite(favorite_id)
        address = (
            await self.address_for(device_id) if device_id else self._bootstrap_address()
        )

        return await self._browse_cascade.browse(
            favorite.canonical_object_id, address, favorite
        )

    # -------------------------------------------------------------------------
    # Playback

    async def _resolve(
        self, favorite: FavoriteRecord, device_address: str
    ) -> tuple[PlaybackTarget | None, BrowseResultItem | None, list[BrowseResultItem]]:
        # Albums and playlists are queued whole; only other containers (shows,
        # podcasts) are browsed for their latest item.
        queued = is_queue_class(didl_class(favorite.metadata))

        if favorite.uri and (queued or not favorite.is_container):
            return PlaybackTarget(uri=favorite.uri, metadata=favorite.metadata), None, []

        items = await self._browse_cascade.browse(
            favorite.canonical_object_id, device_address, favorite
        )
        latest = pick_latest([item for item in items if item.uri])

        if latest is None:
            return None, None, items

        logger.info(f"Latest item in '{favorite.title}' is '{latest.title}'")

        return PlaybackTarget(uri=latest.uri, metadata=latest.metadata), latest, items

    async def resolve_target(
        self, favorite: FavoriteRecord, device_address: str
    ) -> tuple[PlaybackTarget | None, BrowseResultItem | None]:
        """Resolve a favorite to a (uri, metadata) pair which can be played.

        Direct favorites, albums and playlists resolve to themselves. Other
        containers are browsed and resolve to their latest playable item. (None, None) means nothing
        playable could be found.
        """
        target, item, _ = await self._resolve(favorite, device_address)

        return target, item

    async def _commit(self, group: DeviceGroup, target: PlaybackTarget):
        try:
            await self._committer.commit(group, target)
        except ZoneplayError as e:
            self._send_update("Toast", f"Could not start playback: {e}")
            raise

    async def play_favorite(
        self, favorite_id: str, device_ids: list[DeviceId]
    ) -> PlaybackResult:
        """Play a favorite on one or more speakers.

        The first speaker coordinates the group. The favorite is resolved
        before any speaker is touched, so a favorite with nothing playable
        leaves the speakers as they were.
        """
        if not device_ids:
            raise ZoneplayInputError("At least one speaker is required for playback")

        favorite = await self._favorite(favorite_id)
        coordinator_address = await self.address_for(device_ids[0])

        target, item, items = await self._resolve(favorite, coordinator_address)

        if target is None:
            message = f"Could not find anything to play in '{favorite.title}'"
            logger.warning(message)
            self._send_update("Toast", message)

            return PlaybackResult(status="resolution_exhausted", message=message)

        group = await self.form_group(device_ids)
        await self._commit(group, target)

        return PlaybackResult(
            status="playing",
            message=f"Playing '{item.title if item else favorite.title}'",
            target=target,
            group=group,
            item=item,
            items=items,
        )

    async def play_uri(
        self, uri: str, metadata: DidlMetadata, device_ids: list[DeviceId]
    ) -> PlaybackResult:
        target = PlaybackTarget(uri=uri, metadata=metadata)
        group = await self.form_group(device_ids)
        await self._commit(group, target)

        return PlaybackResult(
            status="playing", message=f"Playing {uri}", target=target, group=group
        )

    # -------------------------------------------------------------------------
    # Volume

    async def set_volume(
        self, volume: int, device_ids: list[DeviceId]
    ) -> dict[DeviceId, int]:
        """Set the volume on each of the given speakers.

        Returns the volume set per speaker. Speakers which fail are logged and
        left out.
        """
        return await self._apply_volume(
            lambda address: self._rendering_control.set_volume(address, volume),
            device_ids,
        )

    async def adjust_volume(
        self, delta: int, device_ids: list[DeviceId]
    ) -> dict[DeviceId, int]:
        return await self._apply_volume(
            lambda address: self._rendering_control.adjust_volume(address, delta),
            device_ids,
        )

    async def _apply_volume(self, action, device_ids: list[DeviceId]):
        volumes: dict[DeviceId, int] = {}

        for device_id in device_ids:
            try:
                volumes[device_id] = await action(await self.address_for(device_id))
            except ZoneplayError as e:
                logger.warning(f"Could not change volume on {device_id}: {e}")

        return volumes
