import asyncio

from zoneplay.constants import (
    DEFAULT_PLAY_DELAY,
    DEFAULT_URI_SET_RETRY_DELAY,
    QUEUE_CLASS_PREFIXES,
    QUEUE_URI_TEMPLATE,
)
from zoneplay.didl import didl_class
from zoneplay.exceptions import ProtocolFault, TransportError, ZoneplayInputError
from zoneplay.logger import logger
from zoneplay.models import DeviceGroup, PlaybackTarget
from zoneplay.soap import SoapTransport
from zoneplay.types import DeviceId, DidlMetadata, RepeatMode
from zoneplay import utils

INSTANCE_ID = 0

# (shuffle, repeat) -> AVTransport NewPlayMode
PLAY_MODES = {
    (False, "off"): "NORMAL",
    (False, "all"): "REPEAT_ALL",
    (False, "one"): "REPEAT_ONE",
    (True, "off"): "SHUFFLE_NOREPEAT",
    (True, "all"): "SHUFFLE",
    (True, "one"): "SHUFFLE_REPEAT_ONE",
}


def is_queue_class(upnp_class: str | None) -> bool:
    """Whether content of this class has to be played by way of the queue."""
    return bool(upnp_class) and any(
        upnp_class.startswith(prefix) for prefix in QUEUE_CLASS_PREFIXES
    )


class AVTransport:
    """Thin wrapper around a speaker's AVTransport service.

    Every method takes the address of the speaker to act on. In a group,
    that is the coordinator.
    """

    def __init__(self, transport: SoapTransport):
        self._transport = transport

    async def _call(self, action: str, address: str, **arguments) -> dict[str, str]:
        return await self._transport.call_action(
            "av_transport", action, address, InstanceID=INSTANCE_ID, **arguments
        )

    async def set_uri(
        self, address: str, uri: str, metadata: DidlMetadata | None = ""
    ) -> None:
        await self._call(
            "SetAVTransportURI",
            address,
            CurrentURI=uri,
            CurrentURIMetaData=metadata or "",
        )

    async def add_uri_to_queue(
        self, address: str, uri: str, metadata: DidlMetadata | None = ""
    ) -> int:
        """Enqueue a URI, returning the queue position of its first track."""
        response = await self._call(
            "AddURIToQueue",
            address,
            EnqueuedURI=uri,
            EnqueuedURIMetaData=metadata or "",
            DesiredFirstTrackNumberEnqueued=0,
            EnqueueAsNext=0,
        )

        try:
            return int(response.get("FirstTrackNumberEnqueued") or 1)
        except ValueError:
            return 1

    async def clear_queue(self, address: str) -> None:
        await self._call("RemoveAllTracksFromQueue", address)

    async def play_from_queue(self, address: str, uuid: DeviceId) -> None:
        await self.set_uri(address, QUEUE_URI_TEMPLATE.format(uuid=uuid))

    async def seek(self, address: str, unit: str, target: str | int) -> None:
        await self._call("Seek", address, Unit=unit, Target=target)

    async def play(self, address: str) -> None:
        await self._call("Play", address, Speed=1)

    async def pause(self, address: str) -> None:
        await self._call("Pause", address)

    async def stop(self, address: str) -> None:
        await self._call("Stop", address)

    async def next(self, address: str) -> None:
        await self._call("Next", address)

    async def previous(self, address: str) -> None:
        await self._call("Previous", address)

    async def set_play_mode(
        self, address: str, shuffle: bool = False, repeat: RepeatMode = "off"
    ) -> None:
        try:
            play_mode = PLAY_MODES[(bool(shuffle), repeat)]
        except KeyError:
            raise ZoneplayInputError(f"Unknown repeat mode: {repeat}")

        await self._call("SetPlayMode", address, NewPlayMode=play_mode)

    async def get_position_info(self, address: str) -> dict[str, str]:
        return await self._call("GetPositionInfo", address)

    async def seek_relative(self, address: str, seconds: int) -> int | None:
        """Fast-forward (positive) or rewind (negative) the current track.

        Returns the new position in seconds, or None when the current track
        has no position (e.g. a live stream).
        """
        position = await self.get_position_info(address)
        current_secs = utils.hmmss_to_secs(position.get("RelTime"))

        if current_secs is None:
            logger.warning(f"Unable to seek on {address}: no track position")
            return None

        target_secs = max(0, current_secs + seconds)
        await self.seek(address, "REL_TIME", utils.secs_to_hmmss(target_secs))

        return target_secs


class TransportCommitter:
    """Start playback of a target on a group's coordinator.

    Playback is committed as a strictly ordered sequence:

        1. Set the URI (directly, or by way of the queue for albums and
           playlists). If this fails it is retried once after retry_delay.
        2. Wait play_delay; speakers need a moment to apply a new URI.
        3. Play. This is not retried.
    """

    def __init__(
        self,
        av_transport: AVTransport,
        retry_delay: float = DEFAULT_URI_SET_RETRY_DELAY,
        play_delay: float = DEFAULT_PLAY_DELAY,
    ):
        self._av_transport = av_transport
        self._retry_delay = retry_delay
        self._play_delay = play_delay

    async def _set_direct(self, group: DeviceGroup, target: PlaybackTarget) -> None:
        await self._av_transport.set_uri(
            group.coordinator_address, target.uri, target.metadata
        )

    async def _set_queue(self, group: DeviceGroup, target: PlaybackTarget) -> None:
        address = group.coordinator_address

        await self._av_transport.clear_queue(address)
        track_number = await self._av_transport.add_uri_to_queue(
            address, target.uri, target.metadata
        )
        logger.info(f"Added {target.uri} to queue at track {track_number}")

        await self._av_transport.play_from_queue(address, group.coordinator_id)
        await self._av_transport.seek(address, "TRACK_NR", track_number)

    async def commit(self, group: DeviceGroup, target: PlaybackTarget) -> None:
        upnp_class = didl_class(target.metadata)
        queued = is_queue_class(upnp_class)
        set_uri = self._set_queue if queued else self._set_direct

        logger.info(
            f"Committing {target.uri} ({upnp_class or 'unknown class'}) to "
            + f"{group.coordinator_id} via the "
            + f"{'queue' if queued else 'transport URI'}"
        )

        try:
            await set_uri(group, target)
        except (ProtocolFault, TransportError) as e:
            logger.warning(
                f"Setting URI on {group.coordinator_id} failed ({e}); "
                + f"retrying in {self._retry_delay}s"
            )
            await asyncio.sleep(self._retry_delay)
            await set_uri(group, target)

        await asyncio.sleep(self._play_delay)
        await self._av_transport.play(group.coordinator_address)

        logger.info(f"Playing {target.uri} on {group.coordinator_id}")
