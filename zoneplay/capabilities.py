"""Narrow interfaces onto the orchestrator.

Callers which only need one slice of the orchestrator (e.g. the CLI's volume
command only needs address resolution) can depend on one of these rather than
on Zoneplay itself. Zoneplay satisfies all three.
"""

from typing import Protocol, runtime_checkable

from zoneplay.models import DeviceGroup, PlaybackResult
from zoneplay.types import DeviceId, DidlMetadata


@runtime_checkable
class AddressResolvable(Protocol):
    async def address_for(self, device_id: DeviceId) -> str:
        """The network address of a speaker."""
        ...


@runtime_checkable
class Groupable(Protocol):
    async def form_group(self, device_ids: list[DeviceId]) -> DeviceGroup:
        """Group the speakers, with the first as coordinator."""
        ...


@runtime_checkable
class Playable(Protocol):
    async def play_favorite(
        self, favorite_id: str, device_ids: list[DeviceId]
    ) -> PlaybackResult:
        ...

    async def play_uri(
        self, uri: str, metadata: DidlMetadata, device_ids: list[DeviceId]
    ) -> PlaybackResult:
        ...
