from typing import Protocol, runtime_checkable
from urllib.parse import urlparse
from xml.sax import SAXParseException

import untangle

from zoneplay.exceptions import ZoneplayDeviceError, ZoneplayNotFoundError
from zoneplay.logger import logger
from zoneplay.models import SpeakerInfo
from zoneplay.soap import SoapTransport
from zoneplay.types import DeviceId


@runtime_checkable
class TopologySnapshot(Protocol):
    """Supplies the household's speakers, keyed by UUID."""

    async def snapshot(self) -> dict[DeviceId, SpeakerInfo]:
        ...


def address_from_location(location: str | None) -> str | None:
    """Extract the speaker's host from its device description URL."""
    if not location:
        return None

    try:
        return urlparse(location).hostname
    except ValueError:
        return None


def speakers_from_zone_group_state(state_xml: str) -> dict[DeviceId, SpeakerInfo]:
    """Parse a ZoneGroupState document into SpeakerInfo entries.

    Newer firmware wraps <ZoneGroups> in <ZoneGroupState>; older firmware
    returns <ZoneGroups> as the root. Invisible members (e.g. the satellites
    of a home theater setup) are skipped.
    """
    if not state_xml or not state_xml.strip():
        return {}

    try:
        parsed = untangle.parse(state_xml.strip())
    except SAXParseException as e:
        raise ZoneplayDeviceError(f"Could not parse zone group state: {e}") from e

    root = parsed.children[0] if parsed.children else None

    if root is None:
        return {}

    if root._name == "ZoneGroups":
        zone_groups = root
    else:
        zone_groups = next(iter(root.get_elements("ZoneGroups")), None)

    if zone_groups is None:
        return {}

    speakers: dict[DeviceId, SpeakerInfo] = {}

    for zone_group in zone_groups.get_elements("ZoneGroup"):
        for member in zone_group.get_elements("ZoneGroupMember"):
            if member["Invisible"] == "1":
                continue

            uuid = member["UUID"]
            address = address_from_location(member["Location"])

            if not uuid or not address:
                continue

            speakers[uuid] = SpeakerInfo(
                uuid=uuid, address=address, zone_name=member["ZoneName"] or uuid
            )

    return speakers


class ZoneGroupTopologySnapshot:
    """Topology snapshot read from a speaker's ZoneGroupTopology service."""

    def __init__(self, transport: SoapTransport, bootstrap_address: str | None):
        self._transport = transport
        self._bootstrap_address = bootstrap_address

    async def snapshot(self) -> dict[DeviceId, SpeakerInfo]:
        if not self._bootstrap_address:
            raise ZoneplayDeviceError(
                "No bootstrap speaker address configured; cannot read topology"
            )

        response = await self._transport.call_action(
            "zone_group_topology", "GetZoneGroupState", self._bootstrap_address
        )

        return speakers_from_zone_group_state(response.get("ZoneGroupState", ""))


class DeviceAddressCache:
    """Read-through cache of speaker UUID -> address/zone name.

    A miss triggers a single topology refresh before giving up. The mapping
    is replaced wholesale on each refresh.
    """

    def __init__(self, snapshot: TopologySnapshot):
        self._snapshot = snapshot
        self._speakers: dict[DeviceId, SpeakerInfo] = {}

    @property
    def speakers(self) -> dict[DeviceId, SpeakerInfo]:
        return self._speakers

    async def refresh(self) -> dict[DeviceId, SpeakerInfo]:
        self._speakers = dict(await self._snapshot.snapshot())
        logger.info(f"Topology refreshed: {len(self._speakers)} speaker(s)")

        return self._speakers

    async def speaker_for(self, device_id: DeviceId) -> SpeakerInfo:
        if speaker := self._speakers.get(device_id):
            return speaker

        logger.info(f"Speaker {device_id} not cached; refreshing topology")
        await self.refresh()

        try:
            return self._speakers[device_id]
        except KeyError:
            raise ZoneplayNotFoundError(f"Could not find speaker with id '{device_id}'")

    async def address_for(self, device_id: DeviceId) -> str:
        return (await self.speaker_for(device_id)).address
