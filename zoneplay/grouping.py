from zoneplay.constants import COORDINATOR_URI_PREFIX, QUEUE_URI_TEMPLATE
from zoneplay.exceptions import ZoneplayError, ZoneplayInputError
from zoneplay.logger import logger
from zoneplay.models import DeviceGroup, GroupJoinFailure
from zoneplay.topology import DeviceAddressCache
from zoneplay.transport import AVTransport
from zoneplay.types import DeviceId


class GroupCoordinator:
    """Form a playback group out of a list of speakers.

    The first speaker is the coordinator. Every other speaker is pointed at
    the coordinator (x-rincon:<coordinator uuid>), one at a time. A speaker
    which fails to join is left out of the group; it does not fail the
    request.
    """

    def __init__(self, av_transport: AVTransport, address_cache: DeviceAddressCache):
        self._av_transport = av_transport
        self._address_cache = address_cache

    async def form_group(self, device_ids: list[DeviceId]) -> DeviceGroup:
        if not device_ids:
            raise ZoneplayInputError("At least one speaker is required to form a group")

        coordinator_id = device_ids[0]
        group = DeviceGroup(
            coordinator_id=coordinator_id,
            coordinator_address=await self._address_cache.address_for(coordinator_id),
            member_ids=[coordinator_id],
        )

        join_uri = f"{COORDINATOR_URI_PREFIX}{coordinator_id}"

        for device_id in device_ids[1:]:
            if device_id in group.member_ids:
                continue

            try:
                address = await self._address_cache.address_for(device_id)
                await self._av_transport.set_uri(address, join_uri)
            except ZoneplayError as e:
                logger.warning(f"Speaker {device_id} could not join {coordinator_id}: {e}")
                group.failures.append(GroupJoinFailure(device_id=device_id, reason=str(e)))

                continue

            group.member_ids.append(device_id)
            logger.info(f"Speaker {device_id} joined {coordinator_id}")

        return group

    async def leave_group(self, device_id: DeviceId) -> None:
        """Take a speaker out of its group by pointing it back at its own queue."""
        address = await self._address_cache.address_for(device_id)
        await self._av_transport.set_uri(
            address, QUEUE_URI_TEMPLATE.format(uuid=device_id)
        )

        logger.info(f"Speaker {device_id} left its group")
