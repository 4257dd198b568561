from zoneplay.exceptions import ZoneplayDeviceError
from zoneplay.logger import logger
from zoneplay.soap import SoapTransport

MIN_VOLUME = 0
MAX_VOLUME = 100


def clamp_volume(volume: int | float) -> int:
    return max(MIN_VOLUME, min(MAX_VOLUME, round(volume)))


class RenderingControl:
    """Volume control on a single speaker (the Master channel)."""

    def __init__(self, transport: SoapTransport):
        self._transport = transport

    async def get_volume(self, address: str) -> int:
        response = await self._transport.call_action(
            "rendering_control",
            "GetVolume",
            address,
            InstanceID=0,
            Channel="Master",
        )

        try:
            return int(response["CurrentVolume"])
        except (KeyError, ValueError) as e:
            raise ZoneplayDeviceError(
                f"Unexpected GetVolume response from {address}: {response}"
            ) from e

    async def set_volume(self, address: str, volume: int | float) -> int:
        volume = clamp_volume(volume)

        await self._transport.call_action(
            "rendering_control",
            "SetVolume",
            address,
            InstanceID=0,
            Channel="Master",
            DesiredVolume=volume,
        )

        logger.debug(f"Volume on {address} set to {volume}")

        return volume

    async def adjust_volume(self, address: str, delta: int) -> int:
        return await self.set_volume(address, await self.get_volume(address) + delta)
