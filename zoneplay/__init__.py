from zoneplay.exceptions import (
    ProtocolFault,
    TransportError,
    ZoneplayDeviceError,
    ZoneplayError,
    ZoneplayInputError,
    ZoneplayNotFoundError,
)
from .controller import Zoneplay

(
    Zoneplay,
    ProtocolFault,
    TransportError,
    ZoneplayDeviceError,
    ZoneplayError,
    ZoneplayInputError,
    ZoneplayNotFoundError,
)
