from zoneplay.constants import ERROR_CODE_INVALID_OBJECT_ID


class ZoneplayError(Exception):
    pass


class ZoneplayDeviceError(ZoneplayError):
    """A speaker-side issue."""

    pass


class ZoneplayInputError(ZoneplayError):
    """Bad/unexpected user input."""

    pass


class ZoneplayNotFoundError(ZoneplayError):
    """Something was not found (favorite, speaker, etc)."""

    pass


class TransportError(ZoneplayDeviceError):
    """The speaker could not be reached (network error or timeout)."""

    pass


class ProtocolFault(ZoneplayDeviceError):
    """Exception for SOAP faults reported by a speaker."""

    def __init__(
        self,
        message: str,
        error_code: int | None = None,
        fault_string: str | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.fault_string = fault_string

    @property
    def is_invalid_object_id(self) -> bool:
        # ContentDirectory's "No such object".
        return self.error_code == ERROR_CODE_INVALID_OBJECT_ID
