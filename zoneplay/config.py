import json
from pathlib import Path

from pydantic import BaseModel

from zoneplay.constants import (
    DEFAULT_BROWSE_REQUESTED_COUNT,
    DEFAULT_PLAY_DELAY,
    DEFAULT_SOAP_TIMEOUT,
    DEFAULT_URI_SET_RETRY_DELAY,
    SONOS_PORT,
)
from zoneplay.exceptions import ZoneplayInputError
from zoneplay.logger import logger


class ZoneplaySettings(BaseModel):
    # Address of any speaker in the household. Used to fetch the topology and
    # the favorites list.
    bootstrap_address: str | None = None
    port: int = SONOS_PORT
    soap_timeout: float = DEFAULT_SOAP_TIMEOUT
    uri_set_retry_delay: float = DEFAULT_URI_SET_RETRY_DELAY
    play_delay: float = DEFAULT_PLAY_DELAY
    browse_requested_count: int = DEFAULT_BROWSE_REQUESTED_COUNT
    favorites_requested_count: int = DEFAULT_BROWSE_REQUESTED_COUNT


def load_settings(path: str | Path | None = None, **overrides) -> ZoneplaySettings:
    """Load settings from an optional JSON file, then apply any overrides.

    Overrides with a value of None are ignored, which lets CLI options be
    passed straight through.
    """
    values = {}

    if path is not None:
        try:
            values = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ZoneplayInputError(f"Could not read settings from {path}: {e}")

        logger.info(f"Loaded settings from {path}")

    values.update({key: value for key, value in overrides.items() if value is not None})

    return ZoneplaySettings(**values)
