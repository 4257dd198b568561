import math
import re

ONE_HOUR_IN_SECS = 60 * 60
ONE_MIN_IN_SECS = 60
HMMSS_MATCH = re.compile(r"^\d+:\d{2}:\d{2}(\.\d+)?$")


# -----------------------------------------------------------------------------
# Time helpers. Sonos reports and seeks track positions as "h:mm:ss".


def is_hmmss(value: str) -> bool:
    """True if the given string matches "h:mm:ss(.ms)"."""
    return bool(HMMSS_MATCH.match(value))


def secs_to_hmmss(input_secs: int) -> str:
    """Converts the given number of seconds to "h:mm:ss"."""
    input_secs = max(0, int(input_secs))
    hours = math.floor(input_secs / ONE_HOUR_IN_SECS)
    mins = math.floor((input_secs - hours * ONE_HOUR_IN_SECS) / ONE_MIN_IN_SECS)
    secs = input_secs - (hours * ONE_HOUR_IN_SECS) - (mins * ONE_MIN_IN_SECS)

    return f"{hours}:{mins:02}:{secs:02}"


def hmmss_to_secs(input_hmmss: str | None) -> int | None:
    """Converts "h:mm:ss" to whole seconds; None for anything else.

    Speakers report "NOT_IMPLEMENTED" as the position of live streams.
    """
    if not input_hmmss or not is_hmmss(input_hmmss):
        return None

    [h, mm, ss] = [float(component) for component in input_hmmss.split(":")]

    return round(h * ONE_HOUR_IN_SECS + mm * ONE_MIN_IN_SECS + ss)
