from datetime import date, datetime, time, timezone

from zoneplay.constants import DATE_TAGS
from zoneplay.didl import element_field, object_elements, parse_didl
from zoneplay.models import BrowseResultItem


def parse_date(value: str | None) -> datetime | None:
    """Parse an ISO-ish date from DIDL metadata into an aware datetime.

    Date-only values are treated as midnight UTC, as are naive timestamps.
    """
    if not value or not value.strip():
        return None

    value = value.strip()

    if value.endswith("Z"):
        value = f"{value[:-1]}+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(value[:10]), time())
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed


def item_date(item: BrowseResultItem) -> datetime | None:
    """The first of the item's date fields which parses.

    The date fields are tried in DATE_TAGS order (broadcast date, alternate
    broadcast date, dc:date, release date). BrowseResultItem.date holds the
    first non-empty one; if that doesn't parse the others are tried from the
    item's metadata.
    """
    if parsed := parse_date(item.date):
        return parsed

    root = parse_didl(item.metadata)

    if root is None:
        return None

    for element in object_elements(root):
        for tag in DATE_TAGS:
            if parsed := parse_date(element_field(element, [tag])):
                return parsed

    return None


def pick_latest(items: list[BrowseResultItem]) -> BrowseResultItem | None:
    """Pick the newest item.

    Items without a parseable date are left out of the comparison. Ties keep
    their original order. If nothing is dated, the first item is returned.
    """
    if not items:
        return None

    dated = [(parsed, item) for item in items if (parsed := item_date(item))]

    if not dated:
        return items[0]

    dated.sort(key=lambda entry: entry[0], reverse=True)

    return dated[0][1]
