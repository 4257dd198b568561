"""Tests for latest episode selection."""

from __future__ import annotations

from datetime import datetime, timezone

from conftest import didl
from zoneplay.episodes import item_date, parse_date, pick_latest
from zoneplay.models import BrowseResultItem


def item(object_id: str, date: str | None = None, metadata: str = "") -> BrowseResultItem:
    return BrowseResultItem(
        id=object_id,
        browse_id=object_id,
        title=object_id,
        class_hint="object.item.audioItem.podcast",
        metadata=metadata,
        date=date,
        uri=f"uri-{object_id}",
    )


class TestParseDate:
    """Test date parsing."""

    def test_date_only_is_midnight_utc(self) -> None:
        """Test a date without a time is midnight UTC."""
        assert parse_date("2024-02-01") == datetime(2024, 2, 1, tzinfo=timezone.utc)

    def test_zulu(self) -> None:
        """Test a trailing Z is understood as UTC."""
        assert parse_date("2024-02-01T10:30:00Z") == datetime(
            2024, 2, 1, 10, 30, tzinfo=timezone.utc
        )

    def test_unparseable(self) -> None:
        """Test junk and empty values are None."""
        assert parse_date("last tuesday") is None
        assert parse_date("") is None
        assert parse_date(None) is None


class TestItemDate:
    """Test date lookup for an item."""

    def test_falls_back_to_other_date_tags(self) -> None:
        """Test a later date tag is used when the first does not parse."""
        metadata = didl(
            '<item id="a"><upnp:originalBroadcastDate>unknown</upnp:originalBroadcastDate>'
            "<upnp:releaseDate>2023-07-04</upnp:releaseDate></item>"
        )

        assert item_date(item("a", "unknown", metadata)) == datetime(
            2023, 7, 4, tzinfo=timezone.utc
        )


class TestPickLatest:
    """Test pick_latest."""

    def test_newest_wins(self) -> None:
        """Test the newest dated item is picked over undated ones."""
        items = [item("u0"), item("u1", "2023-05-01"), item("u2", "2024-02-01")]

        assert pick_latest(items).id == "u2"

    def test_undated_first_when_nothing_dated(self) -> None:
        """Test the first item is picked when nothing has a date."""
        items = [item("a"), item("b"), item("c")]

        assert pick_latest(items).id == "a"

    def test_ties_keep_original_order(self) -> None:
        """Test equal dates keep their original order."""
        items = [item("a", "2024-02-01"), item("b", "2024-02-01T00:00:00Z")]

        assert pick_latest(items).id == "a"

    def test_single_dated_item_beats_undated_first_item(self) -> None:
        """Test a dated item is preferred even when it is not first."""
        items = [item("a"), item("b", "1999-01-01")]

        assert pick_latest(items).id == "b"

    def test_empty(self) -> None:
        """Test None for no items."""
        assert pick_latest([]) is None
