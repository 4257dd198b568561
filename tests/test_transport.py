"""Tests for AVTransport commands and the transport committer."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from conftest import COORDINATOR_ID, didl, soap_fault, soap_response
from zoneplay.exceptions import ProtocolFault, TransportError, ZoneplayInputError
from zoneplay.models import DeviceGroup, PlaybackTarget
from zoneplay.soap import parse_fault
from zoneplay.transport import AVTransport, TransportCommitter, is_queue_class

GROUP = DeviceGroup(
    coordinator_id=COORDINATOR_ID,
    coordinator_address="10.0.0.1",
    member_ids=[COORDINATOR_ID],
)

STREAM = PlaybackTarget(
    uri="x-sonos-http:ep2.mp3",
    metadata=didl(
        '<item id="ep:2"><dc:title>Episode 2</dc:title>'
        "<upnp:class>object.item.audioItem.podcast</upnp:class></item>"
    ),
)

PLAYLIST = PlaybackTarget(
    uri="x-rincon-cpcontainer:1006206cplaylist",
    metadata=didl(
        '<container id="pl:1"><dc:title>Mix</dc:title>'
        "<upnp:class>object.container.playlistContainer</upnp:class></container>"
    ),
)


@pytest.fixture
def sleeps(fake_transport):
    """Patch asyncio.sleep in the committer, recording each delay.

    Each entry is (delay, number of SOAP calls made before the sleep).
    """
    recorded: list[tuple[float, int]] = []

    def record(delay):
        recorded.append((delay, len(fake_transport.calls)))

    with patch(
        "zoneplay.transport.asyncio.sleep", new=AsyncMock(side_effect=record)
    ):
        yield recorded


def committer(fake_transport) -> TransportCommitter:
    return TransportCommitter(
        AVTransport(fake_transport), retry_delay=0.5, play_delay=0.25
    )


class TestDirectCommit:
    """Test committing a directly playable target."""

    @pytest.mark.asyncio
    async def test_set_then_play(self, fake_transport, sleeps) -> None:
        """Test the URI is set, then play follows after the play delay."""
        await committer(fake_transport).commit(GROUP, STREAM)

        assert fake_transport.actions == ["SetAVTransportURI", "Play"]
        assert sleeps == [(0.25, 1)]
        assert all(call[3] == "10.0.0.1" for call in fake_transport.calls)

        set_body = fake_transport.calls[0][2]
        assert "<CurrentURI>x-sonos-http:ep2.mp3</CurrentURI>" in set_body
        assert "&lt;DIDL-Lite" in set_body
        assert "<Speed>1</Speed>" in fake_transport.calls[1][2]

    @pytest.mark.asyncio
    async def test_uri_set_retried_once(self, fake_transport, sleeps) -> None:
        """Test a failed URI set is retried once after the retry delay."""
        fake_transport.script("SetAVTransportURI", TransportError("timed out"))

        await committer(fake_transport).commit(GROUP, STREAM)

        assert fake_transport.actions == [
            "SetAVTransportURI",
            "SetAVTransportURI",
            "Play",
        ]
        assert sleeps == [(0.5, 1), (0.25, 2)]

    @pytest.mark.asyncio
    async def test_second_failure_propagates(self, fake_transport, sleeps) -> None:
        """Test a second URI set failure reaches the caller, without play."""
        fake_transport.script(
            "SetAVTransportURI",
            TransportError("timed out"),
            parse_fault(soap_fault(714)),
        )

        with pytest.raises(ProtocolFault):
            await committer(fake_transport).commit(GROUP, STREAM)

        assert fake_transport.actions == ["SetAVTransportURI", "SetAVTransportURI"]
        assert sleeps == [(0.5, 1)]

    @pytest.mark.asyncio
    async def test_play_not_retried(self, fake_transport, sleeps) -> None:
        """Test a failing play propagates without a retry."""
        fake_transport.script("Play", ProtocolFault("action failed", 501))

        with pytest.raises(ProtocolFault):
            await committer(fake_transport).commit(GROUP, STREAM)

        assert fake_transport.actions == ["SetAVTransportURI", "Play"]


class TestQueueCommit:
    """Test committing a playlist/album by way of the queue."""

    @pytest.mark.asyncio
    async def test_queue_sequence(self, fake_transport, sleeps) -> None:
        """Test clear, enqueue, switch to queue, seek, then play."""
        fake_transport.script(
            "AddURIToQueue",
            soap_response(
                "av_transport",
                "AddURIToQueue",
                FirstTrackNumberEnqueued=5,
                NumTracksAdded=12,
                NewQueueLength=16,
            ),
        )

        await committer(fake_transport).commit(GROUP, PLAYLIST)

        assert fake_transport.actions == [
            "RemoveAllTracksFromQueue",
            "AddURIToQueue",
            "SetAVTransportURI",
            "Seek",
            "Play",
        ]
        assert sleeps == [(0.25, 4)]

        _, _, add_body, _ = fake_transport.calls[1]
        assert "<EnqueuedURI>x-rincon-cpcontainer:1006206cplaylist</EnqueuedURI>" in add_body

        _, _, set_body, _ = fake_transport.calls[2]
        assert f"<CurrentURI>x-rincon-queue:{COORDINATOR_ID}#0</CurrentURI>" in set_body

        _, _, seek_body, _ = fake_transport.calls[3]
        assert "<Unit>TRACK_NR</Unit><Target>5</Target>" in seek_body

    @pytest.mark.asyncio
    async def test_queue_rejection_retried(self, fake_transport, sleeps) -> None:
        """Test a rejected enqueue re-runs the queue sequence once."""
        fake_transport.script("AddURIToQueue", parse_fault(soap_fault(804)))

        await committer(fake_transport).commit(GROUP, PLAYLIST)

        assert fake_transport.actions == [
            "RemoveAllTracksFromQueue",
            "AddURIToQueue",
            "RemoveAllTracksFromQueue",
            "AddURIToQueue",
            "SetAVTransportURI",
            "Seek",
            "Play",
        ]
        assert sleeps == [(0.5, 2), (0.25, 6)]

        # FirstTrackNumberEnqueued missing from the response: track 1
        assert "<Target>1</Target>" in fake_transport.calls[5][2]

    def test_queue_classes(self) -> None:
        """Test which classes go by way of the queue."""
        assert is_queue_class("object.container.playlistContainer")
        assert is_queue_class("object.container.album.musicAlbum")
        assert not is_queue_class("object.item.audioItem.audioBroadcast")
        assert not is_queue_class("object.container.podcast")
        assert not is_queue_class(None)


class TestAVTransport:
    """Test the AVTransport command wrapper."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,action",
        [
            ("pause", "Pause"),
            ("stop", "Stop"),
            ("next", "Next"),
            ("previous", "Previous"),
            ("clear_queue", "RemoveAllTracksFromQueue"),
        ],
    )
    async def test_simple_commands(self, fake_transport, method, action) -> None:
        """Test each simple command sends its action with InstanceID 0."""
        await getattr(AVTransport(fake_transport), method)("10.0.0.1")

        [(service_kind, sent_action, body, _)] = fake_transport.calls
        assert (service_kind, sent_action) == ("av_transport", action)
        assert body == "<InstanceID>0</InstanceID>"

    @pytest.mark.asyncio
    async def test_play_mode(self, fake_transport) -> None:
        """Test shuffle/repeat map onto Sonos play modes."""
        av_transport = AVTransport(fake_transport)

        await av_transport.set_play_mode("10.0.0.1", shuffle=True, repeat="all")
        await av_transport.set_play_mode("10.0.0.1", shuffle=False, repeat="one")

        assert "<NewPlayMode>SHUFFLE</NewPlayMode>" in fake_transport.calls[0][2]
        assert "<NewPlayMode>REPEAT_ONE</NewPlayMode>" in fake_transport.calls[1][2]

        with pytest.raises(ZoneplayInputError):
            await av_transport.set_play_mode("10.0.0.1", repeat="sometimes")

    @pytest.mark.asyncio
    async def test_seek_relative(self, fake_transport) -> None:
        """Test fast-forward and rewind relative to the current position."""
        fake_transport.script(
            "GetPositionInfo",
            soap_response("av_transport", "GetPositionInfo", Track=1, RelTime="0:01:10"),
            soap_response("av_transport", "GetPositionInfo", Track=1, RelTime="0:00:10"),
        )
        av_transport = AVTransport(fake_transport)

        assert await av_transport.seek_relative("10.0.0.1", 30) == 100
        assert await av_transport.seek_relative("10.0.0.1", -30) == 0

        seeks = fake_transport.calls_for("Seek")
        assert "<Unit>REL_TIME</Unit><Target>0:01:40</Target>" in seeks[0][2]
        assert "<Target>0:00:00</Target>" in seeks[1][2]

    @pytest.mark.asyncio
    async def test_seek_relative_live_stream(self, fake_transport) -> None:
        """Test no seek is sent when the track has no position."""
        fake_transport.script(
            "GetPositionInfo",
            soap_response("av_transport", "GetPositionInfo", RelTime="NOT_IMPLEMENTED"),
        )

        assert await AVTransport(fake_transport).seek_relative("10.0.0.1", 30) is None
        assert fake_transport.calls_for("Seek") == []
