"""Fixtures and fakes for zoneplay tests."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import pytest

from zoneplay.constants import SERVICES, SOAP_ENVELOPE_NS
from zoneplay.models import SpeakerInfo
from zoneplay.soap import build_arguments, escape_xml, parse_action_response

COORDINATOR_ID = "RINCON_AAA01400"
MEMBER_B_ID = "RINCON_BBB01400"
MEMBER_C_ID = "RINCON_CCC01400"

SPEAKERS = {
    COORDINATOR_ID: SpeakerInfo(COORDINATOR_ID, "10.0.0.1", "Kitchen"),
    MEMBER_B_ID: SpeakerInfo(MEMBER_B_ID, "10.0.0.2", "Office"),
    MEMBER_C_ID: SpeakerInfo(MEMBER_C_ID, "10.0.0.3", "Lounge"),
}

DIDL_OPEN = (
    '<DIDL-Lite xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:upnp="urn:schemas-upnp-org:metadata-1-0/upnp/" '
    'xmlns:r="urn:schemas-rinconnetworks-com:metadata-1-0/" '
    'xmlns="urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/">'
)


def didl(*fragments: str) -> str:
    """Wrap item/container fragments in a DIDL-Lite root."""
    return f"{DIDL_OPEN}{''.join(fragments)}</DIDL-Lite>"


def episode(
    object_id: str,
    title: str,
    uri: str,
    date: str | None = None,
    upnp_class: str = "object.item.audioItem.podcast",
) -> str:
    date_xml = (
        f"<upnp:originalBroadcastDate>{date}</upnp:originalBroadcastDate>"
        if date
        else ""
    )

    return (
        f'<item id="{object_id}" parentID="show" restricted="true">'
        f"<dc:title>{title}</dc:title>"
        f"<upnp:class>{upnp_class}</upnp:class>"
        f"{date_xml}"
        f'<res protocolInfo="http-get:*:audio/mpeg:*">{escape_xml(uri)}</res>'
        "</item>"
    )


def soap_response(service_kind: str, action: str, **outputs: Any) -> str:
    """A successful SOAP response envelope for the given action."""
    _, urn = SERVICES[service_kind]

    return (
        '<?xml version="1.0"?>'
        f'<s:Envelope xmlns:s="{SOAP_ENVELOPE_NS}" '
        's:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">'
        f'<s:Body><u:{action}Response xmlns:u="{urn}">'
        f"{build_arguments(**outputs)}"
        f"</u:{action}Response></s:Body></s:Envelope>"
    )


def soap_fault(error_code: int, description: str | None = None) -> str:
    """A SOAP fault envelope carrying a UPnP error code."""
    description_xml = (
        f"<errorDescription>{description}</errorDescription>" if description else ""
    )

    return (
        '<?xml version="1.0"?>'
        f'<s:Envelope xmlns:s="{SOAP_ENVELOPE_NS}" '
        's:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">'
        "<s:Body><s:Fault>"
        "<faultcode>s:Client</faultcode><faultstring>UPnPError</faultstring>"
        '<detail><UPnPError xmlns="urn:schemas-upnp-org:control-1-0">'
        f"<errorCode>{error_code}</errorCode>{description_xml}"
        "</UPnPError></detail>"
        "</s:Fault></s:Body></s:Envelope>"
    )


class FakeTransport:
    """A scripted stand-in for SoapTransport.

    Responses are queued per action with script(). Each queued entry is either
    a response XML string or an exception instance to raise. An action with
    nothing queued returns an empty response. Every call is recorded, in
    order, in calls.
    """

    def __init__(self, port: int = 1400) -> None:
        self.port = port
        self.calls: list[tuple[str, str, str, str]] = []
        self.closed = False
        self._scripts: dict[str, list[Any]] = defaultdict(list)

    def script(self, action: str, *responses: Any) -> None:
        self._scripts[action].extend(responses)

    def calls_for(self, action: str) -> list[tuple[str, str, str, str]]:
        return [call for call in self.calls if call[1] == action]

    @property
    def actions(self) -> list[str]:
        return [call[1] for call in self.calls]

    async def call(
        self, service_kind: str, action: str, body_xml: str, target_address: str
    ) -> str:
        self.calls.append((service_kind, action, body_xml, target_address))

        if self._scripts[action]:
            response = self._scripts[action].pop(0)
        else:
            response = soap_response(service_kind, action)

        if isinstance(response, Exception):
            raise response

        return response

    async def call_action(
        self, service_kind: str, action: str, target_address: str, **arguments: Any
    ) -> dict[str, str]:
        raw = await self.call(
            service_kind, action, build_arguments(**arguments), target_address
        )

        return parse_action_response(raw, service_kind, action)

    async def close(self) -> None:
        self.closed = True


class StaticSnapshot:
    """A topology snapshot which returns a fixed set of speakers."""

    def __init__(self, speakers: dict[str, SpeakerInfo] | None = None) -> None:
        self.speakers = dict(SPEAKERS if speakers is None else speakers)
        self.calls = 0

    async def snapshot(self) -> dict[str, SpeakerInfo]:
        self.calls += 1

        return dict(self.speakers)


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Return a scripted fake SOAP transport."""
    return FakeTransport()


@pytest.fixture
def static_snapshot() -> StaticSnapshot:
    """Return a snapshot of three speakers."""
    return StaticSnapshot()
