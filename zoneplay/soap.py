import asyncio
from xml.parsers.expat import ExpatError
from xml.sax.saxutils import escape

import aiohttp
import xmltodict

from zoneplay.constants import (
    DEFAULT_SOAP_TIMEOUT,
    SERVICES,
    SOAP_ENCODING_STYLE,
    SOAP_ENVELOPE_NS,
    SONOS_PORT,
    UPNP_ERROR_MESSAGES,
)
from zoneplay.exceptions import ProtocolFault, TransportError
from zoneplay.logger import logger
from zoneplay.types import ServiceKind

UPNP_CONTROL_NS = "urn:schemas-upnp-org:control-1-0"

_XML_ATTRIBUTE_ESCAPES = {"'": "&apos;", '"': "&quot;"}


# -----------------------------------------------------------------------------
# Envelope helpers
# -----------------------------------------------------------------------------


def escape_xml(value) -> str:
    """Entity-escape a value before embedding it in XML."""
    if value is None:
        return ""

    if isinstance(value, bool):
        value = int(value)

    return escape(str(value), _XML_ATTRIBUTE_ESCAPES)


def build_arguments(**arguments) -> str:
    """Render action arguments as <Name>value</Name> elements, in order."""
    return "".join(
        f"<{name}>{escape_xml(value)}</{name}>" for name, value in arguments.items()
    )


def build_envelope(service_urn: str, action: str, body_xml: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<s:Envelope xmlns:s="{SOAP_ENVELOPE_NS}" '
        f's:encodingStyle="{SOAP_ENCODING_STYLE}">'
        "<s:Body>"
        f'<u:{action} xmlns:u="{service_urn}">{body_xml}</u:{action}>'
        "</s:Body>"
        "</s:Envelope>"
    )


def parse_envelope_body(xml: str, *service_namespaces: str) -> dict:
    """Parse a SOAP envelope and return its Body, with namespaces collapsed."""
    namespaces = {SOAP_ENVELOPE_NS: None, UPNP_CONTROL_NS: None}
    namespaces.update({namespace: None for namespace in service_namespaces})

    parsed = xmltodict.parse(xml, process_namespaces=True, namespaces=namespaces)

    return (parsed.get("Envelope") or {}).get("Body") or {}


def fault_message(error_code: int | None) -> str:
    if error_code is None:
        return "SOAP fault"

    return UPNP_ERROR_MESSAGES.get(error_code, f"UPnP error {error_code}")


def parse_fault(xml: str) -> ProtocolFault | None:
    """Extract a ProtocolFault from a SOAP fault response, if it is one."""
    try:
        body = parse_envelope_body(xml)
    except ExpatError:
        return None

    fault = body.get("Fault")

    if not isinstance(fault, dict):
        return None

    fault_string = fault.get("faultstring")
    upnp_error = (fault.get("detail") or {}).get("UPnPError") or {}
    raw_code = upnp_error.get("errorCode")

    try:
        error_code = int(raw_code) if raw_code is not None else None
    except ValueError:
        error_code = None

    message = fault_message(error_code)

    if description := upnp_error.get("errorDescription"):
        message = f"{message}: {description}"

    return ProtocolFault(message, error_code=error_code, fault_string=fault_string)


def parse_action_response(xml: str, service_kind: ServiceKind, action: str) -> dict:
    """Flatten an action's <u:ActionResponse> into a dict of strings."""
    _, service_urn = SERVICES[service_kind]

    try:
        body = parse_envelope_body(xml, service_urn)
    except ExpatError as e:
        raise TransportError(f"{action}: malformed response: {e}") from e

    response = body.get(f"{action}Response") or {}

    if not isinstance(response, dict):
        return {}

    return {
        key: "" if value is None else value if isinstance(value, str) else str(value)
        for key, value in response.items()
        if not key.startswith("@")
    }


# -----------------------------------------------------------------------------
# Transport
# -----------------------------------------------------------------------------


class SoapTransport:
    """Issue SOAP actions against a speaker.

    The transport is deliberately thin: it builds the envelope, POSTs it, and
    classifies the response. It never retries; retry policy belongs to the
    caller.
    """

    def __init__(
        self,
        port: int = SONOS_PORT,
        timeout: float = DEFAULT_SOAP_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ):
        self._port = port
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def port(self) -> int:
        return self._port

    def control_url(self, service_kind: ServiceKind, target_address: str) -> str:
        control_path, _ = SERVICES[service_kind]

        return f"http://{target_address}:{self._port}{control_path}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        return self._session

    async def close(self) -> None:
        """Close the HTTP session if it was created by this transport."""
        if self._session is not None and self._owns_session:
            await self._session.close()

        self._session = None

    async def call(
        self,
        service_kind: ServiceKind,
        action: str,
        body_xml: str,
        target_address: str,
    ) -> str:
        """Perform a SOAP action and return the raw response XML.

        Raises TransportError on network/timeout/HTTP failures and
        ProtocolFault when the speaker responds with a SOAP fault.
        """
        _, service_urn = SERVICES[service_kind]
        url = self.control_url(service_kind, target_address)
        headers = {
            "Content-Type": 'text/xml; charset="utf-8"',
            "SOAPACTION": f'"{service_urn}#{action}"',
        }
        envelope = build_envelope(service_urn, action, body_xml)

        logger.debug(f"SOAP {action} -> {url}")

        session = await self._get_session()

        try:
            async with session.post(
                url,
                data=envelope.encode("utf-8"),
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                status = response.status
                text = await response.text()
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"{action} on {target_address} timed out after {self._timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{action} on {target_address} failed: {e}") from e

        if 200 <= status < 300:
            logger.debug(f"SOAP {action} <- {target_address}: HTTP {status}")
            return text

        if fault := parse_fault(text):
            logger.debug(
                f"SOAP {action} <- {target_address}: fault {fault.error_code} ({fault})"
            )
            raise fault

        raise TransportError(f"{action} on {target_address} failed: HTTP {status}")

    async def call_action(
        self,
        service_kind: ServiceKind,
        action: str,
        target_address: str,
        **arguments,
    ) -> dict[str, str]:
        """Perform a SOAP action with keyword arguments; return its outputs."""
        raw = await self.call(
            service_kind, action, build_arguments(**arguments), target_address
        )

        return parse_action_response(raw, service_kind, action)
