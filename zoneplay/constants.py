import importlib.metadata

try:
    ZONEPLAY_VER = importlib.metadata.version("zoneplay")
except importlib.metadata.PackageNotFoundError:
    ZONEPLAY_VER = "0.0.0"

SONOS_PORT = 1400

# Fixed timing for the playback protocol. A speaker does not always accept a
# freshly referenced stream on the first SetAVTransportURI, and needs a moment
# to apply a new URI before it will accept Play.
DEFAULT_SOAP_TIMEOUT = 10.0
DEFAULT_URI_SET_RETRY_DELAY = 0.5
DEFAULT_PLAY_DELAY = 0.25

DEFAULT_BROWSE_REQUESTED_COUNT = 100
FAVORITES_OBJECT_ID = "FV:2"

# -----------------------------------------------------------------------------
# SOAP

SOAP_ENVELOPE_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_ENCODING_STYLE = "http://schemas.xmlsoap.org/soap/encoding/"

# service kind -> (control path, service URN)
SERVICES = {
    "content_directory": (
        "/MediaServer/ContentDirectory/Control",
        "urn:schemas-upnp-org:service:ContentDirectory:1",
    ),
    "av_transport": (
        "/MediaRenderer/AVTransport/Control",
        "urn:schemas-upnp-org:service:AVTransport:1",
    ),
    "rendering_control": (
        "/MediaRenderer/RenderingControl/Control",
        "urn:schemas-upnp-org:service:RenderingControl:1",
    ),
    "zone_group_topology": (
        "/ZoneGroupTopology/Control",
        "urn:schemas-upnp-org:service:ZoneGroupTopology:1",
    ),
    "music_services": (
        "/MusicServices/Control",
        "urn:schemas-upnp-org:service:MusicServices:1",
    ),
}

# UPnP error codes -> human messages. ContentDirectory and AVTransport reuse
# the 7xx range, so the messages are worded for the actions this package uses.
UPNP_ERROR_MESSAGES = {
    401: "invalid action",
    402: "invalid args",
    501: "action failed",
    701: "invalid object id",
    714: "illegal MIME-type",
    718: "invalid instance id",
    804: "queue add rejected",
}

ERROR_CODE_INVALID_OBJECT_ID = 701

# -----------------------------------------------------------------------------
# DIDL-Lite

DIDL_NAMESPACES = {
    "didl": "urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/",
    "dc": "http://purl.org/dc/elements/1.1/",
    "upnp": "urn:schemas-upnp-org:metadata-1-0/upnp/",
    "r": "urn:schemas-rinconnetworks-com:metadata-1-0/",
}

# Field fallback lists, shared by every browse strategy so results have the
# same shape regardless of where they came from.
TITLE_TAGS = ["dc:title", "upnp:title"]
DATE_TAGS = [
    "upnp:originalBroadcastDate",
    "r:originalBroadcastDate",
    "dc:date",
    "upnp:releaseDate",
]
ALBUM_ART_TAGS = ["upnp:albumArtURI", "r:albumArtURI", "upnp:icon"]
CLASS_TAGS = ["upnp:class"]

# UPnP classes which are played by way of the queue rather than directly.
QUEUE_CLASS_PREFIXES = [
    "object.container.playlistContainer",
    "object.container.album",
]

# -----------------------------------------------------------------------------
# Sonos URIs

COORDINATOR_URI_PREFIX = "x-rincon:"
QUEUE_URI_TEMPLATE = "x-rincon-queue:{uuid}#0"
