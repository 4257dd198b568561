from typing import Any, Callable, Literal

# -----------------------------------------------------------------------------
# Application types
# -----------------------------------------------------------------------------

DeviceId = str  # Speaker UUID, e.g. "RINCON_000E58A0123401400"

ObjectId = str  # ContentDirectory object id

DidlMetadata = str  # DIDL-Lite XML fragment

# SOAP services this package talks to.
ServiceKind = Literal[
    "av_transport",
    "content_directory",
    "music_services",
    "rendering_control",
    "zone_group_topology",
]

PlaybackStatus = Literal["playing", "resolution_exhausted"]

# Which browse strategy produced a set of results.
BrowseStrategy = Literal["direct", "re_resolved", "music_services"]

RepeatMode = Literal["off", "all", "one"]

# Messaging -------------------------------------------------------------------

UpdateMessageType = Literal["Favorites", "Speakers", "Toast"]

UpdateMessageHandler = Callable[[UpdateMessageType, Any], None]
