from dataclasses import dataclass, field

from zoneplay.types import DeviceId, DidlMetadata, ObjectId, PlaybackStatus


@dataclass
class FavoriteRecord:
    id: str
    title: str
    canonical_object_id: ObjectId
    metadata: DidlMetadata = ""
    is_container: bool = False
    raw_object_id: ObjectId | None = None
    uri: str | None = None
    account_id: str | None = None
    album_art_uri: str | None = None


@dataclass
class BrowseResultItem:
    id: str
    browse_id: str
    title: str
    class_hint: str
    metadata: DidlMetadata
    date: str | None = None
    uri: str | None = None
    album_art_uri: str | None = None

    @property
    def is_container(self) -> bool:
        return self.class_hint.startswith("object.container")


@dataclass
class SpeakerInfo:
    uuid: DeviceId
    address: str
    zone_name: str


@dataclass
class GroupJoinFailure:
    device_id: DeviceId
    reason: str


@dataclass
class DeviceGroup:
    """A playback group formed for a single request.

    The coordinator is always the first of the requested devices. member_ids
    starts with the coordinator and only includes devices which joined.
    """

    coordinator_id: DeviceId
    coordinator_address: str
    member_ids: list[DeviceId] = field(default_factory=list)
    failures: list[GroupJoinFailure] = field(default_factory=list)


@dataclass
class PlaybackTarget:
    uri: str
    metadata: DidlMetadata


@dataclass
class PlaybackResult:
    status: PlaybackStatus
    message: str
    target: PlaybackTarget | None = None
    group: DeviceGroup | None = None
    item: BrowseResultItem | None = None
    items: list[BrowseResultItem] = field(default_factory=list)
