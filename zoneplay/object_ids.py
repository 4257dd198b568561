import re
from urllib.parse import unquote
from xml.sax.saxutils import unescape

from zoneplay.types import ObjectId

# -----------------------------------------------------------------------------
# Object id handling.
#
# Favorites carry their content id in several inconsistent places and
# encodings. ContentDirectory:Browse wants the percent-encoded wire form; a
# raw ':' in particular is the usual reason a browse is rejected.
# -----------------------------------------------------------------------------

_ENCODED_MATCH = re.compile(r"%[0-9A-Fa-f]{2}")
_R_OBJECT_ID_MATCH = re.compile(r"<r:objectId[^>]*>([^<]+)</r:objectId>", re.IGNORECASE)
_RES_MD_MATCH = re.compile(r"<r:resMD[^>]*>(.*?)</r:resMD>", re.IGNORECASE | re.DOTALL)
_URI_OBJECT_ID_MATCH = re.compile(r"[?&]objectId=([^&]+)", re.IGNORECASE)
_DIDL_ID_MATCH = re.compile(r"<(?:\w+:)?(?:container|item)\b[^>]*?\bid=\"([^\"]*)\"")
_SERVICE_ID_MATCHES = [
    re.compile(r"SA_RINCON(\d+)_"),
    re.compile(r"Svc(\d+)-"),
]
_URI_SERVICE_ID_MATCH = re.compile(r"[?&]sid=(\d+)")
_ACCOUNT_ID_MATCH = re.compile(r"[?&]sn=(\d+)")
_DESC_ACCOUNT_MATCH = re.compile(r"SA_RINCON\d+_([^<\s]*)")


def is_encoded(object_id: str) -> bool:
    """Whether the id already contains percent-escapes (i.e. is wire form)."""
    return bool(_ENCODED_MATCH.search(object_id))


def normalize(object_id: ObjectId | None) -> ObjectId | None:
    """Normalize an object id to the encoded form Browse accepts.

    Ids which already contain percent-escapes are returned unchanged.
    Otherwise ':' is percent-encoded.
    """
    if not object_id:
        return object_id

    if is_encoded(object_id):
        return object_id

    return object_id.replace(":", "%3A")


def _unescaped(metadata: str) -> str:
    return unescape(metadata, {"&quot;": '"', "&apos;": "'"})


def extract_object_id_from_metadata(metadata: str | None) -> ObjectId | None:
    """Find an r:objectId in DIDL metadata (raw, escaped, or inside r:resMD)."""
    if not metadata:
        return None

    if match := _R_OBJECT_ID_MATCH.search(metadata):
        return match.group(1).strip()

    unescaped = _unescaped(metadata)

    if match := _R_OBJECT_ID_MATCH.search(unescaped):
        return match.group(1).strip()

    if res_md := _RES_MD_MATCH.search(unescaped):
        if match := _R_OBJECT_ID_MATCH.search(_unescaped(res_md.group(1))):
            return match.group(1).strip()

    return None


def extract_object_id_from_uri(uri: str | None) -> ObjectId | None:
    """Find an objectId=... query parameter in a favorite's URI."""
    if not uri:
        return None

    match = _URI_OBJECT_ID_MATCH.search(_unescaped(uri))

    return match.group(1) if match else None


def extract_didl_id(metadata: str | None) -> ObjectId | None:
    """The id attribute of the first container/item in DIDL metadata."""
    if not metadata:
        return None

    match = _DIDL_ID_MATCH.search(metadata) or _DIDL_ID_MATCH.search(
        _unescaped(metadata)
    )

    return _unescaped(match.group(1)) if match and match.group(1) else None


def extract_service_id(metadata: str | None, uri: str | None = None) -> str | None:
    """Find the music service (provider) id, e.g. "9479" or "254".

    Looks for the SA_RINCON<sid>_ and Svc<sid>- desc markers in the metadata,
    then a sid=<sid> query parameter in the uri.
    """
    for source in (metadata, _unescaped(metadata) if metadata else None):
        if not source:
            continue

        for matcher in _SERVICE_ID_MATCHES:
            if match := matcher.search(source):
                return match.group(1)

    if uri and (match := _URI_SERVICE_ID_MATCH.search(_unescaped(uri))):
        return match.group(1)

    return None


def has_service_marker(metadata: str | None) -> bool:
    return extract_service_id(metadata) is not None


def extract_account_id(metadata: str | None, uri: str | None = None) -> str | None:
    """Find the provider account serial (sn=...), falling back to the desc token."""
    if uri and (match := _ACCOUNT_ID_MATCH.search(_unescaped(uri))):
        return match.group(1)

    if metadata and (match := _ACCOUNT_ID_MATCH.search(_unescaped(metadata))):
        return match.group(1)

    if metadata and (match := _DESC_ACCOUNT_MATCH.search(_unescaped(metadata))):
        return unquote(match.group(1)) or None

    return None


def derive_canonical_id(favorite) -> ObjectId:
    """Derive the id to browse a favorite with.

    Tries, in order: the favorite's raw object id, an r:objectId embedded in
    its metadata, an objectId query parameter in its uri, the DIDL id
    attribute of its metadata, and finally the favorite's own id. The first
    non-empty result wins.
    """
    candidates = (
        lambda: favorite.raw_object_id,
        lambda: extract_object_id_from_metadata(favorite.metadata),
        lambda: extract_object_id_from_uri(favorite.uri),
        lambda: extract_didl_id(favorite.metadata),
        lambda: favorite.id,
    )

    for candidate in candidates:
        if object_id := candidate():
            return object_id

    return ""


def alternate_ids(favorite, failed_id: ObjectId) -> list[ObjectId]:
    """Other ids a favorite could be browsed with, best first.

    Ids which normalize to the same wire form as failed_id are excluded.
    """
    failed = normalize(failed_id)
    alternates: list[ObjectId] = []

    for object_id in (
        favorite.raw_object_id,
        extract_object_id_from_metadata(favorite.metadata),
        extract_object_id_from_uri(favorite.uri),
        extract_didl_id(favorite.metadata),
        getattr(favorite, "canonical_object_id", None),
    ):
        if not object_id:
            continue

        normalized = normalize(object_id)

        if normalized != failed and normalized not in alternates:
            alternates.append(normalized)

    return alternates
