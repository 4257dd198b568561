import copy
import re
from xml.sax.saxutils import unescape

from lxml import etree

from zoneplay.constants import (
    ALBUM_ART_TAGS,
    CLASS_TAGS,
    DATE_TAGS,
    DIDL_NAMESPACES,
    TITLE_TAGS,
)
from zoneplay.logger import logger
from zoneplay.models import BrowseResultItem
from zoneplay.object_ids import normalize

# -----------------------------------------------------------------------------
# DIDL-Lite extraction.
#
# Every browse strategy turns DIDL-Lite into BrowseResultItems through this
# module, so results look the same regardless of which strategy produced them.
# Well-formed DIDL is handled with lxml. Providers do occasionally return DIDL
# which doesn't parse (unbound prefixes, stray ampersands); that is scraped
# with regexes instead, behind the same items_from_didl() contract.
# -----------------------------------------------------------------------------

DIDL_NS = DIDL_NAMESPACES["didl"]
DIDL_ROOT_TAG = f"{{{DIDL_NS}}}DIDL-Lite"
OBJECT_ELEMENTS = ("container", "item")

_XML_UNESCAPES = {"&apos;": "'", "&quot;": '"'}

_parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)

_OBJECT_MATCH = re.compile(
    r"<(?:\w+:)?(container|item)\b([^>]*)>(.*?)</(?:\w+:)?\1>", re.DOTALL
)
_ATTR_MATCH = r'\b{name}\s*=\s*"([^"]*)"'


def unescape_xml(text: str) -> str:
    return unescape(text, _XML_UNESCAPES)


def absolute_art_uri(uri: str | None, base_url: str | None) -> str | None:
    """Album art URIs are often relative to the speaker (/getaa?...)."""
    if not uri:
        return None

    if base_url and uri.startswith("/"):
        return f"{base_url}{uri}"

    return uri


def parse_didl(didl_xml: str):
    """Parse a DIDL-Lite document, returning its root element or None."""
    if not didl_xml or not didl_xml.strip():
        return None

    try:
        return etree.fromstring(didl_xml.strip().encode("utf-8"), _parser)
    except etree.XMLSyntaxError as e:
        logger.debug(f"DIDL-Lite did not parse cleanly: {e}")
        return None


def object_elements(root) -> list:
    """The container and item children of a DIDL-Lite root, in order."""
    return [
        child
        for child in root
        if isinstance(child.tag, str)
        and etree.QName(child).localname in OBJECT_ELEMENTS
    ]


def standalone_didl(element, root=None) -> str:
    """Serialize a single container/item inside its own DIDL-Lite root.

    The namespace declarations of the original root are carried over so the
    fragment is valid on its own (e.g. as CurrentURIMetaData).
    """
    nsmap = {None: DIDL_NS}
    nsmap.update({k: v for k, v in DIDL_NAMESPACES.items() if k != "didl"})

    if root is not None:
        nsmap.update(root.nsmap)

    wrapper = etree.Element(DIDL_ROOT_TAG, nsmap=nsmap)
    wrapper.append(copy.deepcopy(element))

    return etree.tostring(wrapper, encoding="unicode")


def element_field(element, tags: list[str]) -> str | None:
    """The first non-empty value found for any of the given tags."""
    for tag in tags:
        found = element.find(tag, namespaces=DIDL_NAMESPACES)

        if found is not None and found.text and found.text.strip():
            return found.text.strip()

    return None


def element_res(element) -> str | None:
    """The element's playable URI. Sonos-specific (x-...) schemes win."""
    uris = [
        res.text.strip()
        for res in element.findall("didl:res", namespaces=DIDL_NAMESPACES)
        if res.text and res.text.strip()
    ]

    if not uris:
        return None

    return next((uri for uri in uris if uri.startswith("x-")), uris[0])


def item_from_element(element, root=None, base_url=None) -> BrowseResultItem:
    object_id = element.get("id", "")

    return BrowseResultItem(
        id=object_id,
        browse_id=normalize(object_id),
        title=element_field(element, TITLE_TAGS) or "Unknown",
        class_hint=element_field(element, CLASS_TAGS) or "",
        metadata=standalone_didl(element, root),
        date=element_field(element, DATE_TAGS),
        uri=element_res(element),
        album_art_uri=absolute_art_uri(
            element_field(element, ALBUM_ART_TAGS), base_url
        ),
    )


# -----------------------------------------------------------------------------
# Regex fallback


def _regex_field(body: str, tags: list[str]) -> str | None:
    for tag in tags:
        match = re.search(
            rf"<{re.escape(tag)}\b[^>]*>([^<]*)</{re.escape(tag)}>", body, re.DOTALL
        )

        if match and match.group(1).strip():
            return unescape_xml(match.group(1).strip())

    return None


def _regex_res(body: str) -> str | None:
    uris = [
        unescape_xml(uri.strip())
        for uri in re.findall(r"<res\b[^>]*>([^<]+)</res>", body)
        if uri.strip()
    ]

    if not uris:
        return None

    return next((uri for uri in uris if uri.startswith("x-")), uris[0])


def _regex_wrap(fragment: str) -> str:
    declarations = " ".join(
        f'xmlns:{prefix}="{uri}"'
        for prefix, uri in DIDL_NAMESPACES.items()
        if prefix != "didl"
    )

    return f'<DIDL-Lite xmlns="{DIDL_NS}" {declarations}>{fragment}</DIDL-Lite>'


def items_from_didl_regex(didl_xml: str, base_url=None) -> list[BrowseResultItem]:
    items = []

    for match in _OBJECT_MATCH.finditer(didl_xml):
        attrs, body = match.group(2), match.group(3)
        id_match = re.search(_ATTR_MATCH.format(name="id"), attrs)
        object_id = unescape_xml(id_match.group(1)) if id_match else ""

        items.append(
            BrowseResultItem(
                id=object_id,
                browse_id=normalize(object_id),
                title=_regex_field(body, TITLE_TAGS) or "Unknown",
                class_hint=_regex_field(body, CLASS_TAGS) or "",
                metadata=_regex_wrap(match.group(0)),
                date=_regex_field(body, DATE_TAGS),
                uri=_regex_res(body),
                album_art_uri=absolute_art_uri(
                    _regex_field(body, ALBUM_ART_TAGS), base_url
                ),
            )
        )

    return items


# -----------------------------------------------------------------------------


def items_from_didl(didl_xml: str, base_url: str | None = None) -> list[BrowseResultItem]:
    """Convert a DIDL-Lite document into BrowseResultItems.

    Both container and item children are returned, in document order.
    """
    if not didl_xml or not didl_xml.strip():
        return []

    root = parse_didl(didl_xml)

    if root is None:
        items = items_from_didl_regex(didl_xml, base_url)
        logger.info(f"Recovered {len(items)} item(s) from malformed DIDL-Lite")

        return items

    return [
        item_from_element(element, root, base_url)
        for element in object_elements(root)
    ]


def didl_class(metadata: str | None) -> str | None:
    """The upnp:class of the first container/item in a DIDL-Lite fragment."""
    if not metadata:
        return None

    items = items_from_didl(metadata)

    if not items and "&lt;" in metadata:
        items = items_from_didl(unescape_xml(metadata))

    return (items[0].class_hint or None) if items else None
