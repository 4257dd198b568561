from lxml import etree

from zoneplay.constants import (
    ALBUM_ART_TAGS,
    CLASS_TAGS,
    DEFAULT_BROWSE_REQUESTED_COUNT,
    FAVORITES_OBJECT_ID,
    TITLE_TAGS,
)
from zoneplay.didl import (
    absolute_art_uri,
    didl_class,
    element_field,
    element_res,
    object_elements,
    parse_didl,
    standalone_didl,
)
from zoneplay.exceptions import ZoneplayNotFoundError
from zoneplay.logger import logger
from zoneplay.models import FavoriteRecord
from zoneplay.object_ids import (
    derive_canonical_id,
    extract_account_id,
    extract_didl_id,
    normalize,
)
from zoneplay.soap import SoapTransport, build_arguments, parse_action_response


def favorite_from_element(element, root, base_url: str | None) -> FavoriteRecord:
    """Create a FavoriteRecord from one <item> of the favorites (FV:2) list.

    The favorite's own DIDL describes the favorite; the DIDL describing the
    content it points at lives in its r:resMD element (entity-escaped text).
    """
    res_md = element_field(element, ["r:resMD"])
    metadata = res_md or standalone_didl(element, root)
    uri = element_res(element)

    # The favorite item's own class is object.itemobject.item.sonos-favorite,
    # which says nothing about what it points at.
    upnp_class = didl_class(res_md) or element_field(element, CLASS_TAGS) or ""

    favorite = FavoriteRecord(
        id=element.get("id", ""),
        title=element_field(element, TITLE_TAGS) or "Unknown Title",
        canonical_object_id="",
        metadata=metadata,
        is_container=upnp_class.startswith("object.container"),
        raw_object_id=extract_didl_id(res_md),
        uri=uri,
        account_id=extract_account_id(metadata, uri),
        album_art_uri=absolute_art_uri(element_field(element, ALBUM_ART_TAGS), base_url),
    )
    favorite.canonical_object_id = normalize(derive_canonical_id(favorite))

    return favorite


class FavoritesCache:
    """The household's favorites, as of the last refresh.

    The list is rebuilt wholesale on every refresh. Canonical ids are derived
    once per refresh from the favorite's own fields, so the same favorite gets
    the same canonical id every time.
    """

    def __init__(
        self,
        transport: SoapTransport,
        requested_count: int = DEFAULT_BROWSE_REQUESTED_COUNT,
    ):
        self._transport = transport
        self._requested_count = requested_count
        self._favorites: list[FavoriteRecord] = []

    @property
    def all(self) -> list[FavoriteRecord]:
        return self._favorites

    async def refresh(self, address: str) -> list[FavoriteRecord]:
        logger.info(f"Fetching favorites from {address}")

        raw = await self._transport.call(
            "content_directory",
            "Browse",
            build_arguments(
                ObjectID=FAVORITES_OBJECT_ID,
                BrowseFlag="BrowseDirectChildren",
                Filter="*",
                StartingIndex=0,
                RequestedCount=self._requested_count,
                SortCriteria="",
            ),
            address,
        )

        result = parse_action_response(raw, "content_directory", "Browse").get(
            "Result", ""
        )
        root = parse_didl(result)

        if root is None:
            logger.warning(f"Favorites list from {address} was empty or unparseable")
            self._favorites = []

            return self._favorites

        base_url = f"http://{address}:{self._transport.port}"

        self._favorites = [
            favorite_from_element(element, root, base_url)
            for element in object_elements(root)
            if etree.QName(element).localname == "item"
        ]

        logger.info(f"Found {len(self._favorites)} favorite(s)")

        return self._favorites

    def find(self, favorite_id: str) -> FavoriteRecord | None:
        """Find a favorite by its id, canonical id, or raw object id."""
        if not favorite_id:
            return None

        normalized = normalize(favorite_id)

        for favorite in self._favorites:
            if favorite_id == favorite.id:
                return favorite

        for favorite in self._favorites:
            if normalized in (
                favorite.canonical_object_id,
                normalize(favorite.raw_object_id),
            ):
                return favorite

        return None

    def get(self, favorite_id: str) -> FavoriteRecord:
        if favorite := self.find(favorite_id):
            return favorite

        raise ZoneplayNotFoundError(f"Could not find favorite '{favorite_id}'")
