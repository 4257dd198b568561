from xml.parsers.expat import ExpatError

from zoneplay.constants import DEFAULT_BROWSE_REQUESTED_COUNT, SERVICES
from zoneplay.didl import items_from_didl
from zoneplay.exceptions import ProtocolFault, TransportError
from zoneplay.favorites import FavoritesCache
from zoneplay.logger import logger
from zoneplay.models import BrowseResultItem, FavoriteRecord
from zoneplay.object_ids import (
    alternate_ids,
    extract_account_id,
    extract_service_id,
    has_service_marker,
    normalize,
)
from zoneplay.soap import (
    SoapTransport,
    build_arguments,
    parse_action_response,
    parse_envelope_body,
)
from zoneplay.types import BrowseStrategy, ObjectId

# Namespace of the SMAPI-style getMetadataResponse some firmware returns from
# X_GetMetadata.
SMAPI_NS = "http://www.sonos.com/Services/1.1"

MUSIC_SERVICES_RESPONSES = ["X_GetMetadataResponse", "getMetadataResponse"]


def music_services_result(xml: str) -> str:
    """The DIDL-Lite Result of an X_GetMetadata response (or empty string)."""
    _, service_urn = SERVICES["music_services"]

    try:
        body = parse_envelope_body(xml, service_urn, SMAPI_NS)
    except ExpatError as e:
        raise TransportError(f"X_GetMetadata: malformed response: {e}") from e

    for response_name in MUSIC_SERVICES_RESPONSES:
        response = body.get(response_name)

        if isinstance(response, dict):
            result = response.get("Result") or response.get("getMetadataResult")

            if isinstance(result, str):
                return result

    return ""


class BrowseCascade:
    """Resolve a container id to its children.

    Strategies are tried one at a time, in a fixed order, each only when the
    previous one came back empty or failed:

        1. direct: ContentDirectory Browse with the normalized id.
        2. re_resolved: when (1) faulted with "invalid object id", one more
           direct browse with an alternate id for the same favorite.
        3. music_services: when the favorite's metadata names a music
           service, MusicServices X_GetMetadata.

    Running out of strategies is not an error: browse() returns [].
    """

    def __init__(
        self,
        transport: SoapTransport,
        favorites: FavoritesCache | None = None,
        requested_count: int = DEFAULT_BROWSE_REQUESTED_COUNT,
    ):
        self._transport = transport
        self._favorites = favorites
        self._requested_count = requested_count

    def _base_url(self, device_address: str) -> str:
        return f"http://{device_address}:{self._transport.port}"

    def _favorite_for(
        self, object_id: ObjectId, favorite: FavoriteRecord | None
    ) -> FavoriteRecord | None:
        # Prefer the cached record, which is what alternate ids are drawn from.
        if self._favorites is not None:
            if favorite is not None and (cached := self._favorites.find(favorite.id)):
                return cached

            if cached := self._favorites.find(object_id):
                return cached

        return favorite

    # -------------------------------------------------------------------------
    # Strategies

    async def browse_direct(
        self, object_id: ObjectId, device_address: str
    ) -> list[BrowseResultItem]:
        raw = await self._transport.call(
            "content_directory",
            "Browse",
            build_arguments(
                ObjectID=normalize(object_id),
                BrowseFlag="BrowseDirectChildren",
                Filter="*",
                StartingIndex=0,
                RequestedCount=self._requested_count,
                SortCriteria="",
            ),
            device_address,
        )

        result = parse_action_response(raw, "content_directory", "Browse").get(
            "Result", ""
        )

        return items_from_didl(result, self._base_url(device_address))

    async def browse_music_services(
        self, object_id: ObjectId, device_address: str, favorite: FavoriteRecord
    ) -> list[BrowseResultItem]:
        service_id = extract_service_id(favorite.metadata, favorite.uri)
        account_id = favorite.account_id or extract_account_id(
            favorite.metadata, favorite.uri
        )

        arguments = {
            "Id": service_id,
            "Index": 0,
            "Count": self._requested_count,
            "Recursive": "false",
        }

        if account_id:
            arguments["AccountId"] = account_id

        arguments["Uri"] = object_id
        arguments["RequestedCount"] = self._requested_count

        raw = await self._transport.call(
            "music_services",
            "X_GetMetadata",
            build_arguments(**arguments),
            device_address,
        )

        return items_from_didl(
            music_services_result(raw), self._base_url(device_address)
        )

    # -------------------------------------------------------------------------

    async def browse_with_strategy(
        self,
        object_id: ObjectId,
        device_address: str,
        favorite: FavoriteRecord | None = None,
    ) -> tuple[list[BrowseResultItem], BrowseStrategy | None]:
        """Run the cascade; return the items and the strategy which found them."""
        normalized = normalize(object_id)
        favorite = self._favorite_for(object_id, favorite)
        invalid_object_id = False

        # 1. Direct browse
        try:
            items = await self.browse_direct(normalized, device_address)

            if items:
                return items, "direct"

            logger.info(f"Browse of {normalized} returned no items")
        except ProtocolFault as e:
            logger.warning(f"Browse of {normalized} failed: {e}")
            invalid_object_id = e.is_invalid_object_id
        except TransportError as e:
            logger.warning(f"Browse of {normalized} failed: {e}")

        # 2. Re-resolve the id from the favorite, and retry the direct browse
        # exactly once.
        if invalid_object_id:
            alternates = alternate_ids(favorite, normalized) if favorite else []

            if alternates:
                alternate = alternates[0]
                logger.info(f"Retrying browse of {normalized} as {alternate}")

                try:
                    items = await self.browse_direct(alternate, device_address)

                    if items:
                        return items, "re_resolved"

                    logger.info(f"Browse of {alternate} returned no items")
                except (ProtocolFault, TransportError) as e:
                    logger.warning(f"Browse of {alternate} failed: {e}")
            else:
                logger.info(f"No alternate id available for {normalized}")

        # 3. MusicServices
        if favorite is not None and has_service_marker(favorite.metadata):
            logger.info(f"Trying music services browse of {object_id}")

            try:
                items = await self.browse_music_services(
                    object_id, device_address, favorite
                )

                if items:
                    return items, "music_services"

                logger.info(f"Music services browse of {object_id} returned no items")
            except (ProtocolFault, TransportError) as e:
                logger.warning(f"Music services browse of {object_id} failed: {e}")

        logger.warning(f"Could not find any items for {object_id}")

        return [], None

    async def browse(
        self,
        object_id: ObjectId,
        device_address: str,
        favorite: FavoriteRecord | None = None,
    ) -> list[BrowseResultItem]:
        items, _ = await self.browse_with_strategy(object_id, device_address, favorite)

        return items
