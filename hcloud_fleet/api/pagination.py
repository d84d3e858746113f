"""
Paginated resource fetcher for cursor-paginated listing endpoints.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from .client import HCloudClient
from ..core.exceptions import FetchError


logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 50


@dataclass(frozen=True)
class Listing:
    """A listing endpoint and the key its items live under."""
    path: str
    key: str
    params: Dict[str, Any] = field(default_factory=dict)
    optional: bool = False


# Listing endpoints by resource kind
LISTINGS = {
    'servers': Listing('servers', 'servers'),
    'volumes': Listing('volumes', 'volumes'),
    'load_balancers': Listing('load_balancers', 'load_balancers'),
    'primary_ips': Listing('primary_ips', 'primary_ips'),
    # Legacy; accounts without the feature fail this listing
    'floating_ips': Listing('floating_ips', 'floating_ips', optional=True),
    'snapshots': Listing('images', 'images', params={'type': 'snapshot'}),
}


class PaginatedFetcher:
    """Collects every item of a paginated listing, in order."""

    def __init__(self, client: HCloudClient, per_page: int = DEFAULT_PER_PAGE):
        """Initialize the fetcher.

        Args:
            client: Authenticated API client
            per_page: Page size requested from the API
        """
        if per_page < 1:
            raise ValueError(f"per_page must be positive, got {per_page}")
        self.client = client
        self.per_page = per_page

    def fetch_all(
        self,
        path: str,
        key: str,
        params: Optional[Dict[str, Any]] = None,
        optional: bool = False,
    ) -> List[Dict[str, Any]]:
        """Fetch all pages of a listing endpoint.

        Args:
            path: Listing path (e.g. 'servers')
            key: Top-level key holding the items (e.g. 'servers')
            params: Extra query parameters (e.g. filters)
            optional: Degrade to an empty list instead of raising on failure

        Returns:
            Items of every page concatenated in page order

        Raises:
            FetchError: If any page request fails and the listing is not optional
        """
        try:
            return self._fetch_pages(path, key, params or {})
        except FetchError as e:
            if not optional:
                raise
            logger.warning(f"Optional listing {path} unavailable, treating as empty: {e}")
            return []

    def fetch_listing(self, listing: Listing) -> List[Dict[str, Any]]:
        """Fetch all items of a predefined listing."""
        return self.fetch_all(listing.path, listing.key, listing.params, optional=listing.optional)

    def _fetch_pages(self, path: str, key: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1

        while True:
            logger.debug(f"Fetching {path} page {page}")
            payload = self.client.get_json(path, params={**params, 'page': page, 'per_page': self.per_page})

            page_items = payload.get(key)
            if not isinstance(page_items, list):
                raise FetchError(f"Malformed payload from {path}: missing '{key}' list", path=path)

            if not page_items:
                break
            items.extend(page_items)

            next_page = self._next_page(payload)
            if next_page is None:
                break
            if next_page <= page:
                raise FetchError(
                    f"Pagination of {path} did not advance (page {page} -> {next_page})",
                    path=path,
                )
            page = next_page

        logger.info(f"Fetched {len(items)} {key} from {path}")
        return items

    @staticmethod
    def _next_page(payload: Dict[str, Any]) -> Optional[int]:
        meta = payload.get('meta') or {}
        pagination = meta.get('pagination') or {}
        next_page = pagination.get('next_page')
        if next_page is None:
            return None
        try:
            return int(next_page)
        except (TypeError, ValueError):
            return None
