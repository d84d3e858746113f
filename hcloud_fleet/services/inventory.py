"""
Inventory collection: turns raw listing items into typed resources.
"""
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, TypeVar
import logging

from .models import (
    FloatingIP, Inventory, LoadBalancer, PrimaryIP, Resource, Server, Snapshot, Volume,
)
from ..api.pagination import LISTINGS, PaginatedFetcher
from ..core.exceptions import FetchError
from ..pricing.catalog import to_decimal


logger = logging.getLogger(__name__)

R = TypeVar('R', bound=Resource)


def _nested(item: Dict[str, Any], *keys: str) -> Any:
    node: Any = item
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _size(value: Any) -> Decimal:
    return to_decimal(value) or Decimal('0')


def parse_server(item: Dict[str, Any]) -> Server:
    return Server(
        resource_id=item['id'],
        name=item.get('name'),
        server_type=_nested(item, 'server_type', 'name') or '',
        location=_nested(item, 'datacenter', 'location', 'name'),
        backups_enabled=item.get('backup_window') is not None,
    )


def parse_volume(item: Dict[str, Any]) -> Volume:
    return Volume(resource_id=item['id'], name=item.get('name'), size_gb=_size(item.get('size')))


def parse_load_balancer(item: Dict[str, Any]) -> LoadBalancer:
    return LoadBalancer(
        resource_id=item['id'],
        name=item.get('name'),
        load_balancer_type=_nested(item, 'load_balancer_type', 'name') or '',
        location=_nested(item, 'location', 'name'),
    )


def parse_primary_ip(item: Dict[str, Any]) -> PrimaryIP:
    return PrimaryIP(
        resource_id=item['id'],
        name=item.get('name'),
        ip=item.get('ip'),
        family=str(item['type']),
    )


def parse_floating_ip(item: Dict[str, Any]) -> FloatingIP:
    return FloatingIP(
        resource_id=item['id'],
        name=item.get('name'),
        ip=item.get('ip'),
        family=str(item.get('type') or 'ipv4'),
    )


def parse_snapshot(item: Dict[str, Any]) -> Snapshot:
    return Snapshot(
        resource_id=item['id'],
        name=item.get('description') or item.get('name'),
        size_gb=_size(item.get('disk_size')),
    )


class InventoryCollector:
    """Fetches and parses every billable resource kind of an account."""

    def __init__(self, fetcher: PaginatedFetcher):
        """Initialize the collector.

        Args:
            fetcher: Paginated fetcher bound to an authenticated client
        """
        self.fetcher = fetcher

    def collect(self) -> Inventory:
        """Collect all resource kinds.

        Returns:
            Inventory of the account

        Raises:
            FetchError: If a required listing fails or returns malformed items
        """
        inventory = Inventory(
            servers=tuple(self.collect_servers()),
            volumes=tuple(self._collect('volumes', parse_volume)),
            load_balancers=tuple(self._collect('load_balancers', parse_load_balancer)),
            primary_ips=tuple(self._collect('primary_ips', parse_primary_ip)),
            floating_ips=tuple(self._collect('floating_ips', parse_floating_ip)),
            snapshots=tuple(self._collect('snapshots', parse_snapshot)),
        )
        total = sum(len(resources) for resources in inventory.by_kind().values())
        logger.info(f"Inventory complete: {total} resources")
        return inventory

    def collect_servers(self) -> List[Server]:
        """Collect servers only."""
        return self._collect('servers', parse_server)

    def _collect(self, listing_name: str, parser: Callable[[Dict[str, Any]], R]) -> List[R]:
        listing = LISTINGS[listing_name]
        items = self.fetcher.fetch_listing(listing)

        resources = []
        for item in items:
            resources.append(self._parse(listing_name, item, parser))
        return resources

    @staticmethod
    def _parse(listing_name: str, item: Any, parser: Callable[[Dict[str, Any]], R]) -> R:
        if not isinstance(item, dict):
            raise FetchError(f"Malformed {listing_name} item: expected an object")
        try:
            return parser(item)
        except KeyError as e:
            item_id: Optional[Any] = item.get('id')
            raise FetchError(
                f"Malformed {listing_name} item {item_id}: missing field {e}",
                details=str(item),
            ) from e
