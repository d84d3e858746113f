"""
Cost aggregation engine.

Combines an inventory with a decoded price catalog into a CostBreakdown.
All arithmetic stays in Decimal; nothing is rounded before display.
"""
from collections import Counter
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, List, Optional, Tuple

from .models import (
    CostBreakdown, FloatingIP, Inventory, KindCost, LineItem, LoadBalancer, PrimaryIP, Server,
    Snapshot, Volume, ZERO,
)
from ..core.enums import PriceTier, ResourceKind
from ..pricing.catalog import PricingCatalog
from ..pricing.resolver import PriceQuery, ResolvedPrice, resolve


BACKUP_SURCHARGE_RATE = Decimal('0.20')
ONE = Decimal('1')


class CostAggregator:
    """Prices every resource of an inventory against one catalog and tier."""

    def __init__(self, catalog: PricingCatalog, tier: PriceTier = PriceTier.NET):
        self.catalog = catalog
        self.tier = PriceTier.parse(tier)

    def aggregate(self, inventory: Inventory) -> CostBreakdown:
        """Build the cost breakdown of an inventory.

        Args:
            inventory: Resources grouped by kind

        Returns:
            Per-kind line items and totals
        """
        kinds = (
            self.price_servers(inventory.servers),
            self.price_volumes(inventory.volumes),
            self.price_load_balancers(inventory.load_balancers),
            self.price_primary_ips(inventory.primary_ips),
            self.price_floating_ips(inventory.floating_ips),
            self.price_snapshots(inventory.snapshots),
        )
        families = Counter(ip.family for ip in inventory.primary_ips)

        return CostBreakdown(
            tier=self.tier,
            currency=self.catalog.currency,
            currency_symbol=self.catalog.currency_symbol,
            kinds=kinds,
            ip_family_counts=MappingProxyType(dict(families)),
        )

    def price_servers(self, servers: Iterable[Server]) -> KindCost:
        items = []
        for server in servers:
            price = self._resolve(ResourceKind.SERVER, server.server_type, server.location)
            surcharge = price.amount * BACKUP_SURCHARGE_RATE if server.backups_enabled else ZERO
            items.append(LineItem(
                resource_id=server.resource_id,
                name=server.display_name,
                kind=ResourceKind.SERVER,
                unit_price=price.amount,
                quantity=ONE,
                amount=price.amount,
                source=price.source,
                surcharge=surcharge,
                detail=f"{server.server_type} @ {server.location or 'n/a'}",
            ))
        return KindCost(ResourceKind.SERVER, tuple(items))

    def price_load_balancers(self, load_balancers: Iterable[LoadBalancer]) -> KindCost:
        items = []
        for lb in load_balancers:
            price = self._resolve(ResourceKind.LOAD_BALANCER, lb.load_balancer_type, lb.location)
            items.append(LineItem(
                resource_id=lb.resource_id,
                name=lb.display_name,
                kind=ResourceKind.LOAD_BALANCER,
                unit_price=price.amount,
                quantity=ONE,
                amount=price.amount,
                source=price.source,
                detail=f"{lb.load_balancer_type} @ {lb.location or 'n/a'}",
            ))
        return KindCost(ResourceKind.LOAD_BALANCER, tuple(items))

    def price_volumes(self, volumes: Iterable[Volume]) -> KindCost:
        price = self._resolve(ResourceKind.VOLUME)
        items = self._per_gb_items(ResourceKind.VOLUME, price, ((v, v.size_gb) for v in volumes))
        return KindCost(ResourceKind.VOLUME, items, unit_rate=None if price.is_missing else price.amount)

    def price_snapshots(self, snapshots: Iterable[Snapshot]) -> KindCost:
        price = self._resolve(ResourceKind.SNAPSHOT)
        items = self._per_gb_items(ResourceKind.SNAPSHOT, price, ((s, s.size_gb) for s in snapshots))
        return KindCost(ResourceKind.SNAPSHOT, items, unit_rate=None if price.is_missing else price.amount)

    def price_primary_ips(self, primary_ips: Iterable[PrimaryIP]) -> KindCost:
        items = []
        for ip in primary_ips:
            price = self._resolve(ResourceKind.PRIMARY_IP, ip.family)
            items.append(self._unit_item(ip, ResourceKind.PRIMARY_IP, price, f"{ip.ip or 'n/a'} ({ip.family})"))
        return KindCost(ResourceKind.PRIMARY_IP, tuple(items))

    def price_floating_ips(self, floating_ips: Iterable[FloatingIP]) -> KindCost:
        price = self._resolve(ResourceKind.FLOATING_IP)
        items = tuple(
            self._unit_item(ip, ResourceKind.FLOATING_IP, price, ip.ip or 'n/a')
            for ip in floating_ips
        )
        return KindCost(ResourceKind.FLOATING_IP, items)

    def _resolve(self, kind: ResourceKind, variant: Optional[str] = None, location: Optional[str] = None) -> ResolvedPrice:
        return resolve(self.catalog, PriceQuery(kind=kind, tier=self.tier, variant=variant, location=location))

    @staticmethod
    def _unit_item(resource, kind: ResourceKind, price: ResolvedPrice, detail: str) -> LineItem:
        return LineItem(
            resource_id=resource.resource_id,
            name=resource.display_name,
            kind=kind,
            unit_price=price.amount,
            quantity=ONE,
            amount=price.amount,
            source=price.source,
            detail=detail,
        )

    @staticmethod
    def _per_gb_items(kind: ResourceKind, price: ResolvedPrice, sized: Iterable[Tuple[object, Decimal]]) -> Tuple[LineItem, ...]:
        items: List[LineItem] = []
        for resource, size_gb in sized:
            items.append(LineItem(
                resource_id=resource.resource_id,
                name=resource.display_name,
                kind=kind,
                unit_price=price.amount,
                quantity=size_gb,
                amount=size_gb * price.amount,
                source=price.source,
                detail=f"{size_gb} GB",
            ))
        return tuple(items)


def aggregate(inventory: Inventory, catalog: PricingCatalog, tier: PriceTier = PriceTier.NET) -> CostBreakdown:
    """Aggregate an inventory's monthly cost against a catalog."""
    return CostAggregator(catalog, tier).aggregate(inventory)
