"""
Pricing catalog resolver.

Resolution is a pure function of (catalog, query). Missing price data never
raises: an unmatched location falls back to the first listed price of the
type, and a missing flat rate resolves to zero with source ``missing``.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional
import logging

from .catalog import FlatRate, LocationPricedRate, PricingCatalog
from ..core.enums import PriceTier, ResourceKind


logger = logging.getLogger(__name__)

ZERO = Decimal('0')

LOCATION_PRICED_KINDS = frozenset({ResourceKind.SERVER, ResourceKind.LOAD_BALANCER})


class PriceSource(str, Enum):
    """Where a resolved price came from."""
    EXACT = 'exact'         # (type, location) entry
    FALLBACK = 'fallback'   # first listed price of the type
    FLAT = 'flat'           # location-independent rate
    MISSING = 'missing'     # nothing in the catalog; priced at zero


@dataclass(frozen=True)
class PriceQuery:
    """What to price.

    ``variant`` is the server or load balancer type name, or the IP address
    family for primary IPs. ``location`` only matters for location-priced kinds.
    """
    kind: ResourceKind
    tier: PriceTier = PriceTier.NET
    variant: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class ResolvedPrice:
    amount: Decimal
    source: PriceSource

    @property
    def is_missing(self) -> bool:
        return self.source is PriceSource.MISSING


MISSING = ResolvedPrice(ZERO, PriceSource.MISSING)


def resolve(catalog: PricingCatalog, query: PriceQuery) -> ResolvedPrice:
    """Resolve the recurring monthly unit price for a query.

    Args:
        catalog: Decoded price catalog
        query: Kind, tier, and optional variant/location

    Returns:
        The resolved price and its source
    """
    if query.kind in LOCATION_PRICED_KINDS:
        types = catalog.server_types if query.kind is ResourceKind.SERVER else catalog.load_balancer_types
        return _resolve_location_priced(types, query)

    if query.kind is ResourceKind.PRIMARY_IP:
        rate = catalog.primary_ips.get(query.variant or '')
    elif query.kind is ResourceKind.VOLUME:
        rate = catalog.volume
    elif query.kind is ResourceKind.SNAPSHOT:
        rate = catalog.snapshot
    elif query.kind is ResourceKind.FLOATING_IP:
        rate = catalog.floating_ip
    else:
        rate = None

    return _resolve_flat(rate, query)


def _resolve_location_priced(types: Mapping[str, LocationPricedRate], query: PriceQuery) -> ResolvedPrice:
    rate = types.get(query.variant or '')
    if rate is None:
        logger.warning(f"No {query.kind.value} type '{query.variant}' in price catalog, pricing at 0")
        return MISSING

    exact = rate.exact(query.location)
    if exact is not None:
        amount = exact.monthly.for_tier(query.tier)
        if amount is not None:
            return ResolvedPrice(amount, PriceSource.EXACT)

    for price in rate.prices:
        amount = price.monthly.for_tier(query.tier)
        if amount is not None:
            logger.debug(
                f"No {query.tier.value} price for {query.kind.value} type '{query.variant}' "
                f"in {query.location}, falling back to {price.location}"
            )
            return ResolvedPrice(amount, PriceSource.FALLBACK)

    logger.warning(f"{query.kind.value} type '{query.variant}' has no {query.tier.value} price, pricing at 0")
    return MISSING


def _resolve_flat(rate: Optional[FlatRate], query: PriceQuery) -> ResolvedPrice:
    amount = rate.for_tier(query.tier) if rate is not None else None
    if amount is None:
        logger.debug(f"No flat {query.tier.value} rate for {query.kind.value} {query.variant or ''}".rstrip())
        return MISSING
    return ResolvedPrice(amount, PriceSource.FLAT)
