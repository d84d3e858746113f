"""
Decoded price catalog.

The raw ``/pricing`` document is decoded once into a small tagged schema:
location-priced kinds (server and load balancer types) keep their ordered
per-location prices, every other kind is a single flat rate. Several shapes
the provider has used over time are accepted for the flat-rate kinds.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple
import logging

from ..core.enums import PriceTier
from ..core.exceptions import CatalogError


logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {'EUR': '€', 'USD': '$'}

IP_FAMILIES = ('ipv4', 'ipv6')

VOLUME_PATHS = (
    ('volume', 'price_per_gb_month'),
    ('volume', 'per_gb_month'),
    ('volumes', 'price_per_gb_month'),
)

SNAPSHOT_PATHS = (
    ('snapshot', 'price_per_gb_month'),
    ('snapshot', 'per_gb_month'),
    ('snapshots', 'price_per_gb_month'),
    ('image', 'price_per_gb_month'),
)

FLOATING_IP_PATHS = (
    ('floating_ip', 'price_monthly'),
)


def _primary_ip_paths(family: str) -> Tuple[Tuple[str, ...], ...]:
    return (
        ('primary_ip', family, 'price_monthly'),
        ('primary_ip', 'price_monthly', family),
        ('primary_ips', family, 'price_monthly'),
        ('primary_ips', 'price_monthly', family),
    )


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a catalog price (string or number) to Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


@dataclass(frozen=True)
class TierPrice:
    """A price split by tier."""
    net: Optional[Decimal] = None
    gross: Optional[Decimal] = None

    def for_tier(self, tier: PriceTier) -> Optional[Decimal]:
        return self.gross if tier is PriceTier.GROSS else self.net

    @classmethod
    def decode(cls, raw: Any) -> Optional["TierPrice"]:
        if not isinstance(raw, Mapping):
            return None
        price = cls(net=to_decimal(raw.get('net')), gross=to_decimal(raw.get('gross')))
        if price.net is None and price.gross is None:
            return None
        return price


@dataclass(frozen=True)
class LocationPrice:
    """Monthly price of a type in one location."""
    location: Optional[str]
    monthly: TierPrice


@dataclass(frozen=True)
class LocationPricedRate:
    """A server or load balancer type, priced per location in listed order."""
    name: str
    prices: Tuple[LocationPrice, ...] = ()

    def exact(self, location: Optional[str]) -> Optional[LocationPrice]:
        if location is None:
            return None
        for price in self.prices:
            if price.location == location:
                return price
        return None

    def first(self) -> Optional[LocationPrice]:
        return self.prices[0] if self.prices else None


@dataclass(frozen=True)
class FlatRate:
    """A location-independent recurring rate; ``price`` is None when absent."""
    price: Optional[TierPrice] = None

    def for_tier(self, tier: PriceTier) -> Optional[Decimal]:
        if self.price is None:
            return None
        return self.price.for_tier(tier)


@dataclass(frozen=True)
class PricingCatalog:
    """Immutable price catalog for one run."""
    currency: str = 'EUR'
    vat_rate: Optional[Decimal] = None
    server_types: Mapping[str, LocationPricedRate] = field(default_factory=lambda: MappingProxyType({}))
    load_balancer_types: Mapping[str, LocationPricedRate] = field(default_factory=lambda: MappingProxyType({}))
    volume: FlatRate = FlatRate()
    snapshot: FlatRate = FlatRate()
    floating_ip: FlatRate = FlatRate()
    primary_ips: Mapping[str, FlatRate] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def currency_symbol(self) -> str:
        return CURRENCY_SYMBOLS.get(self.currency, self.currency)


def _dig(document: Mapping[str, Any], path: Sequence[str]) -> Any:
    node: Any = document
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _first_flat_rate(pricing: Mapping[str, Any], paths: Iterable[Sequence[str]]) -> FlatRate:
    for path in paths:
        price = TierPrice.decode(_dig(pricing, path))
        if price is not None:
            return FlatRate(price)
    return FlatRate()


def _decode_location_prices(raw_prices: Any) -> Tuple[LocationPrice, ...]:
    if not isinstance(raw_prices, list):
        return ()
    prices = []
    for entry in raw_prices:
        if not isinstance(entry, Mapping):
            continue
        monthly = TierPrice.decode(entry.get('price_monthly'))
        if monthly is None:
            continue
        prices.append(LocationPrice(location=entry.get('location'), monthly=monthly))
    return tuple(prices)


def _decode_location_priced(raw_types: Any) -> Mapping[str, LocationPricedRate]:
    rates: Dict[str, LocationPricedRate] = {}
    if not isinstance(raw_types, list):
        return MappingProxyType(rates)
    for entry in raw_types:
        if not isinstance(entry, Mapping) or not entry.get('name'):
            continue
        name = str(entry['name'])
        # First listing of a name wins
        rates.setdefault(name, LocationPricedRate(name, _decode_location_prices(entry.get('prices'))))
    return MappingProxyType(rates)


def _typed_list_rates(raw: Any) -> Dict[str, FlatRate]:
    """Decode ``[{type, prices: [...]}]`` into flat rates keyed by type.

    The first listed price of each type is used as its flat rate.
    """
    rates: Dict[str, FlatRate] = {}
    if not isinstance(raw, list):
        return rates
    for entry in raw:
        if not isinstance(entry, Mapping) or not entry.get('type'):
            continue
        prices = _decode_location_prices(entry.get('prices'))
        if prices:
            rates.setdefault(str(entry['type']), FlatRate(prices[0].monthly))
    return rates


def _decode_primary_ips(pricing: Mapping[str, Any]) -> Mapping[str, FlatRate]:
    rates = _typed_list_rates(pricing.get('primary_ips'))
    for family in IP_FAMILIES:
        if family not in rates:
            rates[family] = _first_flat_rate(pricing, _primary_ip_paths(family))
    return MappingProxyType(rates)


def _decode_floating_ip(pricing: Mapping[str, Any]) -> FlatRate:
    rate = _first_flat_rate(pricing, FLOATING_IP_PATHS)
    if rate.price is not None:
        return rate
    typed = _typed_list_rates(pricing.get('floating_ips'))
    return typed.get('ipv4') or next(iter(typed.values()), FlatRate())


def load_catalog(document: Mapping[str, Any]) -> PricingCatalog:
    """Decode a raw ``/pricing`` response into a PricingCatalog.

    Args:
        document: Response body, with or without the top-level ``pricing`` key

    Returns:
        Decoded, immutable catalog

    Raises:
        CatalogError: If the document holds no pricing object at all
    """
    if not isinstance(document, Mapping):
        raise CatalogError("Price catalog is not a JSON object")

    pricing = document.get('pricing', document)
    if not isinstance(pricing, Mapping) or not pricing:
        raise CatalogError("Price catalog has no 'pricing' object")

    catalog = PricingCatalog(
        currency=str(pricing.get('currency') or 'EUR'),
        vat_rate=to_decimal(pricing.get('vat_rate')),
        server_types=_decode_location_priced(pricing.get('server_types')),
        load_balancer_types=_decode_location_priced(pricing.get('load_balancer_types')),
        volume=_first_flat_rate(pricing, VOLUME_PATHS),
        snapshot=_first_flat_rate(pricing, SNAPSHOT_PATHS),
        floating_ip=_decode_floating_ip(pricing),
        primary_ips=_decode_primary_ips(pricing),
    )

    logger.debug(
        f"Loaded catalog: {len(catalog.server_types)} server types, "
        f"{len(catalog.load_balancer_types)} load balancer types, currency {catalog.currency}"
    )
    return catalog
