"""Price catalog decoding and resolution."""

from .catalog import FlatRate, LocationPrice, LocationPricedRate, PricingCatalog, TierPrice, load_catalog, to_decimal
from .resolver import PriceQuery, PriceSource, ResolvedPrice, resolve

__all__ = [
    'FlatRate',
    'LocationPrice',
    'LocationPricedRate',
    'PricingCatalog',
    'TierPrice',
    'load_catalog',
    'to_decimal',
    'PriceQuery',
    'PriceSource',
    'ResolvedPrice',
    'resolve',
]
