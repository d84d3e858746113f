"""
Enumerations shared by pricing and services.
"""
from enum import Enum

from .exceptions import ValidationError


class ResourceKind(str, Enum):
    """Billable resource kinds."""
    SERVER = 'server'
    VOLUME = 'volume'
    LOAD_BALANCER = 'load_balancer'
    PRIMARY_IP = 'primary_ip'
    FLOATING_IP = 'floating_ip'
    SNAPSHOT = 'snapshot'

    @property
    def label(self) -> str:
        return KIND_LABELS[self]


KIND_LABELS = {
    ResourceKind.SERVER: 'Servers',
    ResourceKind.VOLUME: 'Volumes',
    ResourceKind.LOAD_BALANCER: 'Load Balancers',
    ResourceKind.PRIMARY_IP: 'Primary IPs',
    ResourceKind.FLOATING_IP: 'Floating IPs (legacy)',
    ResourceKind.SNAPSHOT: 'Snapshots',
}


class PriceTier(str, Enum):
    """Price selection: net (excl. VAT) or gross (incl. VAT)."""
    NET = 'net'
    GROSS = 'gross'

    @classmethod
    def parse(cls, value: "str | PriceTier") -> "PriceTier":
        """Parse a tier name case-insensitively.

        Raises:
            ValidationError: If the value is not 'net' or 'gross'
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown price tier: {value!r} (expected 'net' or 'gross')")

    @property
    def label(self) -> str:
        return 'GROSS (incl. VAT)' if self is PriceTier.GROSS else 'NET (excl. VAT)'
