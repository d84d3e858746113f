"""
Data models for resources, cost breakdowns and snapshot outcomes.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Dict, List, Mapping, Optional, Tuple

from ..core.enums import PriceTier, ResourceKind
from ..pricing.resolver import PriceSource


ZERO = Decimal('0')


# --- Resources -------------------------------------------------------------

@dataclass(frozen=True)
class Resource:
    """Read-only view of a provider resource, fetched once per run."""
    kind: ClassVar[ResourceKind]
    name_prefix: ClassVar[str]

    resource_id: int
    name: Optional[str]

    @property
    def display_name(self) -> str:
        return self.name or f"{self.name_prefix}-{self.resource_id}"


@dataclass(frozen=True)
class Server(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.SERVER
    name_prefix: ClassVar[str] = 'server'

    server_type: str
    location: Optional[str]
    backups_enabled: bool


@dataclass(frozen=True)
class Volume(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.VOLUME
    name_prefix: ClassVar[str] = 'volume'

    size_gb: Decimal


@dataclass(frozen=True)
class LoadBalancer(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.LOAD_BALANCER
    name_prefix: ClassVar[str] = 'lb'

    load_balancer_type: str
    location: Optional[str]


@dataclass(frozen=True)
class PrimaryIP(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.PRIMARY_IP
    name_prefix: ClassVar[str] = 'primary_ip'

    ip: Optional[str]
    family: str              # 'ipv4' or 'ipv6'


@dataclass(frozen=True)
class FloatingIP(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.FLOATING_IP
    name_prefix: ClassVar[str] = 'floating_ip'

    ip: Optional[str]
    family: str


@dataclass(frozen=True)
class Snapshot(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.SNAPSHOT
    name_prefix: ClassVar[str] = 'snapshot'

    size_gb: Decimal


@dataclass(frozen=True)
class Inventory:
    """All resources of an account, grouped by kind."""
    servers: Tuple[Server, ...] = ()
    volumes: Tuple[Volume, ...] = ()
    load_balancers: Tuple[LoadBalancer, ...] = ()
    primary_ips: Tuple[PrimaryIP, ...] = ()
    floating_ips: Tuple[FloatingIP, ...] = ()
    snapshots: Tuple[Snapshot, ...] = ()

    def by_kind(self) -> Dict[ResourceKind, Tuple[Resource, ...]]:
        return {
            ResourceKind.SERVER: self.servers,
            ResourceKind.VOLUME: self.volumes,
            ResourceKind.LOAD_BALANCER: self.load_balancers,
            ResourceKind.PRIMARY_IP: self.primary_ips,
            ResourceKind.FLOATING_IP: self.floating_ips,
            ResourceKind.SNAPSHOT: self.snapshots,
        }


# --- Costs -----------------------------------------------------------------

@dataclass(frozen=True)
class LineItem:
    """Monthly cost of one resource instance."""
    resource_id: int
    name: str
    kind: ResourceKind
    unit_price: Decimal        # resolved catalog price (per month, or per GB-month)
    quantity: Decimal          # 1, or size in GB
    amount: Decimal            # unit_price * quantity
    source: PriceSource
    surcharge: Decimal = ZERO  # backup add-on, reported separately
    detail: str = ''           # e.g. "cx22 @ fsn1", "50 GB", "ipv4"


@dataclass(frozen=True)
class KindCost:
    """Line items and totals of one resource kind."""
    kind: ResourceKind
    items: Tuple[LineItem, ...] = ()
    unit_rate: Optional[Decimal] = None  # per-GB rate for size-priced kinds

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.items), ZERO)

    @property
    def surcharge_total(self) -> Decimal:
        return sum((item.surcharge for item in self.items), ZERO)

    @property
    def quantity_total(self) -> Decimal:
        return sum((item.quantity for item in self.items), ZERO)

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class CostBreakdown:
    """Projected monthly spend of an account."""
    tier: PriceTier
    currency: str
    currency_symbol: str
    kinds: Tuple[KindCost, ...]
    ip_family_counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def kind(self, kind: ResourceKind) -> KindCost:
        for kind_cost in self.kinds:
            if kind_cost.kind is kind:
                return kind_cost
        return KindCost(kind)

    @property
    def backups_total(self) -> Decimal:
        return sum((kind_cost.surcharge_total for kind_cost in self.kinds), ZERO)

    @property
    def grand_total(self) -> Decimal:
        return sum((kind_cost.total for kind_cost in self.kinds), ZERO) + self.backups_total

    def missing_prices(self) -> List[LineItem]:
        """Line items priced at zero because the catalog had no entry."""
        return [
            item
            for kind_cost in self.kinds
            for item in kind_cost.items
            if item.source is PriceSource.MISSING
        ]


# --- Snapshot actions ------------------------------------------------------

class ActionStatus(str, Enum):
    """Status of a provider-side action."""
    ACCEPTED = 'accepted'
    RUNNING = 'running'
    SUCCESS = 'success'
    ERROR = 'error'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, value: Optional[str]) -> "ActionStatus":
        """Map a provider status string; anything unrecognized is UNKNOWN."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (ActionStatus.SUCCESS, ActionStatus.ERROR)


@dataclass(frozen=True)
class Action:
    """A provider-side asynchronous operation."""
    action_id: int
    resource_id: int
    status: ActionStatus
    polls: int = 0
    timed_out: bool = False
    error_message: Optional[str] = None


class OutcomeStatus(str, Enum):
    """Result of submitting one snapshot request."""
    DRY_RUN = 'skipped-dry-run'
    SUBMITTED = 'submitted'
    FAILED = 'failed'                    # non-2xx response
    UNKNOWN_FAILURE = 'unknown-failure'  # transport or parse failure


@dataclass
class SnapshotOutcome:
    """Per-server record of a snapshot request."""
    server: Server
    status: OutcomeStatus
    description: str
    timestamp: datetime
    action: Optional[Action] = None
    image_id: Optional[int] = None
    http_status: Optional[int] = None
    error_message: Optional[str] = None
    hint: Optional[str] = None
    duration: Optional[float] = None    # seconds, including polling

    @property
    def submission_failed(self) -> bool:
        return self.status in (OutcomeStatus.FAILED, OutcomeStatus.UNKNOWN_FAILURE)

    @property
    def final_status(self) -> Optional[ActionStatus]:
        return self.action.status if self.action is not None else None
