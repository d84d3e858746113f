"""Resource models, cost aggregation and snapshot orchestration."""

from .models import (
    Action, ActionStatus, CostBreakdown, FloatingIP, Inventory, KindCost, LineItem, LoadBalancer,
    OutcomeStatus, PrimaryIP, Resource, Server, Snapshot, SnapshotOutcome, Volume,
)
from .inventory import InventoryCollector
from .costs import BACKUP_SURCHARGE_RATE, CostAggregator, aggregate
from .orchestrator import SnapshotOptions, SnapshotOrchestrator
from .operations import FleetOperations

__all__ = [
    'Action',
    'ActionStatus',
    'CostBreakdown',
    'FloatingIP',
    'Inventory',
    'KindCost',
    'LineItem',
    'LoadBalancer',
    'OutcomeStatus',
    'PrimaryIP',
    'Resource',
    'Server',
    'Snapshot',
    'SnapshotOutcome',
    'Volume',
    'InventoryCollector',
    'BACKUP_SURCHARGE_RATE',
    'CostAggregator',
    'aggregate',
    'SnapshotOptions',
    'SnapshotOrchestrator',
    'FleetOperations',
]
