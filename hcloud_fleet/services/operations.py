"""
High-level cost and snapshot operations for a Hetzner Cloud project.
"""
from typing import List, Optional
import logging

from .costs import CostAggregator
from .inventory import InventoryCollector
from .models import CostBreakdown, Server, SnapshotOutcome
from .orchestrator import SnapshotOptions, SnapshotOrchestrator
from ..api.client import HCloudClient
from ..api.pagination import PaginatedFetcher
from ..core.config import Config
from ..core.enums import PriceTier
from ..pricing.catalog import load_catalog


logger = logging.getLogger(__name__)


class FleetOperations:
    """Wires the fetcher, resolver, aggregator and orchestrator together."""

    def __init__(self, client: HCloudClient, config: Config):
        """Initialize with an authenticated client.

        Args:
            client: Authenticated API client
            config: Loaded configuration
        """
        self.client = client
        self.config = config
        self.collector = InventoryCollector(PaginatedFetcher(client, per_page=config.per_page))

    def estimate_costs(self, tier: Optional[PriceTier] = None) -> CostBreakdown:
        """Estimate the monthly cost of every resource in the project.

        This method:
        1. Fetches the price catalog once
        2. Collects the inventory of all resource kinds
        3. Aggregates line items and totals

        Args:
            tier: Price tier; defaults to the configured tier

        Returns:
            Cost breakdown

        Raises:
            FetchError: If the catalog or a required listing cannot be fetched
        """
        tier = PriceTier.parse(tier or self.config.price_tier)

        logger.info("Fetching price catalog...")
        catalog = load_catalog(self.client.get_pricing())

        logger.info("Collecting inventory...")
        inventory = self.collector.collect()

        breakdown = CostAggregator(catalog, tier).aggregate(inventory)

        missing = breakdown.missing_prices()
        if missing:
            logger.warning(f"{len(missing)} resources had no catalog price and were priced at 0")

        logger.info(f"Estimated monthly total ({tier.value}): {breakdown.grand_total} {breakdown.currency}")
        return breakdown

    def list_servers(self) -> List[Server]:
        """Fetch every server of the project."""
        return self.collector.collect_servers()

    def snapshot_all_servers(
        self,
        options: SnapshotOptions,
        servers: Optional[List[Server]] = None,
    ) -> List[SnapshotOutcome]:
        """Trigger a snapshot of every server in the project.

        Args:
            options: Snapshot options
            servers: Already fetched servers; fetched when None

        Returns:
            One outcome per server, in listing order

        Raises:
            FetchError: If the server listing cannot be fetched
        """
        if servers is None:
            servers = self.list_servers()
        if not servers:
            logger.warning("No servers found to snapshot")
            return []

        orchestrator = SnapshotOrchestrator(self.client, options)
        outcomes = orchestrator.run(servers)

        summary = orchestrator.get_operation_summary(outcomes)
        if summary['failed'] > 0:
            logger.warning(f"{summary['failed']} snapshot submissions failed:")
            for failed_resource in summary['failed_resources']:
                logger.warning(
                    f"  - {failed_resource['name']} ({failed_resource['resource_id']}): "
                    f"{failed_resource['http_status']} {failed_resource['error_message']}"
                )

        return outcomes
