"""
Hetzner Cloud Fleet - cost forecasting and fleet-wide snapshots.

A CLI tool that estimates the monthly spend of a Hetzner Cloud project against
the live price catalog and triggers a snapshot of every server in one go.
"""

__version__ = "1.0.0"

from hcloud_fleet.core.exceptions import HCloudFleetError

__all__ = ["HCloudFleetError", "__version__"]
