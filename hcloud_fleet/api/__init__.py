"""Hetzner Cloud API transport and pagination."""

from .client import HCloudClient
from .pagination import LISTINGS, Listing, PaginatedFetcher

__all__ = ['HCloudClient', 'LISTINGS', 'Listing', 'PaginatedFetcher']
