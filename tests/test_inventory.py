"""Tests for inventory collection across every listing endpoint."""

from decimal import Decimal

import pytest

from hcloud_fleet.api.pagination import PaginatedFetcher
from hcloud_fleet.core.exceptions import FetchError
from hcloud_fleet.services.inventory import (
    InventoryCollector, parse_floating_ip, parse_primary_ip, parse_server, parse_snapshot,
)

from conftest import server_item


def _register_empty_listings(fake_api, except_for=()):
    for path, key in (
        ('servers', 'servers'),
        ('volumes', 'volumes'),
        ('load_balancers', 'load_balancers'),
        ('primary_ips', 'primary_ips'),
        ('floating_ips', 'floating_ips'),
        ('images', 'images'),
    ):
        if path not in except_for:
            fake_api.add_pages(path, key, [])


class TestParsers:
    """Raw listing item to typed resource."""

    def test_server_backups_follow_backup_window(self):
        assert parse_server(server_item(1, backups=True)).backups_enabled is True
        assert parse_server(server_item(2, backups=False)).backups_enabled is False

    def test_server_fields(self):
        server = parse_server(server_item(7, name='web-1', server_type='cx11', location='nbg1'))

        assert server.resource_id == 7
        assert server.display_name == 'web-1'
        assert server.server_type == 'cx11'
        assert server.location == 'nbg1'

    def test_unnamed_server_gets_placeholder_name(self):
        assert parse_server(server_item(42, name=None)).display_name == 'server-42'

    def test_primary_ip_requires_type(self):
        with pytest.raises(KeyError):
            parse_primary_ip({'id': 1, 'ip': '1.2.3.4'})

    def test_floating_ip_defaults_to_ipv4(self):
        assert parse_floating_ip({'id': 1, 'ip': '1.2.3.4'}).family == 'ipv4'

    def test_snapshot_named_by_description(self):
        snapshot = parse_snapshot({'id': 9, 'description': 'nightly', 'name': None, 'disk_size': 12.5})

        assert snapshot.display_name == 'nightly'
        assert snapshot.size_gb == Decimal('12.5')

    def test_snapshot_without_size_counts_as_zero(self):
        assert parse_snapshot({'id': 9}).size_gb == Decimal('0')


class TestInventoryCollector:
    """Collecting all resource kinds of a project."""

    def test_collect_all_kinds(self, fake_api):
        fake_api.add_pages('servers', 'servers', [[server_item(1, 'a')], [server_item(2, 'b', backups=True)]])
        fake_api.add_pages('volumes', 'volumes', [[{'id': 10, 'name': 'data', 'size': 100}]])
        fake_api.add_pages('load_balancers', 'load_balancers', [[{
            'id': 20, 'name': 'lb', 'load_balancer_type': {'name': 'lb11'}, 'location': {'name': 'fsn1'},
        }]])
        fake_api.add_pages('primary_ips', 'primary_ips', [[
            {'id': 30, 'name': 'v4', 'ip': '1.2.3.4', 'type': 'ipv4'},
            {'id': 31, 'name': 'v6', 'ip': '2a01::/64', 'type': 'ipv6'},
        ]])
        fake_api.add_pages('floating_ips', 'floating_ips', [])
        fake_api.add_pages('images', 'images', [[{'id': 40, 'description': 'snap', 'disk_size': 20}]])

        with fake_api.client() as client:
            inventory = InventoryCollector(PaginatedFetcher(client)).collect()

        assert [s.resource_id for s in inventory.servers] == [1, 2]
        assert inventory.servers[1].backups_enabled
        assert inventory.volumes[0].size_gb == Decimal('100')
        assert inventory.load_balancers[0].load_balancer_type == 'lb11'
        assert [ip.family for ip in inventory.primary_ips] == ['ipv4', 'ipv6']
        assert inventory.floating_ips == ()
        assert inventory.snapshots[0].display_name == 'snap'

        snapshot_requests = fake_api.calls('GET', 'images')
        assert snapshot_requests[0].url.params['type'] == 'snapshot'

    def test_floating_ip_listing_failure_is_tolerated(self, fake_api):
        _register_empty_listings(fake_api, except_for=('floating_ips',))
        fake_api.add('GET', 'floating_ips', (403, {'error': {'code': 'forbidden', 'message': 'no legacy'}}))

        with fake_api.client() as client:
            inventory = InventoryCollector(PaginatedFetcher(client)).collect()

        assert inventory.floating_ips == ()

    def test_required_listing_failure_aborts(self, fake_api):
        _register_empty_listings(fake_api, except_for=('volumes',))
        fake_api.add('GET', 'volumes', (503, {'error': {'code': 'unavailable', 'message': 'maintenance'}}))

        with fake_api.client() as client:
            with pytest.raises(FetchError) as exc_info:
                InventoryCollector(PaginatedFetcher(client)).collect()
        assert exc_info.value.status_code == 503

    def test_malformed_item_raises_fetch_error(self, fake_api):
        fake_api.add_pages('servers', 'servers', [[{'name': 'no-id'}]])

        with fake_api.client() as client:
            with pytest.raises(FetchError, match="Malformed servers item"):
                InventoryCollector(PaginatedFetcher(client)).collect_servers()
