"""Tests for the HTTP client and the paginated listing fetcher."""

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from hcloud_fleet.api.client import HCloudClient, extract_error_message
from hcloud_fleet.api.pagination import LISTINGS, PaginatedFetcher
from hcloud_fleet.core.exceptions import ConfigurationError, FetchError

from conftest import FakeHCloudAPI


# Pages of small items; an empty page can only be the last one
page_lists = st.lists(
    st.lists(st.integers(min_value=1, max_value=10_000).map(lambda i: {'id': i}), min_size=1, max_size=5),
    min_size=0,
    max_size=6,
)


class TestHCloudClient:
    """Transport behavior of the authenticated client."""

    def test_blank_token_rejected(self):
        with pytest.raises(ConfigurationError):
            HCloudClient("   ")

    def test_bearer_token_sent(self, fake_api):
        fake_api.add('GET', 'pricing', (200, {'pricing': {'currency': 'EUR'}}))

        with fake_api.client() as client:
            client.get_pricing()

        request = fake_api.requests[0]
        assert request.headers['Authorization'] == 'Bearer test-token'
        assert request.url.path == '/v1/pricing'

    def test_non_success_status_raises_with_provider_message(self, fake_api):
        fake_api.add('GET', 'servers', (401, {'error': {'code': 'unauthorized', 'message': 'unable to authenticate'}}))

        with fake_api.client() as client:
            with pytest.raises(FetchError) as exc_info:
                client.get_json('servers')

        error = exc_info.value
        assert error.status_code == 401
        assert error.path == 'servers'
        assert 'unable to authenticate' in str(error)

    def test_malformed_json_raises(self, fake_api):
        fake_api.add('GET', 'servers', (200, 'not json'))

        with fake_api.client() as client:
            with pytest.raises(FetchError, match="Malformed JSON"):
                client.get_json('servers')

    def test_non_object_body_raises(self, fake_api):
        fake_api.add('GET', 'servers', (200, [1, 2, 3]))

        with fake_api.client() as client:
            with pytest.raises(FetchError, match="expected an object"):
                client.get_json('servers')

    def test_transport_error_raises_fetch_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = HCloudClient('test-token', base_url='https://api.test/v1', transport=httpx.MockTransport(refuse))
        with pytest.raises(FetchError, match="connection refused"):
            client.get_json('servers')
        client.close()

    @pytest.mark.parametrize("payload,expected", [
        ({'error': {'code': 'forbidden', 'message': 'insufficient scope'}}, 'insufficient scope'),
        ({'message': 'top-level'}, 'top-level'),
        ({'error': {'code': 'x'}}, None),
        ('plain text', None),
        (None, None),
    ])
    def test_extract_error_message(self, payload, expected):
        assert extract_error_message(payload) == expected


class TestPaginatedFetcher:
    """Cursor pagination over listing endpoints."""

    @settings(max_examples=40, deadline=None)
    @given(pages=page_lists)
    def test_items_concatenated_in_page_order(self, pages):
        """Every item of every page comes back exactly once, in order."""
        api = FakeHCloudAPI()
        api.add_pages('servers', 'servers', pages)

        with api.client() as client:
            items = PaginatedFetcher(client).fetch_all('servers', 'servers')

        assert items == [item for page in pages for item in page]
        assert len(api.requests) == max(1, len(pages))

    def test_empty_first_page(self, fake_api):
        fake_api.add('GET', 'volumes', (200, {'volumes': [], 'meta': {'pagination': {'page': 1, 'next_page': None}}}))

        with fake_api.client() as client:
            assert PaginatedFetcher(client).fetch_all('volumes', 'volumes') == []

    def test_missing_meta_means_single_page(self, fake_api):
        fake_api.add('GET', 'volumes', (200, {'volumes': [{'id': 1}]}))

        with fake_api.client() as client:
            assert PaginatedFetcher(client).fetch_all('volumes', 'volumes') == [{'id': 1}]

    def test_page_and_per_page_params_sent(self, fake_api):
        fake_api.add_pages('images', 'images', [[{'id': 1}], [{'id': 2}]])

        with fake_api.client() as client:
            PaginatedFetcher(client, per_page=25).fetch_listing(LISTINGS['snapshots'])

        params = [dict(request.url.params) for request in fake_api.requests]
        assert params == [
            {'type': 'snapshot', 'page': '1', 'per_page': '25'},
            {'type': 'snapshot', 'page': '2', 'per_page': '25'},
        ]

    def test_failure_mid_listing_raises(self, fake_api):
        fake_api.add(
            'GET', 'servers',
            (200, {'servers': [{'id': 1}], 'meta': {'pagination': {'page': 1, 'next_page': 2}}}),
            (500, {'error': {'code': 'server_error', 'message': 'boom'}}),
        )

        with fake_api.client() as client:
            with pytest.raises(FetchError) as exc_info:
                PaginatedFetcher(client).fetch_all('servers', 'servers')
        assert exc_info.value.status_code == 500

    def test_missing_key_raises(self, fake_api):
        fake_api.add('GET', 'servers', (200, {'meta': {}}))

        with fake_api.client() as client:
            with pytest.raises(FetchError, match="missing 'servers' list"):
                PaginatedFetcher(client).fetch_all('servers', 'servers')

    def test_cursor_that_does_not_advance_raises(self, fake_api):
        fake_api.add('GET', 'servers', (200, {'servers': [{'id': 1}], 'meta': {'pagination': {'page': 1, 'next_page': 1}}}))

        with fake_api.client() as client:
            with pytest.raises(FetchError, match="did not advance"):
                PaginatedFetcher(client).fetch_all('servers', 'servers')

    def test_optional_listing_degrades_to_empty(self, fake_api):
        fake_api.add('GET', 'floating_ips', (403, {'error': {'code': 'forbidden', 'message': 'legacy feature'}}))

        with fake_api.client() as client:
            assert PaginatedFetcher(client).fetch_listing(LISTINGS['floating_ips']) == []

    def test_required_listing_does_not_degrade(self, fake_api):
        fake_api.add('GET', 'primary_ips', (403, {'error': {'code': 'forbidden', 'message': 'nope'}}))

        with fake_api.client() as client:
            with pytest.raises(FetchError):
                PaginatedFetcher(client).fetch_listing(LISTINGS['primary_ips'])

    @pytest.mark.parametrize("per_page", [0, -5])
    def test_non_positive_page_size_rejected(self, fake_api, per_page):
        with pytest.raises(ValueError):
            PaginatedFetcher(fake_api.client(), per_page=per_page)
