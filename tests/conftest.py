"""
Pytest configuration and shared fixtures for hcloud-fleet tests.
"""

import json
import threading
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
from hypothesis import HealthCheck, settings

from hcloud_fleet.api.client import HCloudClient


# The environment fixture below is autouse and function-scoped
settings.register_profile("hcloud_fleet", suppress_health_check=[HealthCheck.function_scoped_fixture])
settings.load_profile("hcloud_fleet")

API_URL = "https://api.test/v1"

Reply = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeHCloudAPI:
    """In-process stand-in for the Hetzner Cloud API, served through httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []
        self._lock = threading.Lock()

    def add(self, method: str, path: str, *replies: Reply) -> None:
        """Register replies for a route; they are served in order, the last one repeats."""
        self.routes[(method.upper(), path)] = list(replies)

    def add_pages(self, path: str, key: str, pages: List[List[Dict[str, Any]]]) -> None:
        """Register a cursor-paginated listing."""

        def reply(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params.get('page', '1'))
            items = pages[page - 1] if page <= len(pages) else []
            next_page = page + 1 if page < len(pages) else None
            return httpx.Response(200, json={
                key: items,
                'meta': {'pagination': {'page': page, 'next_page': next_page}},
            })

        self.add('GET', path, reply)

    def calls(self, method: str, path: str = None) -> List[httpx.Request]:
        return [
            request for request in self.requests
            if request.method == method and (path is None or self._path(request) == path)
        ]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path[len('/v1/'):]

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            replies = self.routes.get((request.method, self._path(request)))
            if not replies:
                return httpx.Response(404, json={'error': {'code': 'not_found', 'message': 'not found'}})
            reply = replies.pop(0) if len(replies) > 1 else replies[0]

        if callable(reply):
            return reply(request)
        status, body = reply
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body or '')

    def client(self) -> HCloudClient:
        return HCloudClient('test-token', base_url=API_URL, transport=httpx.MockTransport(self.handler))


def json_body(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content.decode())


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep tests away from the developer's token and .env files."""
    for variable in ("HCLOUD_TOKEN", "HCLOUD_API_URL", "HCLOUD_PER_PAGE", "HCLOUD_TIMEOUT",
                     "HC_PRICE_ENV_FILE", "LOG_LEVEL"):
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_api():
    return FakeHCloudAPI()


@pytest.fixture
def pricing_document():
    """Price catalog in the provider's current shape."""
    return {
        "pricing": {
            "currency": "EUR",
            "vat_rate": "19.00",
            "server_types": [
                {
                    "id": 1,
                    "name": "cx11",
                    "prices": [
                        {
                            "location": "fsn1",
                            "price_hourly": {"net": "0.0048", "gross": "0.0057"},
                            "price_monthly": {"net": "3.0000000000", "gross": "3.5700000000"},
                        }
                    ],
                },
                {
                    "id": 22,
                    "name": "cx22",
                    "prices": [
                        {
                            "location": "fsn1",
                            "price_monthly": {"net": "3.7900000000", "gross": "4.5101000000"},
                        },
                        {
                            "location": "hel1",
                            "price_monthly": {"net": "4.0000000000", "gross": "4.7600000000"},
                        },
                    ],
                },
            ],
            "load_balancer_types": [
                {
                    "id": 1,
                    "name": "lb11",
                    "prices": [
                        {
                            "location": "fsn1",
                            "price_monthly": {"net": "5.3900000000", "gross": "6.4141000000"},
                        },
                        {
                            "location": "nbg1",
                            "price_monthly": {"net": "5.5000000000", "gross": "6.5450000000"},
                        },
                    ],
                }
            ],
            "volume": {"price_per_gb_month": {"net": "0.0200000000", "gross": "0.0238000000"}},
            "image": {"price_per_gb_month": {"net": "0.0119000000", "gross": "0.0141610000"}},
            "floating_ip": {"price_monthly": {"net": "3.0000000000", "gross": "3.5700000000"}},
            "primary_ips": [
                {
                    "type": "ipv4",
                    "prices": [
                        {
                            "location": "fsn1",
                            "price_hourly": {"net": "0.0010", "gross": "0.0012"},
                            "price_monthly": {"net": "0.6000000000", "gross": "0.7140000000"},
                        }
                    ],
                },
                {
                    "type": "ipv6",
                    "prices": [
                        {
                            "location": "fsn1",
                            "price_monthly": {"net": "0.0000000000", "gross": "0.0000000000"},
                        }
                    ],
                },
            ],
            "server_backup": {"percentage": "20.0000000000"},
        }
    }


def server_item(server_id: int, name: str = None, server_type: str = "cx22",
                location: str = "fsn1", backups: bool = False) -> Dict[str, Any]:
    """A server as returned by GET /servers."""
    return {
        "id": server_id,
        "name": name,
        "status": "running",
        "server_type": {"id": 22, "name": server_type},
        "datacenter": {"name": f"{location}-dc14", "location": {"name": location}},
        "backup_window": "22-02" if backups else None,
    }
