"""Nexus REST client tests against a mocked transport."""

import base64

import httpx
import pytest

from harness.config import Config
from lib.nexus_client import NexusClient, RemoteQueryError

BASE_URL = "http://nexus.example:8081/nexus"


def json_handler(routes, seen=None):
    """Transport handler answering JSON bodies keyed by request path."""
    def handler(request):
        if seen is not None:
            seen.append(request)
        if request.url.path not in routes:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, json=routes[request.url.path])
    return handler


def make_client(handler, **kwargs):
    return NexusClient(BASE_URL, username="deployment", password="deployment123",
                       transport=httpx.MockTransport(handler), **kwargs)


class TestListings:
    """Tests for profile and repository listings."""

    def test_list_profiles(self):
        seen = []
        client = make_client(json_handler({
            "/nexus/service/local/staging/profiles": {"data": [
                {"id": "12a3b4c5", "name": "org.example", "mode": "BOTH"},
                {"id": "99", "name": "other"},
            ]},
        }, seen))

        profiles = client.list_profiles()

        assert [(p.id, p.name, p.mode) for p in profiles] == [
            ("12a3b4c5", "org.example", "BOTH"),
            ("99", "other", ""),
        ]
        request = seen[0]
        assert request.headers["Accept"] == "application/json"
        expected = base64.b64encode(b"deployment:deployment123").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    def test_list_staging_repositories(self):
        client = make_client(json_handler({
            "/nexus/service/local/staging/profile_repositories/12a3b4c5": {"data": [{
                "repositoryId": "orgexample-1001",
                "profileId": "12a3b4c5",
                "profileName": "org.example",
                "type": "closed",
                "description": "Implicitly created",
                "repositoryURI": f"{BASE_URL}/content/repositories/orgexample-1001",
            }]},
        }))

        [repo] = client.list_staging_repositories("12a3b4c5")

        assert repo.repository_id == "orgexample-1001"
        assert repo.state == "closed"
        assert repo.url.endswith("/orgexample-1001")

    def test_empty_data(self):
        client = make_client(json_handler({"/nexus/service/local/staging/profiles": {"data": []}}))

        assert client.list_profiles() == []

    def test_unexpected_body(self):
        client = make_client(json_handler({"/nexus/service/local/staging/profiles": ["no", "wrapper"]}))

        with pytest.raises(RemoteQueryError, match="Unexpected response"):
            client.list_profiles()


class TestSearch:
    """Tests for the data_index search."""

    def test_parameters_and_hits(self):
        seen = []
        client = make_client(json_handler({
            "/nexus/service/local/data_index": {
                "totalCount": 1,
                "tooManyResults": False,
                "data": [{
                    "groupId": "org.example",
                    "artifactId": "demo",
                    "version": "1.0",
                    "extension": "jar",
                    "repoId": "orgexample-1001",
                }],
            },
        }, seen))

        response = client.search_by_gav("org.example", "demo", "1.0", repository_id="orgexample-1001")

        assert dict(seen[0].url.params) == {
            "g": "org.example", "a": "demo", "v": "1.0", "repositoryId": "orgexample-1001",
        }
        assert response.found
        assert response.total_count == 1
        assert response.hits[0].repository_id == "orgexample-1001"
        assert response.hits[0].extension == "jar"

    def test_null_total_count(self):
        """A null totalCount falls back to the number of hits."""
        client = make_client(json_handler({
            "/nexus/service/local/data_index": {
                "totalCount": None,
                "data": [{"groupId": "g", "artifactId": "a", "version": "v", "repoId": "r"}],
            },
        }))

        assert client.search_by_gav("g", "a", "v").total_count == 1

    def test_all_filters(self):
        seen = []
        client = make_client(json_handler({"/nexus/service/local/data_index": {"data": []}}, seen))

        response = client.search_by_gav("g", "a", "v", classifier="sources", packaging="jar")

        assert dict(seen[0].url.params) == {"g": "g", "a": "a", "v": "v", "c": "sources", "p": "jar"}
        assert not response.found
        assert len(response) == 0


class TestFailures:
    """Tests for failures surfacing as RemoteQueryError."""

    def test_server_error(self):
        client = make_client(lambda request: httpx.Response(500, text="Internal error"))

        with pytest.raises(RemoteQueryError, match="HTTP 500") as excinfo:
            client.list_profiles()

        assert excinfo.value.status_code == 500
        assert excinfo.value.url == f"{BASE_URL}/service/local/staging/profiles"

    def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = make_client(refuse)

        with pytest.raises(RemoteQueryError, match="Connection refused") as excinfo:
            client.search_by_gav("g", "a", "v")

        assert excinfo.value.status_code is None

    def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html/>"))

        with pytest.raises(RemoteQueryError, match="non-JSON"):
            client.list_staging_repositories("p1")


class TestStatus:

    def test_status_up(self):
        client = make_client(json_handler({"/nexus/service/local/status": {"data": {"state": "STARTED"}}}))
        assert client.status() is True

    def test_status_down(self):
        client = make_client(lambda request: httpx.Response(503))
        assert client.status() is False


def test_from_config():
    config = Config(nexus_url="http://localhost:9999/nexus/", nexus_username="admin",
                    nexus_password="secret", nexus_timeout=5.0)
    seen = []

    with NexusClient.from_config(config, transport=httpx.MockTransport(json_handler(
            {"/nexus/service/local/staging/profiles": {"data": []}}, seen))) as client:
        client.list_profiles()

    assert client.base_url == "http://localhost:9999/nexus/"
    assert str(seen[0].url) == "http://localhost:9999/nexus/service/local/staging/profiles"
