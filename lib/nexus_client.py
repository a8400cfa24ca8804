"""Nexus REST client implementing the staging client protocol.

Talks to the Nexus 2 REST API with httpx:

- ``GET service/local/staging/profiles``
- ``GET service/local/staging/profile_repositories/<profileId>``
- ``GET service/local/data_index?g=&a=&v=&c=&p=&repositoryId=``

Every failure (transport, non-2xx status, unexpected body) surfaces as
:class:`RemoteQueryError`; nothing is retried here.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .protocol import (
    ArtifactHit,
    Profile,
    SearchResponse,
    StagingClient,
    StagingRepository,
)

logger = logging.getLogger(__name__)

PROFILES_PATH = "service/local/staging/profiles"
PROFILE_REPOSITORIES_PATH = "service/local/staging/profile_repositories/{profile_id}"
DATA_INDEX_PATH = "service/local/data_index"
STATUS_PATH = "service/local/status"


class RemoteQueryError(Exception):
    """A call to the repository manager failed."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def parse_profile(data: Dict[str, Any]) -> Profile:
    return Profile(
        id=_text(data.get("id")),
        name=_text(data.get("name")),
        mode=_text(data.get("mode")),
    )


def parse_staging_repository(data: Dict[str, Any]) -> StagingRepository:
    return StagingRepository(
        repository_id=_text(data.get("repositoryId")),
        profile_id=_text(data.get("profileId")),
        profile_name=_text(data.get("profileName")),
        state=_text(data.get("type")),
        description=_text(data.get("description")),
        url=_text(data.get("repositoryURI")),
    )


def parse_search_response(body: Dict[str, Any]) -> SearchResponse:
    hits = [
        ArtifactHit(
            group_id=_text(item.get("groupId")),
            artifact_id=_text(item.get("artifactId")),
            version=_text(item.get("version")),
            classifier=_text(item.get("classifier")),
            extension=_text(item.get("extension") or item.get("packaging")),
            repository_id=_text(item.get("repoId")),
        )
        for item in body.get("data") or []
    ]
    return SearchResponse(
        total_count=int(body.get("totalCount") or len(hits)),
        hits=hits,
        too_many_results=bool(body.get("tooManyResults", False)),
    )


class NexusClient(StagingClient):
    """Staging and indexer client for a running Nexus."""

    def __init__(self, base_url: str, username: Optional[str] = None,
                 password: Optional[str] = None, timeout: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/") + "/"
        auth = httpx.BasicAuth(username, password) if username else None
        self._http = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.BaseTransport] = None) -> "NexusClient":
        """Create a client from a harness Config."""
        return cls(
            config.nexus_url,
            username=config.nexus_username,
            password=config.nexus_password,
            timeout=config.nexus_timeout,
            transport=transport,
        )

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = self.base_url + path
        logger.debug("GET %s %s", url, params or "")
        try:
            response = self._http.get(path, params=params)
        except httpx.HTTPError as e:
            raise RemoteQueryError(f"GET {url} failed: {e}", url=url) from e
        if response.status_code >= 400:
            raise RemoteQueryError(
                f"GET {url} returned HTTP {response.status_code}: {response.text[:200]}",
                url=url,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise RemoteQueryError(
                f"GET {url} returned a non-JSON body", url=url,
                status_code=response.status_code,
            ) from e

    def _get_data(self, path: str) -> List[Dict[str, Any]]:
        body = self._get(path)
        if not isinstance(body, dict) or not isinstance(body.get("data", []), list):
            raise RemoteQueryError(f"Unexpected response from {self.base_url + path}",
                                   url=self.base_url + path)
        return body.get("data") or []

    def list_profiles(self) -> List[Profile]:
        return [parse_profile(item) for item in self._get_data(PROFILES_PATH)]

    def list_staging_repositories(self, profile_id: str) -> List[StagingRepository]:
        path = PROFILE_REPOSITORIES_PATH.format(profile_id=profile_id)
        return [parse_staging_repository(item) for item in self._get_data(path)]

    def search_by_gav(self, group_id: str, artifact_id: str, version: str,
                      classifier: Optional[str] = None, packaging: Optional[str] = None,
                      repository_id: Optional[str] = None) -> SearchResponse:
        params = {"g": group_id, "a": artifact_id, "v": version}
        if classifier:
            params["c"] = classifier
        if packaging:
            params["p"] = packaging
        if repository_id:
            params["repositoryId"] = repository_id
        body = self._get(DATA_INDEX_PATH, params)
        if not isinstance(body, dict):
            raise RemoteQueryError(f"Unexpected search response from {self.base_url + DATA_INDEX_PATH}",
                                   url=self.base_url + DATA_INDEX_PATH)
        return parse_search_response(body)

    def status(self) -> bool:
        """True if the server answers its status resource."""
        try:
            self._get(STATUS_PATH)
        except RemoteQueryError:
            return False
        return True

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
