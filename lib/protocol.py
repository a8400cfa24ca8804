"""Abstract client interface for the staging repository manager.

Tests only need three calls from the server: list staging profiles, list
the staging repositories of a profile, and search the index by GAV. Any
client providing these (the REST client, or an in-memory fake in unit
tests) can be used by the query and search helpers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Profile:
    """A staging profile: a named publishing scope on the server."""
    id: str
    name: str = ""
    mode: str = ""


@dataclass(frozen=True)
class StagingRepository:
    """A staging repository belonging to exactly one profile.

    ``state`` is whatever the server reports (open, closed, released, ...).
    """
    repository_id: str
    profile_id: str
    profile_name: str = ""
    state: str = ""
    description: str = ""
    url: str = ""


@dataclass(frozen=True)
class ArtifactHit:
    """One artifact found by an index search."""
    group_id: str
    artifact_id: str
    version: str
    classifier: str = ""
    extension: str = ""
    repository_id: str = ""


@dataclass
class SearchResponse:
    """Result of an index search. An empty ``hits`` list means not found (yet)."""
    total_count: int = 0
    hits: List[ArtifactHit] = field(default_factory=list)
    too_many_results: bool = False

    @property
    def found(self) -> bool:
        return bool(self.hits)

    def __len__(self) -> int:
        return len(self.hits)


class StagingClient(ABC):
    """The server calls the harness depends on."""

    @abstractmethod
    def list_profiles(self) -> List[Profile]:
        """Return every staging profile visible to the user."""
        pass

    @abstractmethod
    def list_staging_repositories(self, profile_id: str) -> List[StagingRepository]:
        """Return the staging repositories of one profile."""
        pass

    @abstractmethod
    def search_by_gav(self, group_id: str, artifact_id: str, version: str,
                      classifier: Optional[str] = None, packaging: Optional[str] = None,
                      repository_id: Optional[str] = None) -> SearchResponse:
        """Search the index by coordinates.

        ``classifier``, ``packaging`` and ``repository_id`` are optional filters.
        """
        pass
