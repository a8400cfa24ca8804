"""Nexus Staging Test Suite Library.

This module provides:
- StagingClient: Abstract interface to the repository manager
- NexusClient: httpx based REST implementation of StagingClient
- RepositoryStateQuery: Staging profile/repository listings
- EventualConsistencySearch: Index search repeated to ride out indexing lag
- Assertions: Test assertion helpers
"""

from .protocol import StagingClient, Profile, StagingRepository, SearchResponse, ArtifactHit
from .nexus_client import NexusClient, RemoteQueryError
from .staging import RepositoryStateQuery
from .search import EventualConsistencySearch, RetryPolicy
from .assertions import (
    assert_found,
    assert_not_found,
    assert_staging_repository_count,
    assert_all_in_state,
)

__all__ = [
    'StagingClient',
    'Profile',
    'StagingRepository',
    'SearchResponse',
    'ArtifactHit',
    'NexusClient',
    'RemoteQueryError',
    'RepositoryStateQuery',
    'EventualConsistencySearch',
    'RetryPolicy',
    'assert_found',
    'assert_not_found',
    'assert_staging_repository_count',
    'assert_all_in_state',
]
