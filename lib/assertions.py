"""Custom assertions for staging state checks."""

from typing import List, Optional, Sequence

from .protocol import ArtifactHit, SearchResponse, StagingRepository


def assert_found(response: Optional[SearchResponse], message: str = "",
                 repository_id: Optional[str] = None) -> List[ArtifactHit]:
    """
    Assert that a search found at least one artifact.

    Args:
        response: SearchResponse from a (retried) index search.
        message: Optional message to include on failure.
        repository_id: If given, at least one hit must be in this repository.

    Returns:
        The matching hits.

    Raises:
        AssertionError: If nothing (matching) was found.
    """
    hits = response.hits if response is not None else []
    if repository_id is not None:
        hits = [hit for hit in hits if hit.repository_id == repository_id]
    if not hits:
        where = f" in repository {repository_id}" if repository_id else ""
        msg = f"Expected artifact to be found{where}, search returned nothing"
        if message:
            msg = f"{message}: {msg}"
        raise AssertionError(msg)
    return hits


def assert_not_found(response: Optional[SearchResponse], message: str = "") -> None:
    """
    Assert that a search found nothing.

    Raises:
        AssertionError: If the search returned hits.
    """
    if response is not None and response.hits:
        found = ", ".join(
            f"{h.group_id}:{h.artifact_id}:{h.version} ({h.repository_id})" for h in response.hits
        )
        msg = f"Expected no artifact, found: {found}"
        if message:
            msg = f"{message}: {msg}"
        raise AssertionError(msg)


def assert_staging_repository_count(repositories: Sequence[StagingRepository], expected: int,
                                    state: Optional[str] = None,
                                    message: str = "") -> List[StagingRepository]:
    """
    Assert the number of staging repositories, optionally only those in a state.

    Returns:
        The counted repositories.
    """
    counted = [r for r in repositories if state is None or r.state == state]
    if len(counted) != expected:
        what = f"{state} staging repositories" if state else "staging repositories"
        ids = ", ".join(f"{r.repository_id}[{r.state}]" for r in repositories) or "(none)"
        msg = f"Expected {expected} {what}, got {len(counted)}: {ids}"
        if message:
            msg = f"{message}: {msg}"
        raise AssertionError(msg)
    return counted


def assert_all_in_state(repositories: Sequence[StagingRepository], state: str,
                        message: str = "") -> None:
    """Assert that every repository is in the given state."""
    wrong = [r for r in repositories if r.state != state]
    if wrong:
        ids = ", ".join(f"{r.repository_id}[{r.state}]" for r in wrong)
        msg = f"Expected all staging repositories to be {state}: {ids}"
        if message:
            msg = f"{message}: {msg}"
        raise AssertionError(msg)
