"""Index search shielded against indexer asynchronicity.

The Nexus indexer commits roughly once a second, and a deploy reaches the
indexer through an asynchronous event, so a single search right after a
deploy can report "not found" for an artifact that is there. The search is
therefore repeated a fixed number of times with a pause in between, and the
LAST response is returned: callers get the most settled observation, not
the first positive one.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .protocol import SearchResponse, StagingClient

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """How often to search and how long to pause between searches.

    ``sleep`` replaces the pause (for tests). When ``cancel`` is given and
    no ``sleep`` is, pauses wait on the event and end early once it is set.
    """
    attempts: int = 3
    delay: float = 1.0
    sleep: Optional[Callable[[float], None]] = None
    cancel: Optional[threading.Event] = None

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must not be negative, got {self.delay}")

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def pause(self) -> bool:
        """Pause between attempts. Returns True if cancelled meanwhile."""
        if self.sleep is None and self.cancel is not None:
            return self.cancel.wait(self.delay)
        (self.sleep or time.sleep)(self.delay)
        return self.cancelled


class EventualConsistencySearch:
    """GAV search repeated according to a RetryPolicy."""

    def __init__(self, client: StagingClient, policy: Optional[RetryPolicy] = None):
        self.client = client
        self.policy = policy or RetryPolicy()

    def search_with_retry(self, coordinates, repository_id: Optional[str] = None,
                          classifier: Optional[str] = None,
                          packaging: Optional[str] = None) -> Optional[SearchResponse]:
        """Search for coordinates (anything with group_id/artifact_id/version).

        Returns the response of the last attempt. If the policy is cancelled,
        the loop stops and the latest response so far is returned, which is
        None if no attempt completed.
        """
        return self.search_by_gav(
            coordinates.group_id,
            coordinates.artifact_id,
            coordinates.version,
            classifier,
            packaging,
            repository_id,
        )

    def search_by_gav(self, group_id: str, artifact_id: str, version: str,
                      classifier: Optional[str] = None, type: Optional[str] = None,
                      repository_id: Optional[str] = None) -> Optional[SearchResponse]:
        """Six-argument form of search_with_retry."""
        policy = self.policy
        response = None
        for attempt in range(1, policy.attempts + 1):
            if policy.cancelled:
                logger.warning("Search for %s:%s:%s cancelled before attempt %d",
                               group_id, artifact_id, version, attempt)
                break
            response = self.client.search_by_gav(
                group_id, artifact_id, version, classifier, type, repository_id
            )
            logger.debug("Search %d/%d for %s:%s:%s: %d hit(s)", attempt, policy.attempts,
                         group_id, artifact_id, version, len(response.hits))
            if attempt == policy.attempts:
                break
            if policy.pause():
                logger.warning("Search for %s:%s:%s cancelled after attempt %d, "
                               "returning that result", group_id, artifact_id, version, attempt)
                break
        return response
