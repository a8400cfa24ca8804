"""Read-only queries over server-side staging state.

Profile and repository listings are consistently replicated by the server,
so unlike index searches they are never retried; any RemoteQueryError from
the client reaches the caller unchanged.
"""

from typing import List, Union

from .protocol import Profile, StagingClient, StagingRepository


class RepositoryStateQuery:
    """Lists staging repositories through a StagingClient."""

    def __init__(self, client: StagingClient):
        self.client = client

    def list_profiles(self) -> List[Profile]:
        return self.client.list_profiles()

    def list_all(self) -> List[StagingRepository]:
        """Every staging repository of every profile, open or closed.

        Repositories are concatenated in the order the server lists profiles.
        """
        result = []
        for profile in self.client.list_profiles():
            result.extend(self.client.list_staging_repositories(profile.id))
        return result

    def list_for_profile(self, profile: Union[Profile, str]) -> List[StagingRepository]:
        """Every staging repository of one profile (a Profile or a profile id)."""
        profile_id = profile.id if isinstance(profile, Profile) else profile
        return self.client.list_staging_repositories(profile_id)
