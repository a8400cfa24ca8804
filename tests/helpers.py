"""Test doubles and builders shared by the offline harness tests."""

import threading
import time
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

from harness.toolchains import ToolchainDistribution
from lib.protocol import Profile, SearchResponse, StagingClient, StagingRepository

# Stand-in launcher: echoes its arguments and environment, fails on demand
FAKE_LAUNCHER = """#!/bin/sh
if [ -n "$FAKE_FAIL" ]; then
  echo "[ERROR] Failed to execute goal"
  echo "BUILD FAILURE"
  exit 1
fi
echo "args: $@"
echo "home: $MAVEN_HOME"
echo "BUILD SUCCESS"
"""

TOOL = ToolchainDistribution(
    name="tool",
    group_id="org.example.toolchain",
    artifact_id="tool",
    executables=("tool",),
)


def make_toolchain_zip(path: Path, home_name: str, executable: str = "tool",
                       content: str = FAKE_LAUNCHER) -> Path:
    """Write a zip laid out like a binary distribution."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(f"{home_name}/bin/{executable}", content)
        zf.writestr(f"{home_name}/conf/settings.xml", "<settings/>\n")
    return path


class CountingResolver:
    """Archive resolver building fake distributions and recording each call."""

    def __init__(self, archive_dir: Path, delay: float = 0.0):
        self.archive_dir = archive_dir
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, coordinate):
        with self._lock:
            self.calls.append(coordinate)
        if self.delay:
            time.sleep(self.delay)
        home_name = f"{coordinate.artifact_id}-{coordinate.version}"
        executable = "mvn" if coordinate.artifact_id == "apache-maven" else "tool"
        archive = self.archive_dir / f"{len(self.calls)}-{coordinate.file_name}"
        return make_toolchain_zip(archive, home_name, executable)


class FakeStagingClient(StagingClient):
    """In-memory StagingClient recording every call."""

    def __init__(self, repositories: Optional[Dict[str, List[StagingRepository]]] = None,
                 search_responses: Optional[List[SearchResponse]] = None):
        self.repositories = repositories or {}
        self.search_responses = list(search_responses or [])
        self.calls = []

    def list_profiles(self):
        self.calls.append(("list_profiles",))
        return [Profile(id=profile_id, name=f"profile {profile_id}") for profile_id in self.repositories]

    def list_staging_repositories(self, profile_id):
        self.calls.append(("list_staging_repositories", profile_id))
        return list(self.repositories.get(profile_id, []))

    def search_by_gav(self, group_id, artifact_id, version, classifier=None,
                      packaging=None, repository_id=None):
        self.calls.append(("search_by_gav", group_id, artifact_id, version,
                           classifier, packaging, repository_id))
        response = self.search_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


