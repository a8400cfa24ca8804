"""Resolution of Maven artifacts to local files.

Toolchain archives are addressed with Maven coordinates, e.g.
``org.apache.maven:apache-maven:zip:bin:3.0.4``. This module turns such a
coordinate into a file on disk by checking, in order:

1. The local Maven repository (~/.m2/repository layout)
2. The harness archive cache
3. The remote repository (downloaded into the archive cache)
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from .config import Config, get_config
from .errors import ProvisioningError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactCoordinate:
    """Maven coordinate of a single artifact file."""
    group_id: str
    artifact_id: str
    version: str
    extension: str = "jar"
    classifier: str = ""

    @classmethod
    def parse(cls, text: str) -> "ArtifactCoordinate":
        """Parse ``g:a:v``, ``g:a:ext:v`` or ``g:a:ext:classifier:v``."""
        parts = text.strip().split(":")
        if any(not p for p in parts):
            raise ValueError(f"Invalid artifact coordinate: {text!r}")
        if len(parts) == 3:
            return cls(parts[0], parts[1], parts[2])
        if len(parts) == 4:
            return cls(parts[0], parts[1], parts[3], extension=parts[2])
        if len(parts) == 5:
            return cls(parts[0], parts[1], parts[4], extension=parts[2], classifier=parts[3])
        raise ValueError(
            f"Invalid artifact coordinate: {text!r}. "
            "Use 'groupId:artifactId[:extension[:classifier]]:version'"
        )

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact_id}-{self.version}{suffix}.{self.extension}"

    @property
    def repository_path(self) -> str:
        """Path of the file relative to a Maven 2 repository root."""
        return "/".join([
            self.group_id.replace(".", "/"),
            self.artifact_id,
            self.version,
            self.file_name,
        ])

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.extension]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        return ":".join(parts)


class ArtifactResolver:
    """Resolves artifact coordinates to local files, downloading when needed."""

    def __init__(self, config: Optional[Config] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.config = config or get_config()
        self._transport = transport

    def find_local(self, coordinate: ArtifactCoordinate) -> Optional[Path]:
        """Return an already available file for the coordinate, if any."""
        for root in (self.config.local_repository, self.config.archive_cache_dir):
            candidate = root / coordinate.repository_path
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, coordinate) -> Path:
        """Resolve a coordinate (string or ArtifactCoordinate) to a local file.

        Raises:
            ProvisioningError: If the artifact cannot be found or downloaded.
        """
        if isinstance(coordinate, str):
            coordinate = ArtifactCoordinate.parse(coordinate)

        local = self.find_local(coordinate)
        if local:
            logger.debug("Resolved %s locally at %s", coordinate, local)
            return local

        return self.download(coordinate)

    def download(self, coordinate: ArtifactCoordinate) -> Path:
        """Download an artifact from the remote repository into the archive cache."""
        url = f"{self.config.remote_repository_url.rstrip('/')}/{coordinate.repository_path}"
        target = self.config.archive_cache_dir / coordinate.repository_path
        target.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Downloading %s from %s", coordinate, url)
        fd, tmp_name = tempfile.mkstemp(prefix=".download-", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as out:
                with httpx.Client(transport=self._transport, follow_redirects=True,
                                  timeout=self.config.nexus_timeout) as client:
                    with client.stream("GET", url) as response:
                        if response.status_code != 200:
                            raise ProvisioningError(
                                f"Cannot resolve {coordinate}: HTTP {response.status_code} from {url}"
                            )
                        for chunk in response.iter_bytes():
                            out.write(chunk)
            os.replace(tmp_name, target)
        except httpx.HTTPError as e:
            raise ProvisioningError(f"Cannot resolve {coordinate}: {e}") from e
        except OSError as e:
            raise ProvisioningError(f"Cannot store {coordinate} at {target}: {e}") from e
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

        return target
