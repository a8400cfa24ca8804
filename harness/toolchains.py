"""Provisioning of Maven distributions used to drive builds.

Each requested version is unpacked once into a shared toolchain directory
(``target/toolchain/apache-maven-<version>/`` by default) and reused for
every later test. A cached install is detected by the presence of its
directory, so extraction happens in a private staging directory and the
finished install is moved into place in one rename.

Usage:
    cache = ToolchainCache(config.toolchain_home_dir, resolver)
    home = cache.ensure("3.0.4")
"""

import logging
import shutil
import tarfile
import tempfile
import threading
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

from .artifacts import ArtifactCoordinate, ArtifactResolver
from .errors import ProvisioningError, UnpreparedToolchainError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolchainDistribution:
    """How a toolchain is packaged and launched."""
    # Short name used in log file and local cache names
    name: str
    group_id: str
    artifact_id: str
    extension: str = "zip"
    classifier: str = "bin"
    # Entry points under bin/ that must be executable
    executables: Tuple[str, ...] = ()

    def coordinate(self, version: str) -> ArtifactCoordinate:
        """Coordinate of the binary archive for a version."""
        return ArtifactCoordinate(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            version=version,
            extension=self.extension,
            classifier=self.classifier,
        )

    def home_name(self, version: str) -> str:
        """Name of the top-level directory inside the archive."""
        return f"{self.artifact_id}-{version}"

    @property
    def launcher(self) -> str:
        return self.executables[0]


MAVEN = ToolchainDistribution(
    name="maven",
    group_id="org.apache.maven",
    artifact_id="apache-maven",
    extension="zip",
    classifier="bin",
    executables=("mvn",),
)

ArchiveResolver = Union[ArtifactResolver, Callable[[ArtifactCoordinate], Path]]


def extract_archive(archive: Path, dest: Path) -> None:
    """Unpack a zip or tar archive into dest.

    Raises:
        ProvisioningError: If the archive is unreadable or of an unknown format.
    """
    try:
        if zipfile.is_zipfile(archive):
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
        elif tarfile.is_tarfile(archive):
            with tarfile.open(archive) as tf:
                tf.extractall(dest, filter="data")
        else:
            raise ProvisioningError(f"Unsupported archive format: {archive}")
    except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
        raise ProvisioningError(f"Failed to extract {archive}: {e}") from e
    except TypeError as e:
        # Interpreters before 3.9.17/3.10.12/3.11.4 lack extraction filters
        raise ProvisioningError(
            f"Cannot safely extract {archive}: this Python has no tar extraction filters ({e})"
        ) from e


def make_executable(bin_dir: Path, names: Iterable[str]) -> None:
    """Set mode 755 on the named entry points in bin_dir.

    Archives in zip format do not carry unix permissions.
    """
    for name in names:
        path = bin_dir / name
        if not path.is_file():
            raise ProvisioningError(f"Executable not found: {path}")
        try:
            path.chmod(0o755)
        except OSError as e:
            raise ProvisioningError(f"Cannot make {path} executable: {e}") from e


class ToolchainCache:
    """Version to installation directory mapping for one distribution.

    Provisioning of the same version is serialized by a per-version lock;
    different versions can be provisioned in parallel.
    """

    def __init__(self, base_dir: Path, resolver: ArchiveResolver,
                 distribution: ToolchainDistribution = MAVEN):
        self.base_dir = Path(base_dir)
        self.distribution = distribution
        self._resolve = resolver.resolve if isinstance(resolver, ArtifactResolver) else resolver
        self._homes: Dict[str, Path] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, version: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(version, threading.Lock())

    def home_path(self, version: str) -> Path:
        """Where a version is (or would be) installed."""
        return self.base_dir / self.distribution.home_name(version)

    def ensure(self, version: str) -> Path:
        """Return the installation directory for version, provisioning it if needed."""
        with self._lock_for(version):
            home = self.home_path(version)
            if home.is_dir():
                logger.info("  Reusing %s %s...", self.distribution.name, version)
            else:
                logger.info("  Expanding %s %s...", self.distribution.name, version)
                self._provision(version, home)
            self._homes[version] = home
            return home

    def ensure_all(self, versions: Iterable[str]) -> Dict[str, Path]:
        """Provision every version in order, returning version -> home."""
        logger.info("Setting up %s binaries...", self.distribution.name)
        homes = {version: self.ensure(version) for version in versions}
        logger.info("  %s binaries set up...", self.distribution.name)
        return homes

    def home(self, version: str) -> Path:
        """Return the home of an already provisioned version.

        Raises:
            UnpreparedToolchainError: If the version was never provisioned or
                its directory has since been deleted.
        """
        home = self._homes.get(version)
        if home is None or not home.is_dir():
            raise UnpreparedToolchainError(version)
        return home

    def provisioned(self) -> Dict[str, Path]:
        """Snapshot of the provisioned versions."""
        return dict(self._homes)

    def _provision(self, version: str, home: Path) -> None:
        coordinate = self.distribution.coordinate(version)
        try:
            archive = self._resolve(coordinate)
        except (OSError, ValueError) as e:
            raise ProvisioningError(f"Cannot resolve {coordinate}: {e}") from e

        self.base_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{home.name}-", dir=self.base_dir))
        try:
            extract_archive(Path(archive), staging)
            unpacked = staging / home.name
            if not unpacked.is_dir():
                raise ProvisioningError(
                    f"Archive {archive} does not contain {home.name}/"
                )
            make_executable(unpacked / "bin", self.distribution.executables)
            try:
                unpacked.rename(home)
            except OSError as e:
                # Another process or cache on the same base_dir finished first
                if not home.is_dir():
                    raise ProvisioningError(f"Cannot move {unpacked} to {home}: {e}") from e
                logger.info("  Reusing %s %s provisioned concurrently...",
                            self.distribution.name, version)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
