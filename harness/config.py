"""Configuration management for the Nexus staging test suite.

This module handles configuration for the test suite, including:
- Toolchain (Maven) versions and where they are installed
- Archive cache and local Maven repository locations
- Nexus connection settings
- Indexer search retry policy

Configuration is loaded from (in order of precedence):
1. Environment variables (STAGING_* prefix)
2. Project-local .staging-its.toml
3. User config ~/.config/nexus-staging-its/config.toml
4. Built-in defaults
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Any, List
from urllib.parse import urlsplit

# tomllib is stdlib from Python 3.11, tomli provides it before that
try:
    import tomllib
except ImportError:
    import tomli as tomllib


DEFAULT_MAVEN_VERSIONS: List[str] = ["2.2.1", "3.0.4"]

MAVEN_CENTRAL_URL = "https://repo.maven.apache.org/maven2"


@dataclass
class Config:
    """Main configuration for the test suite."""

    # Base directory of a test run; target/ lives below it
    base_dir: Path = field(default_factory=Path.cwd)

    # Where provisioned Maven installations live (default: <base_dir>/target/toolchain)
    toolchain_dir: Optional[Path] = None

    # Directory for caching downloaded toolchain archives
    archive_cache_dir: Path = field(default_factory=lambda: Path.home() / ".cache" / "nexus-staging-its" / "archives")

    # Local Maven repository checked before downloading archives
    local_repository: Path = field(default_factory=lambda: Path.home() / ".m2" / "repository")

    # Maven versions every test is run against
    maven_versions: List[str] = field(default_factory=lambda: list(DEFAULT_MAVEN_VERSIONS))

    # Remote Maven repository toolchain archives are downloaded from
    remote_repository_url: str = MAVEN_CENTRAL_URL

    # Seconds a single Maven invocation may run
    invocation_timeout: float = 600.0

    # Nexus connection
    nexus_url: str = "http://localhost:8081/nexus"
    nexus_username: str = "deployment"
    nexus_password: str = "deployment123"
    nexus_timeout: float = 30.0

    # Indexer search retry policy
    search_attempts: int = 3
    search_delay: float = 1.0

    def __post_init__(self):
        # Ensure paths are Path objects
        if isinstance(self.base_dir, str):
            self.base_dir = Path(self.base_dir)
        if isinstance(self.toolchain_dir, str):
            self.toolchain_dir = Path(self.toolchain_dir)
        if isinstance(self.archive_cache_dir, str):
            self.archive_cache_dir = Path(self.archive_cache_dir)
        if isinstance(self.local_repository, str):
            self.local_repository = Path(self.local_repository)

        # Expand ~ in paths
        self.base_dir = self.base_dir.expanduser()
        self.archive_cache_dir = self.archive_cache_dir.expanduser()
        self.local_repository = self.local_repository.expanduser()
        if self.toolchain_dir:
            self.toolchain_dir = self.toolchain_dir.expanduser()

    @property
    def target_dir(self) -> Path:
        """The run's target/ directory."""
        return self.base_dir / "target"

    @property
    def toolchain_home_dir(self) -> Path:
        """Directory holding provisioned toolchains."""
        return self.toolchain_dir or (self.target_dir / "toolchain")

    @property
    def local_cache_dir(self) -> Path:
        """Directory holding the isolated per-test local Maven repositories."""
        return self.target_dir / "local-cache"

    @property
    def nexus_port(self) -> int:
        """Port Nexus listens on, derived from nexus_url."""
        parts = urlsplit(self.nexus_url)
        if parts.port:
            return parts.port
        return 443 if parts.scheme == "https" else 80


# Default configuration file locations
USER_CONFIG_PATH = Path.home() / ".config" / "nexus-staging-its" / "config.toml"
PROJECT_CONFIG_NAME = ".staging-its.toml"


def _find_project_config() -> Optional[Path]:
    """Find project-local config file by walking up from cwd."""
    current = Path.cwd()
    while current != current.parent:
        config_path = current / PROJECT_CONFIG_NAME
        if config_path.exists():
            return config_path
        current = current.parent
    return None


def _load_toml(path: Path) -> Dict[str, Any]:
    """Load a TOML file and return its contents."""
    if not path.exists():
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def _parse_versions(value: Any) -> List[str]:
    """Accept a TOML list or a comma-separated string of versions."""
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if str(v).strip()]


def apply_config_data(config: Config, data: Dict[str, Any]) -> None:
    """Merge one parsed config file into a Config object."""
    # Paths section
    if "paths" in data:
        paths = data["paths"]
        if "base_dir" in paths:
            config.base_dir = Path(paths["base_dir"]).expanduser()
        if "toolchain_dir" in paths:
            config.toolchain_dir = Path(paths["toolchain_dir"]).expanduser()
        if "archive_cache_dir" in paths:
            config.archive_cache_dir = Path(paths["archive_cache_dir"]).expanduser()
        if "local_repository" in paths:
            config.local_repository = Path(paths["local_repository"]).expanduser()

    # Toolchain section
    if "toolchain" in data:
        toolchain = data["toolchain"]
        if "versions" in toolchain:
            config.maven_versions = _parse_versions(toolchain["versions"])
        if "remote_repository_url" in toolchain:
            config.remote_repository_url = toolchain["remote_repository_url"]
        if "invocation_timeout" in toolchain:
            config.invocation_timeout = float(toolchain["invocation_timeout"])

    # Nexus section
    if "nexus" in data:
        nexus = data["nexus"]
        if "url" in nexus:
            config.nexus_url = nexus["url"]
        if "username" in nexus:
            config.nexus_username = nexus["username"]
        if "password" in nexus:
            config.nexus_password = nexus["password"]
        if "timeout" in nexus:
            config.nexus_timeout = float(nexus["timeout"])

    # Search section
    if "search" in data:
        search = data["search"]
        if "attempts" in search:
            config.search_attempts = int(search["attempts"])
        if "delay" in search:
            config.search_delay = float(search["delay"])


def apply_environment(config: Config, environ: Optional[Dict[str, str]] = None) -> None:
    """Apply STAGING_* environment overrides to a Config object."""
    env = os.environ if environ is None else environ

    if value := env.get("STAGING_BASE_DIR"):
        config.base_dir = Path(value).expanduser()
    if value := env.get("STAGING_TOOLCHAIN_DIR"):
        config.toolchain_dir = Path(value).expanduser()
    if value := env.get("STAGING_ARCHIVE_CACHE_DIR"):
        config.archive_cache_dir = Path(value).expanduser()
    if value := env.get("STAGING_LOCAL_REPOSITORY"):
        config.local_repository = Path(value).expanduser()
    if value := env.get("STAGING_MAVEN_VERSIONS"):
        config.maven_versions = _parse_versions(value)
    if value := env.get("STAGING_REMOTE_REPOSITORY"):
        config.remote_repository_url = value
    if value := env.get("STAGING_INVOCATION_TIMEOUT"):
        config.invocation_timeout = float(value)
    if value := env.get("STAGING_NEXUS_URL"):
        config.nexus_url = value
    if value := env.get("STAGING_NEXUS_USERNAME"):
        config.nexus_username = value
    if value := env.get("STAGING_NEXUS_PASSWORD"):
        config.nexus_password = value
    if value := env.get("STAGING_NEXUS_TIMEOUT"):
        config.nexus_timeout = float(value)
    if value := env.get("STAGING_SEARCH_ATTEMPTS"):
        config.search_attempts = int(value)
    if value := env.get("STAGING_SEARCH_DELAY"):
        config.search_delay = float(value)


def load_config() -> Config:
    """Load configuration from files and environment.

    Returns:
        Config object with merged settings.
    """
    config = Config()

    # Load user config
    user_data = _load_toml(USER_CONFIG_PATH)

    # Load project config (overrides user)
    project_path = _find_project_config()
    project_data = _load_toml(project_path) if project_path else {}

    # Merge configs (project overrides user)
    for data in [user_data, project_data]:
        if data:
            apply_config_data(config, data)

    # Environment overrides (highest precedence)
    apply_environment(config)

    return config


def get_config() -> Config:
    """Get the current configuration (cached).

    Returns:
        Config object.
    """
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config():
    """Reset the cached configuration."""
    global _cached_config
    _cached_config = None


# Cached config instance
_cached_config: Optional[Config] = None


def generate_sample_config() -> str:
    """Generate a sample configuration file.

    Returns:
        Sample TOML configuration as a string.
    """
    return '''# Nexus Staging ITs Configuration
# Place this file at ~/.config/nexus-staging-its/config.toml (user)
# or .staging-its.toml in your project directory (project)

[paths]
# Base directory of a test run (default: current directory)
# base_dir = "."

# Where Maven installations are unpacked (default: <base_dir>/target/toolchain)
# toolchain_dir = "./target/toolchain"

# Directory for caching downloaded Maven archives
archive_cache_dir = "~/.cache/nexus-staging-its/archives"

# Local Maven repository searched before downloading
local_repository = "~/.m2/repository"

[toolchain]
# Maven versions every test runs against
versions = ["2.2.1", "3.0.4"]

# Repository the Maven binary archives are downloaded from
remote_repository_url = "https://repo.maven.apache.org/maven2"

# Seconds a single Maven build may run
invocation_timeout = 600

[nexus]
url = "http://localhost:8081/nexus"
username = "deployment"
password = "deployment123"
timeout = 30

[search]
# The indexer commits roughly once a second; search this many times,
# pausing this many seconds in between
attempts = 3
delay = 1.0
'''
