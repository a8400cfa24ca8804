"""Pytest configuration and fixtures for the Nexus staging test suite.

This module provides fixtures for running Maven builds against a live Nexus
and checking the staging state they leave behind:
- Maven versions provisioned once and reused by every test
- Isolated, per-test Maven invocations with rendered POMs and settings
- Staging repository listings and retried index searches

Usage:
    # Run against the Nexus configured in .staging-its.toml / STAGING_NEXUS_URL
    pytest

    # Explicit Nexus and Maven versions
    pytest --nexus-url=http://localhost:8081/nexus \
        --maven-version=2.2.1 --maven-version=3.0.4

Tests requesting a Nexus fixture are skipped when no Nexus answers at the
configured URL; the offline unit tests under tests/ always run.
"""

import dataclasses
import shutil
from pathlib import Path
from typing import Callable, Generator, List, Optional

import pytest

from harness.artifacts import ArtifactResolver
from harness.config import Config, get_config
from harness.invocation import InvocationBuilder, PreparedInvocation
from harness.toolchains import ToolchainCache
from lib.nexus_client import NexusClient
from lib.search import EventualConsistencySearch, RetryPolicy
from lib.staging import RepositoryStateQuery


# ============================================================================
# Configuration
# ============================================================================

def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--nexus-url",
        action="store",
        default=None,
        help="Base URL of the Nexus under test (default: configured nexus.url)"
    )
    parser.addoption(
        "--maven-version",
        action="append",
        default=[],
        help="Maven version to run builds with (can be repeated, default: configured versions)"
    )
    parser.addoption(
        "--keep-artifacts",
        action="store_true",
        default=False,
        help="Keep copied test projects and build logs under target/its after the run"
    )
    parser.addoption(
        "--show-build-log-on-failure",
        action="store_true",
        default=False,
        help="Append the tail of the Maven build log to failing test reports"
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "staging: marks tests that deploy to a live Nexus"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def _maven_versions(config) -> List[str]:
    return config.getoption("--maven-version") or get_config().maven_versions


def pytest_generate_tests(metafunc):
    """Run every test taking maven_version once per Maven version."""
    if 'maven_version' in metafunc.fixturenames:
        metafunc.parametrize('maven_version', _maven_versions(metafunc.config))


# ============================================================================
# Harness Fixtures
# ============================================================================

@pytest.fixture(scope='session')
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent


@pytest.fixture(scope='session')
def harness_config(request) -> Config:
    """Effective configuration with command-line overrides applied."""
    config = get_config()
    nexus_url = request.config.getoption("--nexus-url")
    if nexus_url:
        config = dataclasses.replace(config, nexus_url=nexus_url)
    return config


@pytest.fixture(scope='session')
def toolchain_cache(harness_config) -> ToolchainCache:
    """Maven installations shared by the whole session."""
    return ToolchainCache(harness_config.toolchain_home_dir, ArtifactResolver(harness_config))


@pytest.fixture(scope='session')
def invocation_builder(toolchain_cache, harness_config) -> InvocationBuilder:
    """Builder of isolated Maven invocations against the test Nexus."""
    return InvocationBuilder(
        toolchain_cache,
        base_dir=harness_config.base_dir,
        nexus_port=harness_config.nexus_port,
        timeout=harness_config.invocation_timeout,
    )


@pytest.fixture
def prepare_invocation(request, invocation_builder) -> Callable[..., PreparedInvocation]:
    """Factory preparing a Maven build for the calling test.

    The test id defaults to the test function name and rendered projects get
    the test module's package as groupId.

    Usage:
        def test_deploy(prepare_invocation, maven_version, project_copy):
            invocation = prepare_invocation(maven_version, SETTINGS, project_copy("simple"))
            result = invocation.execute(["clean", "deploy"])
    """
    module_name = request.module.__name__
    namespace = module_name.rpartition('.')[0] or module_name

    def prepare(version: str, settings_template: Path, project_dir: Path,
                test_id: Optional[str] = None) -> PreparedInvocation:
        invocation = invocation_builder.prepare(
            test_id or request.function.__name__,
            version,
            settings_template,
            project_dir,
            namespace=namespace,
        )
        prepare.prepared.append(invocation)
        return invocation

    prepare.prepared = []
    return prepare


@pytest.fixture
def project_copy(request, tmp_path, harness_config) -> Callable[[Path], Path]:
    """Factory copying a sample project to a private directory before it is rendered."""
    keep_artifacts = request.config.getoption("--keep-artifacts")
    if keep_artifacts:
        work_dir = harness_config.target_dir / "its" / request.node.name
        shutil.rmtree(work_dir, ignore_errors=True)
    else:
        work_dir = tmp_path

    def copy(source: Path) -> Path:
        source = Path(source)
        dest = work_dir / source.name
        shutil.copytree(source, dest, ignore=shutil.ignore_patterns("target"))
        return dest

    return copy


# ============================================================================
# Nexus Fixtures
# ============================================================================

@pytest.fixture(scope='session')
def nexus_client(harness_config) -> Generator[NexusClient, None, None]:
    """Client for the Nexus under test; skips when Nexus is not reachable."""
    client = NexusClient.from_config(harness_config)
    if not client.status():
        client.close()
        pytest.skip(
            f"Nexus not reachable at {harness_config.nexus_url}. Options:\n"
            "  - Specify --nexus-url=<url>\n"
            "  - Set STAGING_NEXUS_URL environment variable\n"
            "  - Configure [nexus] url in .staging-its.toml"
        )
    yield client
    client.close()


@pytest.fixture
def staging_state(nexus_client) -> RepositoryStateQuery:
    """Staging profile and repository listings."""
    return RepositoryStateQuery(nexus_client)


@pytest.fixture
def indexer_search(nexus_client, harness_config) -> EventualConsistencySearch:
    """Index search repeated per the configured retry policy."""
    policy = RetryPolicy(
        attempts=harness_config.search_attempts,
        delay=harness_config.search_delay,
    )
    return EventualConsistencySearch(nexus_client, policy)


# ============================================================================
# Reporting
# ============================================================================

@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Hook to append build logs to failing test reports."""
    outcome = yield
    report = outcome.get_result()

    if report.when != "call" or not report.failed:
        return
    if not item.config.getoption("--show-build-log-on-failure", default=False):
        return

    factory = item.funcargs.get("prepare_invocation")
    for invocation in getattr(factory, "prepared", []):
        log = invocation.read_log()
        if not log:
            continue
        # Only show last 50 lines of log to avoid overwhelming output
        log_lines = log.strip().split('\n')
        if len(log_lines) > 50:
            log = '\n'.join(['... (truncated) ...'] + log_lines[-50:])
        report.longrepr = str(report.longrepr) + \
            f"\n\n--- Build Log {invocation.log_file_name} (last 50 lines) ---\n{log}\n"
