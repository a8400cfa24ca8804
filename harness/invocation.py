"""Preparation and execution of isolated Maven builds.

An :class:`InvocationBuilder` turns (test id, Maven version, settings
template, project directory) into a :class:`PreparedInvocation`:

- the Maven home is provisioned through the toolchain cache,
- the settings template is rendered with the Nexus port,
- the project POMs are rendered (or read, if already rendered),
- a local repository and log file unique to (test id, version) are chosen.
"""

import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import VerificationError
from .templating import (
    DESCRIPTOR,
    NEXUS_PORT,
    PROJECT_ARTIFACT_ID,
    PROJECT_GROUP_ID,
    PROJECT_VERSION,
    RAW_DESCRIPTOR,
    ProjectCoordinates,
    filter_file,
    read_coordinates,
    render,
)
from .toolchains import ToolchainCache

logger = logging.getLogger(__name__)

# Version given to projects whose POM is generated from a raw template
SYNTHESIZED_VERSION = "1.0"

# Lines that mark a failed build in a Maven log
ERROR_LINE_PATTERN = re.compile(r"^\[ERROR\]|BUILD FAILURE|BUILD ERROR", re.MULTILINE)


@dataclass
class InvocationResult:
    """Outcome of one Maven execution."""
    exit_code: int
    log_path: Path
    command: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass
class PreparedInvocation:
    """A Maven build ready to run against the test Nexus."""
    toolchain_home: Path
    launcher: str
    working_dir: Path
    local_cache: Path
    settings_path: Path
    log_file_name: str
    cli_options: List[str]
    coordinates: ProjectCoordinates
    timeout: Optional[float] = None

    @property
    def group_id(self) -> str:
        return self.coordinates.group_id

    @property
    def artifact_id(self) -> str:
        return self.coordinates.artifact_id

    @property
    def version(self) -> str:
        return self.coordinates.version

    @property
    def log_path(self) -> Path:
        return self.working_dir / self.log_file_name

    @property
    def executable(self) -> Path:
        return self.toolchain_home / "bin" / self.launcher

    def command(self, goals: Sequence[str]) -> List[str]:
        """Full command line for the given goals."""
        return [str(self.executable), "--batch-mode", *self.cli_options, *goals]

    def environment(self, extra_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        env = dict(os.environ)
        env["M2_HOME"] = str(self.toolchain_home)
        env["MAVEN_HOME"] = str(self.toolchain_home)
        if extra_env:
            env.update(extra_env)
        return env

    def execute(self, goals: Sequence[str], extra_env: Optional[Dict[str, str]] = None,
                timeout: Optional[float] = None) -> InvocationResult:
        """Run Maven with goals in the project directory.

        Output goes to the log file, which is rewritten on every execution.
        Nothing is cleaned between executions, so consecutive calls see the
        state left by earlier builds.
        """
        cmd = self.command(goals)
        self.local_cache.mkdir(parents=True, exist_ok=True)
        logger.info("Running: %s (in %s)", " ".join(cmd), self.working_dir)
        with open(self.log_path, "w") as log:
            result = subprocess.run(
                cmd,
                cwd=self.working_dir,
                env=self.environment(extra_env),
                stdout=log,
                stderr=subprocess.STDOUT,
                timeout=timeout or self.timeout,
            )
        logger.info("Maven exited with %d, log: %s", result.returncode, self.log_path)
        return InvocationResult(exit_code=result.returncode, log_path=self.log_path, command=cmd)

    def read_log(self) -> str:
        """Contents of the build log (empty if the build never ran)."""
        if self.log_path.exists():
            return self.log_path.read_text(errors="replace")
        return ""

    def verify_error_free_log(self) -> None:
        """Raise VerificationError if the log reports errors."""
        log = self.read_log()
        match = ERROR_LINE_PATTERN.search(log)
        if match:
            line_start = log.rfind("\n", 0, match.start()) + 1
            line_end = log.find("\n", match.start())
            line = log[line_start:line_end if line_end != -1 else None]
            raise VerificationError(f"Error in build log {self.log_path}: {line}")

    def verify_text_in_log(self, text: str) -> None:
        """Raise VerificationError if text does not appear in the log."""
        if text not in self.read_log():
            raise VerificationError(f"Text not found in build log {self.log_path}: {text!r}")


class InvocationBuilder:
    """Creates isolated Maven invocations against one Nexus instance."""

    def __init__(self, toolchains: ToolchainCache, base_dir: Path, nexus_port: int,
                 namespace: str = "org.sonatype.nexus.maven.staging.it",
                 timeout: Optional[float] = None):
        self.toolchains = toolchains
        self.base_dir = Path(base_dir)
        self.nexus_port = nexus_port
        self.namespace = namespace
        self.timeout = timeout

    @property
    def tool_name(self) -> str:
        return self.toolchains.distribution.name

    def log_file_name(self, test_id: str, version: str) -> str:
        return f"{test_id}-{self.tool_name}-{version}.log"

    def local_cache_path(self, test_id: str, version: str) -> Path:
        return (self.base_dir / "target" / "local-cache" / test_id
                / f"{self.tool_name}-{version}").resolve()

    def settings_path(self, test_id: str, version: str) -> Path:
        return (self.base_dir / "target" / "settings"
                / f"{test_id}-{self.tool_name}-{version}.xml").resolve()

    def prepare(self, test_id: str, version: str, settings_template: Path,
                project_dir: Path, namespace: Optional[str] = None) -> PreparedInvocation:
        """Prepare a Maven build of project_dir for test_id with the given version.

        Args:
            test_id: Identifier of the calling test (no dashes or path separators).
            version: Maven version to build with.
            settings_template: settings.xml template with ``${nexus.port}``.
            project_dir: Project to build; its raw POMs are rendered.
            namespace: groupId given to projects rendered from raw POMs.

        Raises:
            ProvisioningError: If Maven cannot be provisioned.
            UnpreparedToolchainError: If the Maven home is missing after provisioning.
            MissingDescriptorError: If a project directory has no POM at all.
        """
        # A dash-free test id keeps <testId>-<tool>-<version> unique per pair
        if not test_id or "-" in test_id or "/" in test_id or os.sep in test_id:
            raise ValueError(f"Invalid test id: {test_id!r}")

        self.toolchains.ensure(version)
        home = self.toolchains.home(version)

        settings = filter_file(
            Path(settings_template),
            self.settings_path(test_id, version),
            {NEXUS_PORT: str(self.nexus_port)},
        )

        project_dir = Path(project_dir).resolve()
        if (project_dir / RAW_DESCRIPTOR).is_file():
            coordinates = ProjectCoordinates(
                group_id=namespace or self.namespace,
                artifact_id=f"{project_dir.name}-{version}",
                version=SYNTHESIZED_VERSION,
            )
            render(project_dir, {
                NEXUS_PORT: str(self.nexus_port),
                PROJECT_GROUP_ID: coordinates.group_id,
                PROJECT_ARTIFACT_ID: coordinates.artifact_id,
                PROJECT_VERSION: coordinates.version,
            })
        else:
            coordinates = read_coordinates(project_dir / DESCRIPTOR)

        local_cache = self.local_cache_path(test_id, version)
        invocation = PreparedInvocation(
            toolchain_home=home,
            launcher=self.toolchains.distribution.launcher,
            working_dir=project_dir,
            local_cache=local_cache,
            settings_path=settings,
            log_file_name=self.log_file_name(test_id, version),
            cli_options=[f"-Dmaven.repo.local={local_cache}", "-s", str(settings)],
            coordinates=coordinates,
            timeout=self.timeout,
        )
        logger.info("Prepared %s build of %s (%s)", version, project_dir.name, coordinates)
        return invocation
