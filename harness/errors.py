"""Exceptions raised by the staging test harness.

Setup errors (provisioning, templating) are raised before any Maven build
runs so a broken fixture never costs a build.
"""

from pathlib import Path
from typing import Optional


class HarnessError(Exception):
    """Base class for harness errors."""


class ProvisioningError(HarnessError):
    """A toolchain archive could not be resolved, extracted or prepared."""


class UnpreparedToolchainError(HarnessError):
    """A toolchain version was requested that was never provisioned."""

    def __init__(self, version: str):
        super().__init__(f"Maven version {version} was not prepared!")
        self.version = version


class DescriptorError(HarnessError):
    """A project descriptor could not be read."""


class MissingDescriptorError(DescriptorError):
    """A project directory has neither a raw nor a rendered descriptor."""

    def __init__(self, directory: Path, message: Optional[str] = None):
        super().__init__(message or f"No raw-POM nor proper POM found in {directory}")
        self.directory = directory


class VerificationError(HarnessError):
    """A build log did not meet expectations."""
