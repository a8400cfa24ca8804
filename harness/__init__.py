"""Test harness for driving Maven builds against a staging Nexus.

This package provides utilities for:
- Provisioning and caching Maven distributions
- Rendering raw project POMs with connection parameters
- Preparing isolated Maven invocations per test and Maven version
- Configuration management for toolchains and Nexus access
- Cleaning up harness caches
"""

from .artifacts import ArtifactCoordinate, ArtifactResolver
from .clean import clean_directory, list_cache_contents
from .config import get_config, load_config, Config
from .errors import (
    HarnessError,
    ProvisioningError,
    UnpreparedToolchainError,
    DescriptorError,
    MissingDescriptorError,
    VerificationError,
)
from .invocation import InvocationBuilder, PreparedInvocation, InvocationResult
from .templating import ProjectCoordinates, plan_render, render, read_coordinates
from .toolchains import MAVEN, ToolchainCache, ToolchainDistribution

__all__ = [
    # Artifact resolution
    'ArtifactCoordinate',
    'ArtifactResolver',
    # Toolchains
    'MAVEN',
    'ToolchainCache',
    'ToolchainDistribution',
    # Templating
    'ProjectCoordinates',
    'plan_render',
    'render',
    'read_coordinates',
    # Invocations
    'InvocationBuilder',
    'PreparedInvocation',
    'InvocationResult',
    # Errors
    'HarnessError',
    'ProvisioningError',
    'UnpreparedToolchainError',
    'DescriptorError',
    'MissingDescriptorError',
    'VerificationError',
    # Config functions
    'get_config',
    'load_config',
    'Config',
    # Clean functions
    'clean_directory',
    'list_cache_contents',
]
