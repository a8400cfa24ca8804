"""Rendering of project descriptors (POMs) before a build.

Test projects ship ``raw-pom.xml`` templates containing ``${key}``
placeholders. Before Maven runs, every directory of the project tree is
visited depth-first and its raw POM is rendered into ``pom.xml``.

Planning and rendering are separate steps: :func:`plan_render` walks the
tree without touching it and fails on the first directory lacking any
descriptor, so a broken project never gets half rendered.
"""

import enum
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Tuple

from .errors import DescriptorError, MissingDescriptorError

logger = logging.getLogger(__name__)

RAW_DESCRIPTOR = "raw-pom.xml"
DESCRIPTOR = "pom.xml"

# Build output and sources never contain module descriptors
SKIPPED_DIRS = frozenset({"src", "target"})

# Placeholder keys understood by test projects and settings templates
NEXUS_PORT = "nexus.port"
PROJECT_GROUP_ID = "itproject.groupId"
PROJECT_ARTIFACT_ID = "itproject.artifactId"
PROJECT_VERSION = "itproject.version"

PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]+)\}")


class RenderAction(enum.Enum):
    """What happens to a directory during a render pass."""
    RENDER = "render"  # raw descriptor present, rendered one is (re)written
    KEEP = "keep"      # only a rendered descriptor present, left untouched


@dataclass(frozen=True)
class ProjectCoordinates:
    """groupId/artifactId/version of a Maven project."""
    group_id: str
    artifact_id: str
    version: str

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


def interpolate(text: str, context: Mapping[str, str]) -> str:
    """Replace ``${key}`` for every key in context, leaving other tokens alone."""
    def replace(match):
        key = match.group(1)
        if key in context:
            return str(context[key])
        return match.group(0)
    return PLACEHOLDER_PATTERN.sub(replace, text)


def filter_file(source: Path, target: Path, context: Mapping[str, str]) -> Path:
    """Copy source to target, substituting context placeholders."""
    text = Path(source).read_text(encoding="utf-8")
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(interpolate(text, context), encoding="utf-8")
    return target


def plan_render(root_dir: Path) -> List[Tuple[Path, RenderAction]]:
    """Walk root_dir depth-first and decide what to do with each directory.

    Subdirectories are visited in name order, skipping ``src`` and ``target``.

    Raises:
        MissingDescriptorError: At the first directory (in traversal order)
            that has neither a raw nor a rendered descriptor.
    """
    plan = []

    def visit(directory: Path):
        if (directory / RAW_DESCRIPTOR).is_file():
            plan.append((directory, RenderAction.RENDER))
        elif (directory / DESCRIPTOR).is_file():
            plan.append((directory, RenderAction.KEEP))
        else:
            raise MissingDescriptorError(directory)

        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            if child.is_dir() and child.name not in SKIPPED_DIRS:
                visit(child)

    visit(Path(root_dir))
    return plan


def render(root_dir: Path, context: Mapping[str, str]) -> List[Path]:
    """Render every raw descriptor under root_dir with context.

    Existing rendered descriptors next to a raw one are overwritten.

    Returns:
        The descriptors that were written.
    """
    written = []
    for directory, action in plan_render(root_dir):
        if action is RenderAction.RENDER:
            written.append(filter_file(directory / RAW_DESCRIPTOR, directory / DESCRIPTOR, context))
    logger.debug("Rendered %d descriptor(s) under %s", len(written), root_dir)
    return written


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element, name: str):
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or "").strip() or None
    return None


def _child(element, name: str):
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def read_coordinates(pom: Path) -> ProjectCoordinates:
    """Read the coordinates of a rendered POM.

    groupId and version are inherited from ``<parent>`` when not declared.

    Raises:
        MissingDescriptorError: If the POM does not exist.
        DescriptorError: If the POM is not parseable or lacks coordinates.
    """
    pom = Path(pom)
    if not pom.is_file():
        raise MissingDescriptorError(pom.parent, f"POM not found: {pom}")
    try:
        project = ET.parse(pom).getroot()
    except ET.ParseError as e:
        raise DescriptorError(f"Cannot parse {pom}: {e}") from e

    group_id = _child_text(project, "groupId")
    artifact_id = _child_text(project, "artifactId")
    version = _child_text(project, "version")

    parent = _child(project, "parent")
    if parent is not None:
        group_id = group_id or _child_text(parent, "groupId")
        version = version or _child_text(parent, "version")

    if not (group_id and artifact_id and version):
        raise DescriptorError(
            f"Incomplete coordinates in {pom}: "
            f"groupId={group_id} artifactId={artifact_id} version={version}"
        )
    return ProjectCoordinates(group_id, artifact_id, version)
