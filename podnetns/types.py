"""Type definitions for podnetns."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from podnetns.errors import InvalidArguments

if TYPE_CHECKING:
    from podnetns.runtime import ContainerRuntime


class RuntimeKind(str, Enum):
    CONTAINERD = "containerd"
    DOCKER = "docker"


class RuntimeMode(str, Enum):
    AUTO = "auto"
    CONTAINERD = "containerd"
    DOCKER = "docker"


class IdStrategy(str, Enum):
    DIRECT = "direct"
    LABELS = "labels"


@dataclass(frozen=True)
class PodReference:
    name: str
    namespace: str = "default"

    def __post_init__(self):
        if not self.name or not self.namespace:
            raise InvalidArguments("Pod name and namespace must not be empty.")


@dataclass(frozen=True)
class ContainerRecord:
    name: str
    container_id: str | None  # runtime-qualified, e.g. containerd://<hex>
    ready: bool
    running: bool
    state: str  # first key of status.state: running / waiting / terminated


@dataclass(frozen=True)
class PodInfo:
    name: str
    namespace: str
    node_name: str
    status: str  # status.phase
    containers: list[ContainerRecord] = field(default_factory=list)

    @property
    def container_names(self) -> list[str]:
        return [c.name for c in self.containers]


@dataclass(frozen=True)
class ResolutionContext:
    """Everything the pipeline has learned so far.

    Each stage returns a copy with its own field filled in.
    """

    pod: PodReference
    container_index: int = 0
    runtime: ContainerRuntime | None = None
    container: ContainerRecord | None = None
    container_id: str | None = None
    pid: int | None = None


@dataclass(frozen=True)
class AttachTarget:
    """A fully resolved container, ready for the namespace handoff."""

    pod: PodReference
    container: ContainerRecord
    container_id: str
    pid: int
