"""Resolution pipeline for podnetns: pod reference -> container ID -> PID."""

import dataclasses
import os
import re

from podnetns.errors import ContainerIdentifierNotFound, PrivilegeRequired
from podnetns.kubernetes import resolve_pod_container
from podnetns.runtime import ContainerRuntime, detect_runtime
from podnetns.types import (
    AttachTarget,
    ContainerRecord,
    IdStrategy,
    PodReference,
    ResolutionContext,
    RuntimeMode,
)
from podnetns.ui import print_debug, print_info, print_success

# Labels the kubelet puts on every container it creates
POD_NAME_LABEL = "io.kubernetes.pod.name"
POD_NAMESPACE_LABEL = "io.kubernetes.pod.namespace"
CONTAINER_NAME_LABEL = "io.kubernetes.container.name"

_SCHEME_PREFIX = re.compile(r"^[a-z][a-z0-9+.-]*://")


# ===== Privileges =====


def require_root(argv: list[str]) -> None:
    if os.geteuid() != 0:
        raise PrivilegeRequired(
            "Entering another process's namespaces requires root privileges.",
            hint=f"Re-run with: sudo {' '.join(argv)}",
        )


# ===== Container identifier mapping =====


def strip_runtime_scheme(container_id: str) -> str:
    """Drop a `<scheme>://` prefix, e.g. containerd://abc123 -> abc123."""
    return _SCHEME_PREFIX.sub("", container_id, count=1)


def container_id_from_status(container: ContainerRecord) -> str:
    if not container.container_id:
        raise ContainerIdentifierNotFound(
            f"Kubernetes reports no container ID for container '{container.name}'."
        )

    container_id = strip_runtime_scheme(container.container_id)
    if not container_id:
        raise ContainerIdentifierNotFound(
            f"Container ID '{container.container_id}' for '{container.name}' is empty."
        )
    return container_id


def find_container_by_labels(
    runtime: ContainerRuntime, pod: PodReference, container_name: str
) -> str:
    """Scan the runtime's containers and return the first whose kubelet labels match.

    Containers are checked in the order the runtime lists them and the
    scan stops at the first match; later matches are never considered.
    """
    wanted = {
        POD_NAME_LABEL: pod.name,
        POD_NAMESPACE_LABEL: pod.namespace,
        CONTAINER_NAME_LABEL: container_name,
    }

    for container_id in runtime.list_container_ids():
        labels = runtime.get_labels(container_id)
        if all(labels.get(key) == value for key, value in wanted.items()):
            print_debug(
                f"Labels of '{container_id}' match {pod.namespace}/{pod.name}/{container_name}"
            )
            return container_id

    raise ContainerIdentifierNotFound(
        f"No {runtime.kind.value} container is labelled as '{container_name}' "
        f"of pod '{pod.namespace}/{pod.name}'."
    )


def resolve_container_id(
    runtime: ContainerRuntime,
    pod: PodReference,
    container: ContainerRecord,
    strategy: IdStrategy = IdStrategy.DIRECT,
) -> str:
    if strategy is IdStrategy.LABELS:
        return find_container_by_labels(runtime, pod, container.name)
    return container_id_from_status(container)


# ===== Pipeline stages =====


def resolve_pod_stage(pod: PodReference, container_index: int) -> ContainerRecord:
    pod_info, container = resolve_pod_container(pod, container_index)
    print_info(
        f"Pod: [cyan]{pod_info.name}[/cyan], namespace: [magenta]{pod_info.namespace}[/magenta], "
        f"container: [blue]{container.name}[/blue]"
    )
    return container


def resolve_container_id_stage(
    runtime: ContainerRuntime,
    pod: PodReference,
    container: ContainerRecord,
    strategy: IdStrategy,
) -> str:
    container_id = resolve_container_id(runtime, pod, container, strategy)
    print_debug(f"Container ID: {container_id}")
    return container_id


def resolve_pid_stage(runtime: ContainerRuntime, container_id: str) -> int:
    pid = runtime.resolve_pid(container_id)
    print_success(f"Container [blue]{container_id}[/blue] has PID [cyan bold]{pid}[/cyan bold]")
    return pid


def resolve(
    pod: PodReference,
    container_index: int = 0,
    runtime_mode: RuntimeMode = RuntimeMode.AUTO,
    strategy: IdStrategy = IdStrategy.DIRECT,
) -> AttachTarget:
    """Run every stage up to (not including) the namespace handoff.

    Each stage's result is recorded in a fresh copy of the context before
    the next stage runs.
    """
    ctx = ResolutionContext(pod=pod, container_index=container_index)

    runtime = detect_runtime(runtime_mode)
    ctx = dataclasses.replace(ctx, runtime=runtime)

    container = resolve_pod_stage(ctx.pod, ctx.container_index)
    ctx = dataclasses.replace(ctx, container=container)

    container_id = resolve_container_id_stage(runtime, ctx.pod, container, strategy)
    ctx = dataclasses.replace(ctx, container_id=container_id)

    pid = resolve_pid_stage(runtime, container_id)
    ctx = dataclasses.replace(ctx, pid=pid)
    print_debug(f"Resolved {ctx}")

    return AttachTarget(pod=ctx.pod, container=container, container_id=container_id, pid=pid)
