"""Kubernetes operations for podnetns."""

import json
import shutil
import subprocess
from typing import Any

from podnetns.errors import (
    ContainerIndexOutOfRange,
    ContainerNotRunning,
    PodNotFound,
    PodNotRunning,
    ToolMissing,
)
from podnetns.types import ContainerRecord, PodInfo, PodReference
from podnetns.ui import print_debug


def _parse_container_status(name: str, status: dict[str, Any] | None) -> ContainerRecord:
    if status is None:
        # Scheduled but the kubelet hasn't reported on this container yet
        return ContainerRecord(
            name=name, container_id=None, ready=False, running=False, state="unknown"
        )

    state_keys = list((status.get("state") or {}).keys())
    state = state_keys[0] if state_keys else "unknown"
    return ContainerRecord(
        name=name,
        container_id=status.get("containerID") or None,
        ready=status.get("ready") is True,
        running=state == "running",
        state=state,
    )


def parse_pod(pod_json: dict[str, Any]) -> PodInfo:
    """Build a PodInfo from `kubectl get pod -o json` output.

    Containers keep the order they are declared in the pod spec; their
    status is matched by name since containerStatuses has no fixed order.
    """
    metadata = pod_json.get("metadata", {})
    spec = pod_json.get("spec", {})
    status = pod_json.get("status", {})

    statuses = {s["name"]: s for s in status.get("containerStatuses") or []}
    declared = [c["name"] for c in spec.get("containers") or []]
    if not declared:
        declared = list(statuses)

    return PodInfo(
        name=metadata.get("name", ""),
        namespace=metadata.get("namespace", ""),
        node_name=spec.get("nodeName", ""),
        status=status.get("phase", "Unknown"),
        containers=[_parse_container_status(name, statuses.get(name)) for name in declared],
    )


def get_pod(ref: PodReference) -> PodInfo:
    if shutil.which("kubectl") is None:
        raise ToolMissing("kubectl", hint="Install kubectl and make sure it can reach the cluster.")

    cmd = ["kubectl", "get", "pod", ref.name, "-n", ref.namespace, "-o", "json"]
    print_debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise PodNotFound(f"Failed to run kubectl: {e}")

    if result.returncode != 0:
        raise PodNotFound(
            f"Could not get pod '{ref.name}' in namespace '{ref.namespace}': "
            f"{result.stderr.strip()}",
            hint=f"Check the pod exists with: kubectl get pods -n {ref.namespace}",
        )

    try:
        pod_json = json.loads(result.stdout)
    except json.JSONDecodeError:
        pod_json = None
    if not pod_json:
        raise PodNotFound(
            f"kubectl returned no pod object for '{ref.name}' in namespace '{ref.namespace}'."
        )

    return parse_pod(pod_json)


def require_running(pod: PodInfo) -> None:
    if pod.status != "Running":
        raise PodNotRunning(pod.name, pod.status)


def select_container(pod: PodInfo, index: int) -> ContainerRecord:
    """Pick the container at `index` and check it is ready and running."""
    print_debug(f"Pod '{pod.name}' has {len(pod.containers)} container(s)")

    if index < 0 or index >= len(pod.containers):
        raise ContainerIndexOutOfRange(index, pod.container_names)

    container = pod.containers[index]
    if not (container.ready and container.running):
        raise ContainerNotRunning(
            f"Container '{container.name}' is not running "
            f"(ready: {str(container.ready).lower()}, state: {container.state})."
        )
    return container


def resolve_pod_container(ref: PodReference, index: int) -> tuple[PodInfo, ContainerRecord]:
    pod = get_pod(ref)
    require_running(pod)
    return pod, select_container(pod, index)
