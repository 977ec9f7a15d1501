"""Container runtime access: detection, label lookup and PID resolution."""

import json
import os
import shutil
import subprocess
from abc import ABC, abstractmethod

from podnetns.errors import (
    ContainerIdentifierNotFound,
    NoRuntimeDetected,
    PidUnavailable,
    RuntimeUnavailable,
)
from podnetns.types import RuntimeKind, RuntimeMode
from podnetns.ui import print_debug

DEFAULT_CONTAINERD_NAMESPACE = "k8s.io"

# Probes only enumerate; a daemon that can't answer this quickly counts as unreachable
_PROBE_TIMEOUT_SECONDS = 10

# Values the runtime CLIs print when there is no process behind a container
_PID_SENTINELS = {"", "0", "-", "null", "none", "<nil>", "<no value>"}


def parse_pid(raw: str | None) -> int | None:
    """Turn a PID column/field printed by a runtime CLI into a PID.

    Returns None for empty output, sentinels ("0", "-", "null", ...) and
    anything that is not a positive integer.
    """
    if raw is None:
        return None
    value = raw.strip()
    if value.lower() in _PID_SENTINELS or not value.isdigit():
        return None
    pid = int(value)
    return pid if pid > 0 else None


def _load_json_object(raw: str) -> dict | None:
    """Parse runtime CLI output that should hold a JSON object, None otherwise."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class ContainerRuntime(ABC):
    """A container runtime reachable through its command-line client."""

    kind: RuntimeKind
    binary: str

    def is_installed(self) -> bool:
        return shutil.which(self.binary) is not None

    @abstractmethod
    def probe_command(self) -> list[str]:
        """A read-only command that succeeds only if the daemon answers."""

    def probe(self) -> bool:
        cmd = self.probe_command()
        print_debug(f"Probing {self.kind.value}: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=_PROBE_TIMEOUT_SECONDS,
            )
        except subprocess.TimeoutExpired:
            print_debug(f"{self.binary} did not answer within {_PROBE_TIMEOUT_SECONDS}s")
            return False
        except OSError as e:
            print_debug(f"Failed to run {self.binary}: {e}")
            return False

        if result.returncode != 0:
            print_debug(f"{self.binary} probe failed: {result.stderr.strip()}")
            return False
        return True

    @abstractmethod
    def list_container_ids(self) -> list[str]:
        """Container IDs in the order the runtime lists them."""

    @abstractmethod
    def get_labels(self, container_id: str) -> dict[str, str]: ...

    @abstractmethod
    def resolve_pid(self, container_id: str) -> int: ...

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        cmd = [self.binary] + args
        print_debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise RuntimeUnavailable(f"Failed to run {self.binary}: {e}")


class ContainerdRuntime(ContainerRuntime):
    kind = RuntimeKind.CONTAINERD
    binary = "ctr"

    def __init__(self, namespace: str | None = None):
        self.namespace = namespace or os.getenv(
            "PODNETNS_CONTAINERD_NAMESPACE", DEFAULT_CONTAINERD_NAMESPACE
        )

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        return super()._run(["-n", self.namespace] + args)

    def probe_command(self) -> list[str]:
        return [self.binary, "-n", self.namespace, "containers", "list", "-q"]

    def list_container_ids(self) -> list[str]:
        result = self._run(["containers", "list", "-q"])
        if result.returncode != 0:
            raise ContainerIdentifierNotFound(
                f"Failed to list {self.kind.value} containers: {result.stderr.strip()}"
            )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_labels(self, container_id: str) -> dict[str, str]:
        result = self._run(["containers", "info", container_id])
        if result.returncode != 0 or not result.stdout.strip():
            return {}
        info = _load_json_object(result.stdout)
        if info is None:
            print_debug(f"Unreadable container info for '{container_id}', treating it as unlabelled")
            return {}
        return info.get("Labels") or {}

    def _pid_from_task_list(self, container_id: str) -> int | None:
        result = self._run(["task", "list"])
        if result.returncode != 0:
            print_debug(f"ctr task list failed: {result.stderr.strip()}")
            return None

        # TASK  PID  STATUS
        for line in result.stdout.splitlines()[1:]:
            parts = line.split()
            # Exact match: a sibling ID may share a prefix with ours
            if len(parts) >= 2 and parts[0] == container_id:
                return parse_pid(parts[1])
        return None

    def _pid_from_task_detail(self, container_id: str) -> int | None:
        if shutil.which("crictl") is None:
            print_debug("crictl not found, skipping task detail lookup")
            return None

        cmd = ["crictl", "inspect", "-o", "json", container_id]
        print_debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            print_debug(f"Failed to run crictl: {e}")
            return None
        if result.returncode != 0 or not result.stdout.strip():
            print_debug(f"crictl inspect failed: {result.stderr.strip()}")
            return None

        detail = _load_json_object(result.stdout)
        info = detail.get("info") if detail is not None else None
        if not isinstance(info, dict):
            return None
        pid = info.get("pid")
        return parse_pid(None if pid is None else str(pid))

    def resolve_pid(self, container_id: str) -> int:
        pid = self._pid_from_task_list(container_id)
        if pid is None:
            print_debug(
                f"No PID for '{container_id}' in the task list, trying task detail"
            )
            pid = self._pid_from_task_detail(container_id)

        if pid is None:
            raise PidUnavailable(
                f"containerd reports no running task with a PID for container '{container_id}'.",
                hint=f"Check with: ctr -n {self.namespace} task list",
            )
        return pid


class DockerRuntime(ContainerRuntime):
    kind = RuntimeKind.DOCKER
    binary = "docker"

    def probe_command(self) -> list[str]:
        return [self.binary, "ps", "-q"]

    def list_container_ids(self) -> list[str]:
        result = self._run(["ps", "-q", "--no-trunc"])
        if result.returncode != 0:
            raise ContainerIdentifierNotFound(
                f"Failed to list {self.kind.value} containers: {result.stderr.strip()}"
            )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_labels(self, container_id: str) -> dict[str, str]:
        result = self._run(["inspect", "--format", "{{json .Config.Labels}}", container_id])
        if result.returncode != 0 or not result.stdout.strip():
            return {}
        labels = _load_json_object(result.stdout)
        if labels is None:
            print_debug(f"Unreadable labels for '{container_id}', treating it as unlabelled")
            return {}
        return labels

    def resolve_pid(self, container_id: str) -> int:
        result = self._run(["inspect", "--format", "{{.State.Pid}}", container_id])
        if result.returncode != 0:
            raise PidUnavailable(
                f"docker inspect failed for container '{container_id}': {result.stderr.strip()}"
            )

        pid = parse_pid(result.stdout)
        if pid is None:
            raise PidUnavailable(
                f"Docker reports no PID for container '{container_id}' "
                f"(got '{result.stdout.strip()}'); it is probably not running."
            )
        return pid


def runtime_for_kind(kind: RuntimeKind) -> ContainerRuntime:
    if kind is RuntimeKind.CONTAINERD:
        return ContainerdRuntime()
    return DockerRuntime()


# Containerd is the usual Kubernetes runtime, so it is probed first
_AUTO_PROBE_ORDER = [RuntimeKind.CONTAINERD, RuntimeKind.DOCKER]


def detect_runtime(mode: RuntimeMode = RuntimeMode.AUTO) -> ContainerRuntime:
    """Return a runtime whose client is installed and whose daemon answers."""
    if mode is not RuntimeMode.AUTO:
        runtime = runtime_for_kind(RuntimeKind(mode.value))
        if not runtime.is_installed():
            raise RuntimeUnavailable(
                f"{runtime.kind.value} client '{runtime.binary}' was not found on PATH."
            )
        if not runtime.probe():
            raise RuntimeUnavailable(
                f"{runtime.kind.value} is installed but '{runtime.binary}' could not "
                f"reach the runtime.",
                hint="Check that the daemon is running and that you have access to its socket.",
            )
        print_debug(f"Using requested runtime: {runtime.kind.value}")
        return runtime

    print_debug("Auto-detecting container runtime...")
    for kind in _AUTO_PROBE_ORDER:
        runtime = runtime_for_kind(kind)
        if runtime.is_installed() and runtime.probe():
            print_debug(f"Detected runtime: {kind.value}")
            return runtime
        print_debug(f"{kind.value} not usable")

    raise NoRuntimeDetected(
        "No supported container runtime (containerd or docker) is available.",
        hint="Pass --runtime explicitly to see why a specific runtime is rejected.",
    )
