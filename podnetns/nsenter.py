"""Hand the terminal over to nsenter inside a container's namespaces."""

import os
import shutil
from pathlib import Path
from typing import NoReturn

from podnetns.errors import NamespaceHandleMissing, ToolMissing
from podnetns.ui import print_attach_banner, print_debug

PROC_ROOT = Path("/proc")


def ensure_nsenter() -> str:
    path = shutil.which("nsenter")
    if path is None:
        raise ToolMissing("nsenter", hint="It ships with util-linux.")
    return path


def netns_path(pid: int, proc_root: Path | None = None) -> Path:
    return (proc_root or PROC_ROOT) / str(pid) / "ns" / "net"


def check_netns(pid: int, proc_root: Path | None = None) -> Path:
    path = netns_path(pid, proc_root)
    if not path.exists():
        raise NamespaceHandleMissing(
            f"Network namespace {path} does not exist; the process probably exited.",
            hint="Run the command again once the container is back up.",
        )
    return path


def build_nsenter_command(pid: int, shell: str = "bash", enter_pid_ns: bool = True) -> list[str]:
    cmd = ["nsenter", "-t", str(pid), "-n"]
    if enter_pid_ns:
        cmd.append("-p")
    cmd.append(shell)
    # Skip rc files so the prompt set through PS1 survives
    if os.path.basename(shell) == "bash":
        cmd.append("--norc")
    return cmd


def prompt_for(pod: str, container: str) -> str:
    return f"[netns:{pod}/{container}] \\u@\\h:\\w\\$ "


def enter_netns(
    pid: int,
    pod: str,
    namespace: str,
    container: str,
    shell: str = "bash",
    enter_pid_ns: bool = True,
    proc_root: Path | None = None,
) -> NoReturn:
    """Replace the current process with a shell in the target's network namespace.

    Raises:
        ToolMissing: If nsenter is not installed
        NamespaceHandleMissing: If the process is gone
        OSError: If the exec itself fails
    """
    ensure_nsenter()
    check_netns(pid, proc_root)

    cmd = build_nsenter_command(pid, shell=shell, enter_pid_ns=enter_pid_ns)
    env = dict(os.environ, PS1=prompt_for(pod, container))

    print_attach_banner(pod=pod, namespace=namespace, container=container, pid=pid)
    print_debug(f"exec: {' '.join(cmd)}")
    os.execvpe(cmd[0], cmd, env)
