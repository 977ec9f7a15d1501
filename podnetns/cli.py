import os
import sys

import typer

from podnetns.errors import PodNetnsError
from podnetns.nsenter import enter_netns
from podnetns.operations import require_root, resolve
from podnetns.types import IdStrategy, PodReference, RuntimeMode
from podnetns.ui import print_error, print_step, set_verbose

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _invocation() -> list[str]:
    return [os.path.basename(sys.argv[0]) or "podnetns"] + sys.argv[1:]


@app.command(
    help="Enter the network namespace of a container running in a Kubernetes pod.",
    epilog=(
        "Examples: podnetns my-pod | podnetns my-pod kube-system | "
        "podnetns my-pod default -c 1 -v. "
        "Exit status: 1 when resolution or attach fails, 2 for invalid arguments."
    ),
)
def main(
    pod: str = typer.Argument(..., help="Name of the pod."),
    namespace: str = typer.Argument("default", help="Namespace of the pod."),
    container: int = typer.Option(
        0,
        "--container",
        "-c",
        min=0,
        help="Index of the container in the pod spec (0 is the first container).",
    ),
    runtime: RuntimeMode = typer.Option(
        RuntimeMode.AUTO,
        "--runtime",
        "-r",
        envvar="PODNETNS_RUNTIME",
        case_sensitive=False,
        help="Container runtime on this node.",
    ),
    id_strategy: IdStrategy = typer.Option(
        IdStrategy.DIRECT,
        "--id-strategy",
        case_sensitive=False,
        help="Take the container ID from the pod status (direct) or find it by kubelet labels (labels).",
    ),
    shell: str = typer.Option(
        "bash", "--shell", envvar="PODNETNS_SHELL", help="Shell to start in the namespace."
    ),
    pid_ns: bool = typer.Option(
        True, "--pid-ns/--no-pid-ns", help="Also join the container's PID namespace."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print diagnostic output."),
):
    set_verbose(verbose)

    try:
        require_root(_invocation())
        ref = PodReference(name=pod, namespace=namespace)

        print_step(f"Resolving [cyan]{ref.namespace}/{ref.name}[/cyan] container #{container}...")
        target = resolve(ref, container_index=container, runtime_mode=runtime, strategy=id_strategy)
    except PodNetnsError as e:
        print_error(e.stage, str(e), e.hint)
        raise typer.Exit(code=1)

    try:
        enter_netns(
            pid=target.pid,
            pod=target.pod.name,
            namespace=target.pod.namespace,
            container=target.container.name,
            shell=shell,
            enter_pid_ns=pid_ns,
        )
    except PodNetnsError as e:
        print_error(e.stage, str(e), e.hint)
        raise typer.Exit(code=1)
    except OSError as e:
        print_error("namespace attach", f"Failed to start nsenter: {e}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
