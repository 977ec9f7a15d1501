"""Errors raised while resolving a pod to a network namespace.

Every error is terminal. The CLI prints ``stage`` and the message, plus
``hint`` when there is a remediation to suggest.
"""


class PodNetnsError(Exception):
    stage = "podnetns"

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class InvalidArguments(PodNetnsError):
    stage = "arguments"


class PrivilegeRequired(PodNetnsError):
    stage = "privileges"


class RuntimeUnavailable(PodNetnsError):
    stage = "runtime detection"


class NoRuntimeDetected(PodNetnsError):
    stage = "runtime detection"


class PodNotFound(PodNetnsError):
    stage = "pod lookup"


class PodNotRunning(PodNetnsError):
    stage = "pod lookup"

    def __init__(self, pod: str, phase: str):
        super().__init__(f"Pod '{pod}' is in phase '{phase}', not 'Running'.")
        self.phase = phase


class ContainerIndexOutOfRange(PodNetnsError):
    stage = "container selection"

    def __init__(self, index: int, names: list[str]):
        if names:
            message = f"Container index {index} is out of range (0-{len(names) - 1})."
        else:
            message = f"Container index {index} is out of range (pod has no containers)."
        super().__init__(message, hint=f"Available containers: {', '.join(names)}")
        self.index = index
        self.names = names


class ContainerNotRunning(PodNetnsError):
    stage = "container selection"


class ContainerIdentifierNotFound(PodNetnsError):
    stage = "container id"


class PidUnavailable(PodNetnsError):
    stage = "pid lookup"


class ToolMissing(PodNetnsError):
    stage = "tools"

    def __init__(self, tool: str, hint: str | None = None):
        super().__init__(f"Required command '{tool}' was not found on PATH.", hint)
        self.tool = tool


class NamespaceHandleMissing(PodNetnsError):
    stage = "namespace attach"
