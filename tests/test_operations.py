import dataclasses
from unittest.mock import MagicMock, patch

import pytest

from podnetns.errors import (
    ContainerIdentifierNotFound,
    InvalidArguments,
    PrivilegeRequired,
)
from podnetns.operations import (
    CONTAINER_NAME_LABEL,
    POD_NAME_LABEL,
    POD_NAMESPACE_LABEL,
    container_id_from_status,
    find_container_by_labels,
    require_root,
    resolve,
    resolve_container_id,
    strip_runtime_scheme,
)
from podnetns.runtime import ContainerRuntime
from podnetns.types import (
    AttachTarget,
    ContainerRecord,
    IdStrategy,
    PodInfo,
    PodReference,
    ResolutionContext,
    RuntimeKind,
    RuntimeMode,
)


def _labels(pod: str, namespace: str, container: str) -> dict[str, str]:
    return {
        POD_NAME_LABEL: pod,
        POD_NAMESPACE_LABEL: namespace,
        CONTAINER_NAME_LABEL: container,
    }


def _fake_runtime(containers: dict[str, dict[str, str]]) -> MagicMock:
    """A runtime that lists `containers` in insertion order."""
    runtime = MagicMock(spec=ContainerRuntime)
    runtime.kind = RuntimeKind.CONTAINERD
    runtime.list_container_ids.return_value = list(containers)
    runtime.get_labels.side_effect = lambda cid: containers[cid]
    return runtime


def _record(container_id: str | None = "containerd://cid-abc") -> ContainerRecord:
    return ContainerRecord("app", container_id, True, True, "running")


class TestStripRuntimeScheme:
    """Tests for strip_runtime_scheme."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("containerd://abc123", "abc123"),
            ("docker://abc123", "abc123"),
            ("cri-o://abc123", "abc123"),
            ("abc123", "abc123"),
        ],
    )
    def test_strips_prefix(self, raw: str, expected: str):
        assert strip_runtime_scheme(raw) == expected

    def test_idempotent(self):
        once = strip_runtime_scheme("containerd://abc123")

        assert strip_runtime_scheme(once) == once


class TestContainerIdFromStatus:
    """Tests for the direct strategy."""

    def test_strips_scheme(self):
        assert container_id_from_status(_record()) == "cid-abc"

    @pytest.mark.parametrize("container_id", [None, "", "containerd://"])
    def test_missing_id(self, container_id: str | None):
        with pytest.raises(ContainerIdentifierNotFound):
            container_id_from_status(_record(container_id))


class TestFindContainerByLabels:
    """Tests for the label-match strategy."""

    def test_finds_matching_container(self):
        runtime = _fake_runtime(
            {
                "pause": _labels("web-1", "default", "POD"),
                "other-ns": _labels("web-1", "staging", "app"),
                "cid-abc": _labels("web-1", "default", "app"),
            }
        )

        result = find_container_by_labels(runtime, PodReference("web-1", "default"), "app")

        assert result == "cid-abc"

    def test_first_match_wins_and_scan_stops(self):
        """Test that with duplicate labels the first listed container is returned."""
        runtime = _fake_runtime(
            {
                "first": _labels("web-1", "default", "app"),
                "second": _labels("web-1", "default", "app"),
                "third": _labels("web-2", "default", "app"),
            }
        )

        result = find_container_by_labels(runtime, PodReference("web-1", "default"), "app")

        assert result == "first"
        runtime.get_labels.assert_called_once_with("first")

    def test_no_match(self):
        runtime = _fake_runtime({"cid-x": {POD_NAME_LABEL: "web-1"}})

        with pytest.raises(ContainerIdentifierNotFound, match="default/web-1"):
            find_container_by_labels(runtime, PodReference("web-1", "default"), "app")

    def test_empty_runtime(self):
        with pytest.raises(ContainerIdentifierNotFound):
            find_container_by_labels(_fake_runtime({}), PodReference("web-1"), "app")


class TestResolveContainerId:
    """Tests for strategy selection."""

    def test_direct_does_not_touch_runtime(self):
        runtime = _fake_runtime({})

        result = resolve_container_id(runtime, PodReference("web-1"), _record(), IdStrategy.DIRECT)

        assert result == "cid-abc"
        runtime.list_container_ids.assert_not_called()

    def test_labels_strategy(self):
        runtime = _fake_runtime({"from-labels": _labels("web-1", "default", "app")})

        result = resolve_container_id(runtime, PodReference("web-1"), _record(), IdStrategy.LABELS)

        assert result == "from-labels"


class TestRequireRoot:
    """Tests for require_root."""

    @patch("os.geteuid", return_value=1000)
    def test_non_root_rejected_with_sudo_hint(self, mock_geteuid: MagicMock):
        with pytest.raises(PrivilegeRequired) as exc_info:
            require_root(["podnetns", "web-1", "-v"])

        assert exc_info.value.hint == "Re-run with: sudo podnetns web-1 -v"

    @patch("os.geteuid", return_value=0)
    def test_root_accepted(self, mock_geteuid: MagicMock):
        require_root(["podnetns", "web-1"])


class TestPodReference:
    def test_empty_name_rejected(self):
        with pytest.raises(InvalidArguments):
            PodReference("", "default")

    def test_default_namespace(self):
        assert PodReference("web-1").namespace == "default"


class TestResolve:
    """Tests for resolve - the stage-by-stage pipeline."""

    @patch("podnetns.operations.resolve_pod_container")
    @patch("podnetns.operations.detect_runtime")
    def test_threads_context_through_stages(
        self, mock_detect: MagicMock, mock_resolve_pod: MagicMock
    ):
        runtime = _fake_runtime({})
        runtime.resolve_pid.return_value = 4321
        mock_detect.return_value = runtime
        container = _record()
        mock_resolve_pod.return_value = (
            PodInfo("web-1", "default", "node-1", "Running", [container]),
            container,
        )

        target = resolve(PodReference("web-1"), 0, RuntimeMode.CONTAINERD, IdStrategy.DIRECT)

        assert target == AttachTarget(
            pod=PodReference("web-1"),
            container=container,
            container_id="cid-abc",
            pid=4321,
        )
        mock_detect.assert_called_once_with(RuntimeMode.CONTAINERD)
        mock_resolve_pod.assert_called_once_with(PodReference("web-1"), 0)
        runtime.resolve_pid.assert_called_once_with("cid-abc")

    def test_context_is_immutable(self):
        ctx = ResolutionContext(pod=PodReference("web-1"))

        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.pid = 1  # type: ignore[misc]
