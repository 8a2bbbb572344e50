"""Tests for the Lambda entry point and script merging."""

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from harness.errors import MergeFileError
from harness.handler import (
    MERGE_FILE_FIELD,
    create_handler,
    configure_logging,
    deep_merge,
    get_merge_file_path,
    merge_if,
    read_merge_file,
)


@pytest.fixture
def lambda_context():
    return SimpleNamespace(function_name="load-test-harness-dev")


@pytest.fixture
def make_handler():
    """Build handlers without reconfiguring the root logger."""
    with patch("harness.handler.configure_logging"):
        yield create_handler


class TestMergeFilePath:
    """Tests for get_merge_file_path()."""

    def test_relative_path_inside_root(self, tmp_path):
        assert get_merge_file_path("scripts/base.yml", tmp_path) == (tmp_path / "scripts/base.yml").resolve()

    @pytest.mark.parametrize("value", [None, "", 42, ["base.yml"]])
    def test_not_a_path(self, tmp_path, value):
        with pytest.raises(MergeFileError, match="is not a valid path"):
            get_merge_file_path(value, tmp_path)

    @pytest.mark.parametrize("value", ["../outside.yml", "/etc/passwd"])
    def test_outside_root(self, tmp_path, value):
        with pytest.raises(MergeFileError, match="is not a local file path"):
            get_merge_file_path(value, tmp_path)

    def test_defaults_to_task_root(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LAMBDA_TASK_ROOT", str(tmp_path))

        assert get_merge_file_path("base.yml") == (tmp_path / "base.yml").resolve()


class TestReadMergeFile:
    """Tests for read_merge_file()."""

    def test_reads_yaml(self, tmp_path):
        (tmp_path / "base.yml").write_text("config:\n  target: https://example.com\n  phases:\n    - duration: 60\n")

        data = read_merge_file("base.yml", tmp_path)

        assert data == {"config": {"target": "https://example.com", "phases": [{"duration": 60}]}}

    def test_empty_file(self, tmp_path):
        (tmp_path / "empty.yml").write_text("")

        assert read_merge_file("empty.yml", tmp_path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(MergeFileError, match="Failed to read merge file"):
            read_merge_file("missing.yml", tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "bad.yml").write_text("config: [unclosed\n")

        with pytest.raises(MergeFileError):
            read_merge_file("bad.yml", tmp_path)

    def test_non_mapping(self, tmp_path):
        (tmp_path / "list.yml").write_text("- a\n- b\n")

        with pytest.raises(MergeFileError, match="must contain a mapping"):
            read_merge_file("list.yml", tmp_path)


class TestMerge:
    """Tests for deep_merge() and merge_if()."""

    def test_deep_merge_script_wins(self):
        base = {"config": {"target": "a", "phases": [1]}, "mode": "perf"}
        override = {"config": {"target": "b"}, "scenarios": []}

        assert deep_merge(base, override) == {
            "config": {"target": "b", "phases": [1]},
            "mode": "perf",
            "scenarios": [],
        }

    def test_deep_merge_does_not_mutate(self):
        base = {"config": {"target": "a"}}

        deep_merge(base, {"config": {"target": "b"}})

        assert base == {"config": {"target": "a"}}

    def test_merge_if_without_field(self):
        script = {"config": {}}

        assert merge_if(script) is script

    def test_merge_if_removes_field(self):
        read_merge = MagicMock(return_value={"config": {"target": "a", "http": {"timeout": 5}}})
        script = {MERGE_FILE_FIELD: "base.yml", "config": {"target": "b"}}

        merged = merge_if(script, read_merge)

        read_merge.assert_called_once_with("base.yml")
        assert merged == {"config": {"target": "b", "http": {"timeout": 5}}}


class TestHandler:
    """Tests for the handler built by create_handler()."""

    def test_runs_task(self, make_handler, lambda_context):
        task = MagicMock()
        task.execute_task.return_value = {"status": "done"}
        platform = MagicMock()
        platform.get_settings.return_value = {"task": {}}
        handler = make_handler(task, platform)

        result = handler({"mode": "perf", "config": {}}, lambda_context)

        assert result == {"status": "done"}
        script, settings = task.execute_task.call_args.args
        assert script["_funcAws"] == {"functionName": "load-test-harness-dev"}
        assert settings == {"task": {}}

    def test_merges_before_running(self, make_handler, lambda_context):
        task = MagicMock()
        read_merge = MagicMock(return_value={"config": {"target": "https://example.com"}})
        handler = make_handler(task, MagicMock(), read_merge=read_merge)

        handler({MERGE_FILE_FIELD: "base.yml", "config": {"phases": []}}, lambda_context)

        script = task.execute_task.call_args.args[0]
        assert MERGE_FILE_FIELD not in script
        assert script["config"] == {"target": "https://example.com", "phases": []}

    def test_invalid_mode_reported_as_validation_error(self, make_handler, lambda_context, capsys):
        task = MagicMock()
        handler = make_handler(task, MagicMock())

        result = handler({"mode": "soak"}, lambda_context)

        assert result.startswith("Error validating event: If specified, the mode attribute must be one of:")
        task.execute_task.assert_not_called()
        assert '"TaskErrorCount": 1' in capsys.readouterr().out

    def test_settings_failure_reported_as_validation_error(self, make_handler, lambda_context):
        platform = MagicMock()
        platform.get_settings.side_effect = ValueError("bad settings")
        handler = make_handler(MagicMock(), platform)

        assert handler({}, lambda_context) == "Error validating event: bad settings"

    def test_task_failure_reported_as_execution_error(self, make_handler, lambda_context):
        task = MagicMock()
        task.execute_task.side_effect = RuntimeError("engine crashed")
        handler = make_handler(task, MagicMock())

        assert handler({}, lambda_context) == "Error executing task: engine crashed"

    def test_merge_failure_reported_as_execution_error(self, make_handler, lambda_context):
        read_merge = MagicMock(side_effect=MergeFileError("Merge file /etc/x is not a local file path."))
        handler = make_handler(MagicMock(), MagicMock(), read_merge=read_merge)

        result = handler({MERGE_FILE_FIELD: "/etc/x"}, lambda_context)

        assert result == "Error executing task: Merge file /etc/x is not a local file path."


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_debug_level(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(debug=True)
            assert root.level == logging.DEBUG
            configure_logging(debug=False)
            assert root.level == logging.INFO
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
