"""Tests for the JSON Lines hook logger."""

from __future__ import annotations

import asyncio
import io

import pytest
from rich.console import Console

from hookflow.hooks.executor import HookContext, HookExecutor, HookExecutorConfig
from hookflow.hooks.logger import HookLogger, read_hook_log


@pytest.fixture
def log_file(tmp_path):
    return tmp_path / "logs" / "hooks.log"


def test_entries_are_json_lines(log_file):
    hook_logger = HookLogger(log_file, console_output=False)
    hook_logger.log_start("post-merge", "A.1.2")
    hook_logger.log_success("post-merge", "A.1.2", 42, metadata={"events": 3})
    hook_logger.log_error("post-merge", "A.1.3", RuntimeError("boom"), duration=7)
    hook_logger.close()

    entries = read_hook_log(log_file)

    assert [e["status"] for e in entries] == ["started", "success", "failed"]
    assert entries[0]["hookName"] == "post-merge"
    assert entries[0]["level"] == "info"
    assert entries[0]["timestamp"].endswith("Z")
    assert entries[1]["duration"] == 42
    assert entries[1]["metadata"] == {"events": 3}
    assert entries[2]["level"] == "error"
    assert entries[2]["error"] == "boom"
    assert entries[2]["duration"] == 7


def test_level_filtering(log_file):
    hook_logger = HookLogger(log_file, level="warn", console_output=False)
    hook_logger.debug("post-checkout", "A.1", metadata={"x": 1})
    hook_logger.log_start("post-checkout", "A.1")
    hook_logger.warn("post-checkout", "A.1", "slow", metadata={"ms": 900})
    hook_logger.log_error("post-checkout", "A.1", "failed hard")
    hook_logger.close()

    entries = read_hook_log(log_file)

    assert [e["level"] for e in entries] == ["warn", "error"]
    assert entries[0]["metadata"] == {"ms": 900, "message": "slow"}


def test_console_mirror(log_file):
    buffer = io.StringIO()
    hook_logger = HookLogger(log_file, console=Console(file=buffer, width=200, color_system=None))
    hook_logger.log_success("post-merge", "A.1.2", 12)
    hook_logger.close()

    assert "[post-merge] A.1.2 success (12ms)" in buffer.getvalue()


def test_file_output_disabled(log_file):
    hook_logger = HookLogger(log_file, console_output=False, file_output=False)
    hook_logger.log_start("post-merge", "A")
    hook_logger.close()
    assert not log_file.exists()


def test_read_hook_log_skips_garbage_and_limits(tmp_path):
    log_file = tmp_path / "hooks.log"
    log_file.write_text('{"n": 1}\nnot json\n\n{"n": 2}\n{"n": 3}\n', encoding="utf-8")

    assert [e["n"] for e in read_hook_log(log_file)] == [1, 2, 3]
    assert [e["n"] for e in read_hook_log(log_file, last_n=2)] == [2, 3]
    assert read_hook_log(tmp_path / "missing.log") == []


def test_unknown_level_rejected(log_file):
    with pytest.raises(ValueError, match="Unknown log level"):
        HookLogger(log_file, level="verbose")


def test_executor_writes_one_record_per_artifact(log_file):
    hook_logger = HookLogger(log_file, console_output=False)
    context = HookContext(artifact_id="A.1", event_type="post-merge", extra={"artifactIds": ["A.1", "B.2"]})
    executor = HookExecutor(HookExecutorConfig(hook_logger=hook_logger), hooks={"post-merge": lambda ctx: None})

    asyncio.run(executor.execute_task("post-merge", context))
    hook_logger.close()

    entries = read_hook_log(log_file)
    assert [(e["artifactId"], e["status"]) for e in entries] == [
        ("A.1", "started"),
        ("B.2", "started"),
        ("A.1", "success"),
        ("B.2", "success"),
    ]
    assert all("," not in e["artifactId"] for e in entries)
