"""Tests for git hook installation."""

from __future__ import annotations

import os

import pytest

from hookflow.hooks.installer import BACKUP_SUFFIX, HOOK_MARKER, HookInstaller


@pytest.fixture
def hooks_dir(tmp_path):
    path = tmp_path / ".git" / "hooks"
    path.mkdir(parents=True)
    return path


def test_install_writes_executable_scripts(tmp_path, hooks_dir):
    result = HookInstaller(tmp_path).install_hooks()

    assert result.success
    assert result.installed == ["post-merge", "post-checkout", "pre-commit", "pre-push"]
    script = (hooks_dir / "post-merge").read_text()
    assert script.startswith("#!/usr/bin/env bash\n")
    assert HOOK_MARKER in script
    assert 'hookflow hooks execute post-merge "$@"' in script
    assert os.access(hooks_dir / "post-checkout", os.X_OK)
    assert 'hookflow hooks execute pre-commit "$@"' in (hooks_dir / "pre-commit").read_text()


def test_reinstall_overwrites_managed_hooks(tmp_path, hooks_dir):
    HookInstaller(tmp_path).install_hooks()
    result = HookInstaller(tmp_path, cli_path="/opt/bin/hookflow").install_hooks(["post-merge"])

    assert result.installed == ["post-merge"]
    assert result.backed_up == []
    assert "/opt/bin/hookflow hooks execute" in (hooks_dir / "post-merge").read_text()


def test_foreign_hook_is_skipped_without_force(tmp_path, hooks_dir):
    (hooks_dir / "post-merge").write_text("#!/bin/sh\necho mine\n")

    result = HookInstaller(tmp_path).install_hooks()

    assert result.skipped == ["post-merge"]
    assert result.installed == ["post-checkout", "pre-commit", "pre-push"]
    assert (hooks_dir / "post-merge").read_text() == "#!/bin/sh\necho mine\n"


def test_force_backs_up_and_uninstall_restores(tmp_path, hooks_dir):
    (hooks_dir / "post-merge").write_text("#!/bin/sh\necho mine\n")

    result = HookInstaller(tmp_path, force=True).install_hooks()
    assert result.backed_up == ["post-merge"]
    assert (hooks_dir / f"post-merge{BACKUP_SUFFIX}").exists()

    [merge_info] = [h for h in HookInstaller(tmp_path).detect_existing_hooks() if h.type == "post-merge"]
    assert merge_info.is_managed and merge_info.has_backup

    removed = HookInstaller(tmp_path).uninstall_hooks()
    assert removed.removed == ["post-merge", "post-checkout", "pre-commit", "pre-push"]
    assert removed.restored == ["post-merge"]
    assert (hooks_dir / "post-merge").read_text() == "#!/bin/sh\necho mine\n"
    assert not (hooks_dir / "post-checkout").exists()


def test_uninstall_leaves_foreign_hooks(tmp_path, hooks_dir):
    (hooks_dir / "post-checkout").write_text("#!/bin/sh\n")
    result = HookInstaller(tmp_path).uninstall_hooks()
    assert result.removed == []
    assert (hooks_dir / "post-checkout").exists()


def test_detect_with_nothing_installed(tmp_path, hooks_dir):
    assert HookInstaller(tmp_path).detect_existing_hooks() == []
