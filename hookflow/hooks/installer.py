"""Install and remove the git hook scripts that call ``hookflow``."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

HOOK_MARKER = "# HOOKFLOW_MANAGED_HOOK"
BACKUP_SUFFIX = ".hookflow-backup"
GIT_HOOK_TYPES = ("post-merge", "post-checkout", "pre-commit", "pre-push")


@dataclass
class HookInfo:
    type: str
    path: Path
    is_managed: bool
    has_backup: bool


@dataclass
class InstallResult:
    success: bool = True
    installed: list[str] = field(default_factory=list)
    backed_up: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class UninstallResult:
    success: bool = True
    removed: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    error: str | None = None


class HookInstaller:
    """
    Manage hookflow scripts in ``.git/hooks``.

    Existing hooks that hookflow did not write are left alone unless
    ``force`` is set, in which case they are backed up first and restored
    on uninstall.
    """

    def __init__(self, git_root: Path, force: bool = False, cli_path: str = "hookflow"):
        self.git_root = Path(git_root)
        self.force = force
        self.cli_path = cli_path
        self.hooks_dir = self.git_root / ".git" / "hooks"

    def install_hooks(self, hook_types: tuple[str, ...] | list[str] = GIT_HOOK_TYPES) -> InstallResult:
        result = InstallResult()
        try:
            self.hooks_dir.mkdir(parents=True, exist_ok=True)
            for hook_type in hook_types:
                hook_path = self.hooks_dir / hook_type
                if not hook_path.exists():
                    self._write_script(hook_path, hook_type)
                    result.installed.append(hook_type)
                elif self._is_managed(hook_path):
                    self._write_script(hook_path, hook_type)
                    result.installed.append(hook_type)
                elif self.force:
                    shutil.copy2(hook_path, self._backup_path(hook_path))
                    self._write_script(hook_path, hook_type)
                    result.backed_up.append(hook_type)
                    result.installed.append(hook_type)
                else:
                    result.skipped.append(hook_type)
        except OSError as e:
            result.success = False
            result.error = str(e)
        return result

    def uninstall_hooks(self, hook_types: tuple[str, ...] | list[str] = GIT_HOOK_TYPES) -> UninstallResult:
        result = UninstallResult()
        try:
            for hook_type in hook_types:
                hook_path = self.hooks_dir / hook_type
                if not hook_path.exists() or not self._is_managed(hook_path):
                    continue
                hook_path.unlink()
                result.removed.append(hook_type)

                backup = self._backup_path(hook_path)
                if backup.exists():
                    backup.rename(hook_path)
                    result.restored.append(hook_type)
        except OSError as e:
            result.success = False
            result.error = str(e)
        return result

    def detect_existing_hooks(self, hook_types: tuple[str, ...] | list[str] = GIT_HOOK_TYPES) -> list[HookInfo]:
        hooks = []
        for hook_type in hook_types:
            hook_path = self.hooks_dir / hook_type
            if not hook_path.exists():
                continue
            hooks.append(
                HookInfo(
                    type=hook_type,
                    path=hook_path,
                    is_managed=self._is_managed(hook_path),
                    has_backup=self._backup_path(hook_path).exists(),
                )
            )
        return hooks

    def generate_script(self, hook_type: str) -> str:
        return (
            "#!/usr/bin/env bash\n"
            f"{HOOK_MARKER}\n"
            "# This hook is managed by hookflow\n"
            "# To uninstall: run 'hookflow hooks uninstall'\n"
            "\n"
            f'{self.cli_path} hooks execute {hook_type} "$@"\n'
        )

    def _backup_path(self, hook_path: Path) -> Path:
        return hook_path.with_name(hook_path.name + BACKUP_SUFFIX)

    def _is_managed(self, hook_path: Path) -> bool:
        try:
            return HOOK_MARKER in hook_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return False

    def _write_script(self, hook_path: Path, hook_type: str) -> None:
        hook_path.write_text(self.generate_script(hook_type), encoding="utf-8")
        hook_path.chmod(0o755)
