"""YAML artifact store.

Artifacts live as one YAML file each below ``.hookflow/artifacts/``. The
artifact id is the leading ``[A-Z](.N)*`` part of the file stem, so
``A.1.2.login-form.yml`` and ``A.1.2.yml`` both resolve to ``A.1.2``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

from ..errors import ArtifactNotFoundError, ArtifactStoreError
from .events import ARTIFACT_ID_PREFIX, ArtifactEvent, coerce_events, current_state

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIXES = (".yml", ".yaml")


@dataclass
class ArtifactRecord:
    """A loaded artifact: its id, parsed YAML document and source path."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None

    @property
    def metadata(self) -> dict[str, Any]:
        meta = self.data.get("metadata")
        return meta if isinstance(meta, dict) else {}

    @property
    def content(self) -> dict[str, Any]:
        content = self.data.get("content")
        return content if isinstance(content, dict) else {}

    @property
    def title(self) -> str:
        return str(self.metadata.get("title") or "Untitled")

    @property
    def events(self) -> list[ArtifactEvent]:
        return coerce_events(self.metadata.get("events"))

    @property
    def relationships(self) -> dict[str, Any]:
        rel = self.metadata.get("relationships")
        return rel if isinstance(rel, dict) else {}

    @property
    def blocked_by(self) -> list[str]:
        return [str(x) for x in self.relationships.get("blocked_by") or []]

    @property
    def blocks(self) -> list[str]:
        return [str(x) for x in self.relationships.get("blocks") or []]

    @property
    def state(self) -> str | None:
        return current_state(self.events)


class ArtifactStore(Protocol):
    """Read/append interface the orchestrators and analyzers depend on."""

    def get_artifact(self, artifact_id: str) -> ArtifactRecord:
        """Load one artifact. Raises ArtifactNotFoundError when unknown."""
        ...

    def append_event(self, artifact_id: str, event: ArtifactEvent) -> None:
        """Append an event; it must be visible to the next read."""
        ...

    def find_artifacts(self) -> list[ArtifactRecord]:
        """Return every known artifact, ordered by id."""
        ...

    def ids(self) -> list[str]:
        """Return every known artifact id without loading the documents."""
        ...


def artifact_id_from_path(path: Path) -> str | None:
    """Derive the artifact id from a file name, None if it does not look like one."""
    match = ARTIFACT_ID_PREFIX.match(path.stem)
    if not match:
        return None
    artifact_id = match.group(0)
    rest = path.stem[len(artifact_id):]
    # "A.1.2" or "A.1.2.slug"; reject "AB.1" and "A.1x"
    if rest and not rest.startswith("."):
        return None
    return artifact_id


def _id_sort_key(artifact_id: str) -> tuple:
    head, *segments = artifact_id.split(".")
    return (head, *(int(s) for s in segments))


class YamlArtifactStore:
    """Artifact store backed by YAML files under a directory tree."""

    def __init__(self, artifacts_dir: Path):
        self.artifacts_dir = Path(artifacts_dir)
        self._index: dict[str, Path] | None = None

    def clear_cache(self) -> None:
        """Forget the id -> path index so the next call rescans the tree."""
        self._index = None

    def _build_index(self) -> dict[str, Path]:
        if self._index is not None:
            return self._index

        index: dict[str, Path] = {}
        if self.artifacts_dir.is_dir():
            for path in sorted(self.artifacts_dir.rglob("*")):
                if not path.is_file() or path.suffix not in ARTIFACT_SUFFIXES:
                    continue
                artifact_id = artifact_id_from_path(path)
                if artifact_id is None:
                    continue
                if artifact_id in index:
                    logger.warning("Duplicate artifact id %s: %s and %s", artifact_id, index[artifact_id], path)
                    continue
                index[artifact_id] = path

        self._index = index
        return index

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ArtifactStoreError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ArtifactStoreError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict):
            raise ArtifactStoreError(f"Artifact file {path} must contain a mapping")
        return data

    def path_for(self, artifact_id: str) -> Path:
        path = self._build_index().get(artifact_id)
        if path is None:
            raise ArtifactNotFoundError(artifact_id)
        return path

    def exists(self, artifact_id: str) -> bool:
        return artifact_id in self._build_index()

    def ids(self) -> list[str]:
        return sorted(self._build_index(), key=_id_sort_key)

    def get_artifact(self, artifact_id: str) -> ArtifactRecord:
        path = self.path_for(artifact_id)
        return ArtifactRecord(id=artifact_id, data=self._read(path), path=path)

    def find_artifacts(self) -> list[ArtifactRecord]:
        return [self.get_artifact(artifact_id) for artifact_id in self.ids()]

    def append_event(self, artifact_id: str, event: ArtifactEvent) -> None:
        path = self.path_for(artifact_id)
        data = self._read(path)

        metadata = data.setdefault("metadata", {})
        if not isinstance(metadata, dict):
            raise ArtifactStoreError(f"metadata in {path} must be a mapping")
        events = metadata.get("events")
        if events is None:
            events = metadata["events"] = []
        if not isinstance(events, list):
            raise ArtifactStoreError(f"metadata.events in {path} must be a list")
        events.append(event.to_dict())

        try:
            path.write_text(
                yaml.safe_dump(data, sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
        except OSError as e:
            raise ArtifactStoreError(f"Cannot write {path}: {e}") from e
        logger.debug("Appended %s event to %s", event.event, artifact_id)
