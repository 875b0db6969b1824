"""TOML-file annotation store.

Layout of annotations.toml:
  [annotations."10042"]
  note = "waiting on design review"
  highlighted = true
"""

import logging
import threading
import tomllib
from pathlib import Path

import tomli_w

from mindful_jira.config import write_atomically
from mindful_jira.core.errors import StorageFailure
from mindful_jira.core.types import Annotation
from mindful_jira.gateway.annotations.abc import AnnotationStore

logger = logging.getLogger(__name__)


class TomlAnnotationStore(AnnotationStore):
    """Production store keeping every annotation in a single TOML file.

    Each `put` rewrites the file through a temporary file that is fsynced
    and atomically renamed over the original.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._annotations: dict[str, Annotation] = {}

    @classmethod
    def open(cls, path: Path) -> "TomlAnnotationStore":
        """Open the store, creating its directory if needed.

        Args:
            path: Location of annotations.toml

        Returns:
            Store with existing annotations loaded

        Raises:
            StorageFailure: If the file cannot be read or the directory created
        """
        store = cls(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            store._annotations = _read_annotations(path)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise StorageFailure(f"Cannot open annotation store {path}: {e}") from e
        return store

    @property
    def path(self) -> Path:
        return self._path

    def get(self, issue_id: str) -> Annotation:
        with self._lock:
            return self._annotations.get(issue_id, Annotation.empty())

    def put(self, issue_id: str, annotation: Annotation) -> None:
        with self._lock:
            updated = dict(self._annotations)
            if annotation.is_empty:
                updated.pop(issue_id, None)
            else:
                updated[issue_id] = annotation
            try:
                write_atomically(self._path, _serialize(updated))
            except OSError as e:
                raise StorageFailure(f"Failed to save annotation for {issue_id}: {e}") from e
            self._annotations = updated
        logger.debug("Saved annotation for %s (%d stored)", issue_id, len(updated))

    def load_all(self) -> dict[str, Annotation]:
        with self._lock:
            return dict(self._annotations)


def _read_annotations(path: Path) -> dict[str, Annotation]:
    if not path.exists():
        return {}
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    result: dict[str, Annotation] = {}
    for issue_id, raw in data.get("annotations", {}).items():
        if not isinstance(raw, dict):
            continue
        annotation = Annotation(
            note=str(raw.get("note", "")),
            highlighted=bool(raw.get("highlighted", False)),
        )
        if not annotation.is_empty:
            result[str(issue_id)] = annotation
    return result


def _serialize(annotations: dict[str, Annotation]) -> str:
    data = {
        "annotations": {
            issue_id: {"note": annotation.note, "highlighted": annotation.highlighted}
            for issue_id, annotation in sorted(annotations.items())
        }
    }
    return tomli_w.dumps(data)
