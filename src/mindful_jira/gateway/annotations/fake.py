"""Fake AnnotationStore implementation for testing."""

from mindful_jira.core.errors import StorageFailure
from mindful_jira.core.types import Annotation
from mindful_jira.gateway.annotations.abc import AnnotationStore


class FakeAnnotationStore(AnnotationStore):
    """In-memory annotation store.

    Set `fail_writes` to simulate a disk that rejects writes.
    """

    def __init__(
        self,
        annotations: dict[str, Annotation] | None = None,
        *,
        fail_writes: bool = False,
    ) -> None:
        self._annotations = {
            issue_id: annotation
            for issue_id, annotation in (annotations or {}).items()
            if not annotation.is_empty
        }
        self.fail_writes = fail_writes
        self._put_calls: list[tuple[str, Annotation]] = []

    def get(self, issue_id: str) -> Annotation:
        return self._annotations.get(issue_id, Annotation.empty())

    def put(self, issue_id: str, annotation: Annotation) -> None:
        self._put_calls.append((issue_id, annotation))
        if self.fail_writes:
            raise StorageFailure(f"Simulated write failure for {issue_id}")
        if annotation.is_empty:
            self._annotations.pop(issue_id, None)
        else:
            self._annotations[issue_id] = annotation

    def load_all(self) -> dict[str, Annotation]:
        return dict(self._annotations)

    @property
    def put_calls(self) -> list[tuple[str, Annotation]]:
        """Every put() call in order, including failed ones.

        This property is for test assertions only.
        """
        return self._put_calls
