"""Local annotation store abstraction.

Annotations are keyed by the stable issue id and must be durable before
`put` returns.
"""

from abc import ABC, abstractmethod

from mindful_jira.core.types import Annotation


class AnnotationStore(ABC):
    """Abstract interface for persisting per-issue annotations."""

    @abstractmethod
    def get(self, issue_id: str) -> Annotation:
        """Get the annotation for an issue.

        Args:
            issue_id: Stable issue identifier

        Returns:
            The stored annotation, or an empty one if none exists
        """
        ...

    @abstractmethod
    def put(self, issue_id: str, annotation: Annotation) -> None:
        """Durably store an annotation. An empty annotation removes the entry.

        Args:
            issue_id: Stable issue identifier
            annotation: Annotation to store

        Raises:
            StorageFailure: If the write could not be made durable
        """
        ...

    @abstractmethod
    def load_all(self) -> dict[str, Annotation]:
        """Load every non-empty annotation keyed by issue id."""
        ...

    def annotated_ids(self) -> list[str]:
        """List ids holding a non-empty annotation."""
        return sorted(self.load_all())
