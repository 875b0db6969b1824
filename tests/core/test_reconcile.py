"""Tests for merging remote issues with local annotations."""

from mindful_jira.core.reconcile import Reconciler, build_child_index, merge, tree_order
from mindful_jira.core.types import ORPHAN_SUMMARY, UNKNOWN_STATUS, Annotation
from mindful_jira.gateway.jira.fake import make_issue


def test_merge_attaches_annotations_to_remote_issues() -> None:
    """Remote issues carry their annotation, or an empty one."""
    issues = [make_issue("1"), make_issue("2")]
    annotations = {"1": Annotation(note="follow up", highlighted=True)}

    merged = merge(issues, annotations)

    assert list(merged) == ["1", "2"]
    assert merged["1"].note == "follow up"
    assert merged["1"].highlighted is True
    assert merged["2"].annotation == Annotation.empty()
    assert not merged["1"].orphaned


def test_merge_keeps_annotated_issue_missing_remotely_as_orphan() -> None:
    """An annotated issue that vanished remotely is kept as an orphan."""
    merged = merge([make_issue("1")], {"9": Annotation(note="keep me")})

    assert list(merged) == ["1", "9"]
    orphan = merged["9"]
    assert orphan.orphaned
    assert orphan.status == UNKNOWN_STATUS
    assert orphan.summary == ORPHAN_SUMMARY
    assert orphan.note == "keep me"


def test_merge_is_idempotent() -> None:
    """Merging the same inputs again, with the previous result as known, changes nothing."""
    issues = [make_issue("1"), make_issue("2", parent_id="1")]
    annotations = {
        "2": Annotation(note="n", highlighted=False),
        "7": Annotation(note="o", highlighted=True),
    }

    first = merge(issues, annotations)
    second = merge(issues, annotations, known=first)

    assert second == first


def test_merge_drops_issue_with_empty_annotation_missing_remotely() -> None:
    """Empty annotations never produce orphans."""
    merged = merge([], {"9": Annotation.empty()})

    assert merged == {}


def test_merge_orphan_reuses_previously_known_key_and_summary() -> None:
    """Orphans are labelled with the last known key and summary."""
    known = merge([make_issue("9", "Old work", key="AUTH-9")], {})

    merged = merge([], {"9": Annotation(highlighted=True)}, known=known)

    assert merged["9"].key == "AUTH-9"
    assert merged["9"].summary == "Old work"
    assert merged["9"].status == UNKNOWN_STATUS


def test_orphans_sorted_by_id_after_remote_issues() -> None:
    """Orphans follow the remote issues, ordered by id."""
    annotations = {"b": Annotation(note="x"), "a": Annotation(note="y")}

    merged = merge([make_issue("z")], annotations)

    assert list(merged) == ["z", "a", "b"]


def test_child_index_only_includes_present_parents() -> None:
    """Children of unknown parents are left out of the index."""
    merged = merge(
        [
            make_issue("1"),
            make_issue("2", parent_id="1"),
            make_issue("3", parent_id="1"),
            make_issue("4", parent_id="missing"),
        ],
        {},
    )

    assert build_child_index(merged.values()) == {"1": ("2", "3")}
    assert merged["1"].child_ids == ("2", "3")


def test_tree_order_nests_children_under_parents() -> None:
    """Children follow their parent with increased depth."""
    merged = merge(
        [
            make_issue("2", parent_id="1"),
            make_issue("3"),
            make_issue("1"),
        ],
        {},
    )

    layout = [(entry.id, depth) for entry, depth in tree_order(merged, ["2", "3", "1"])]

    assert layout == [("3", 0), ("1", 0), ("2", 1)]


def test_tree_order_child_of_unknown_parent_is_top_level() -> None:
    merged = merge([make_issue("2", parent_id="absent")], {})

    assert [(e.id, d) for e, d in tree_order(merged, ["2"])] == [("2", 0)]


def test_tree_order_emits_each_issue_once_with_parent_cycle() -> None:
    """A parent cycle does not lose or duplicate issues."""
    merged = merge(
        [make_issue("1", parent_id="2"), make_issue("2", parent_id="1")],
        {},
    )

    layout = [(entry.id, depth) for entry, depth in tree_order(merged, ["1", "2"])]

    assert layout == [("1", 0), ("2", 1)]


def test_tree_order_ignores_self_parent() -> None:
    merged = merge([make_issue("1", parent_id="1")], {})

    assert [(e.id, d) for e, d in tree_order(merged, ["1"])] == [("1", 0)]


class TestReconciler:
    """Tests for the stateful Reconciler."""

    def test_initial_annotations_become_orphans_until_remote_arrives(self) -> None:
        reconciler = Reconciler({"1": Annotation(note="n")})

        assert reconciler.get("1") is not None
        assert reconciler.get("1").orphaned  # type: ignore[union-attr]

        reconciler.apply_remote([make_issue("1")])

        assert not reconciler.get("1").orphaned  # type: ignore[union-attr]
        assert reconciler.get("1").note == "n"  # type: ignore[union-attr]

    def test_initial_empty_annotations_are_ignored(self) -> None:
        reconciler = Reconciler({"1": Annotation.empty()})

        assert reconciler.merged == {}

    def test_apply_remote_replaces_issue_set(self) -> None:
        """A refresh replaces the remote set wholesale."""
        reconciler = Reconciler()
        reconciler.apply_remote([make_issue("1"), make_issue("2")])

        reconciler.apply_remote([make_issue("2", "Renamed")])

        assert reconciler.ordered_ids == ["2"]
        assert reconciler.get("2").summary == "Renamed"  # type: ignore[union-attr]
        assert reconciler.remote_count == 1

    def test_apply_annotation_updates_merged_view(self) -> None:
        reconciler = Reconciler()
        reconciler.apply_remote([make_issue("1")])

        reconciler.apply_annotation("1", Annotation(highlighted=True))

        assert reconciler.get("1").highlighted  # type: ignore[union-attr]
        assert reconciler.annotation_for("1") == Annotation(highlighted=True)

    def test_clearing_annotation_of_orphan_removes_it(self) -> None:
        """Clearing the last annotation of an orphan drops the entry."""
        reconciler = Reconciler({"9": Annotation(note="gone")})

        reconciler.purge("9")

        assert reconciler.get("9") is None
        assert reconciler.annotation_for("9") == Annotation.empty()

    def test_orphan_keeps_last_known_summary_after_issue_disappears(self) -> None:
        reconciler = Reconciler({"1": Annotation(note="n")})
        reconciler.apply_remote([make_issue("1", "Login flow", key="AUTH-1")])

        reconciler.apply_remote([])

        orphan = reconciler.get("1")
        assert orphan is not None
        assert orphan.orphaned
        assert orphan.key == "AUTH-1"
        assert orphan.summary == "Login flow"
