from abtest.app.diff.structural import diff_snapshots
from abtest.app.schemas.snapshot import Snapshot
from abtest.app.schemas.changes import (
    AddedChange,
    ChangeType,
    ContentChange,
    EnabledChange,
    RemovedChange,
)
from abtest.tests.fakes import make_snapshot, sample_order, sample_prompts


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _single(identifier: str, content: str, enabled: bool = True):
    return make_snapshot(
        prompts=[{"identifier": identifier, "name": identifier, "content": content}],
        order=[{"identifier": identifier, "enabled": enabled}],
    )


def _swap(change):
    """
    Expected counterpart of `change` when the inputs are reversed.
    """
    if isinstance(change, AddedChange):
        return ("removed", change.identifier)
    if isinstance(change, RemovedChange):
        return ("added", change.identifier)
    if isinstance(change, ContentChange):
        return ("content", change.identifier, change.content_b, change.content_a)
    return ("enabled", change.identifier, change.enabled_b, change.enabled_a)


def _key(change):
    if isinstance(change, AddedChange):
        return ("added", change.identifier)
    if isinstance(change, RemovedChange):
        return ("removed", change.identifier)
    if isinstance(change, ContentChange):
        return ("content", change.identifier, change.content_a, change.content_b)
    return ("enabled", change.identifier, change.enabled_a, change.enabled_b)


# ----------------------------------------------------------------------
# Identity and missing inputs
# ----------------------------------------------------------------------

def test_snapshot_compared_with_itself_has_no_differences():
    snapshot = make_snapshot(sample_prompts(), sample_order()[0]["order"])

    assert diff_snapshots(snapshot, snapshot) == []


def test_missing_snapshot_yields_no_differences():
    snapshot = _single("p1", "Hello")

    assert diff_snapshots(None, snapshot) == []
    assert diff_snapshots(snapshot, None) == []
    assert diff_snapshots(None, None) == []


# ----------------------------------------------------------------------
# Concrete scenarios
# ----------------------------------------------------------------------

def test_content_change_is_reported_with_both_bodies():
    a = _single("p1", "Hello")
    b = _single("p1", "Hi")

    changes = diff_snapshots(a, b)

    assert len(changes) == 1
    change = changes[0]
    assert change.type == ChangeType.CONTENT_CHANGED
    assert change.identifier == "p1"
    assert change.content_a == "Hello"
    assert change.content_b == "Hi"


def test_removed_prompt_becomes_added_when_reversed():
    a = make_snapshot(
        prompts=[
            {"identifier": "p1", "name": "One", "content": "x"},
            {"identifier": "p2", "name": "Two", "content": "y"},
        ],
        order=[{"identifier": "p1", "enabled": True}],
    )
    b = make_snapshot(
        prompts=[{"identifier": "p1", "name": "One", "content": "x"}],
        order=[{"identifier": "p1", "enabled": True}],
    )

    forward = diff_snapshots(a, b)
    backward = diff_snapshots(b, a)

    assert forward == [RemovedChange(identifier="p2", name="Two")]
    assert backward == [AddedChange(identifier="p2", name="Two")]


def test_enabled_flip_without_content_change_emits_only_enabled_change():
    a = _single("p3", "same text", enabled=True)
    b = _single("p3", "same text", enabled=False)

    changes = diff_snapshots(a, b)

    assert changes == [
        EnabledChange(
            identifier="p3",
            name="p3",
            enabled_a=True,
            enabled_b=False,
        )
    ]


# ----------------------------------------------------------------------
# Enabled resolution
# ----------------------------------------------------------------------

def test_prompt_missing_from_all_order_lists_differs_from_defined_flag():
    a = make_snapshot(
        prompts=[{"identifier": "p1", "content": "x"}],
        order=[],
    )
    b = _single("p1", "x", enabled=False)

    changes = diff_snapshots(a, b)

    assert len(changes) == 1
    assert changes[0].type == ChangeType.ENABLED_CHANGED
    assert changes[0].enabled_a is None
    assert changes[0].enabled_b is False


def test_first_order_list_containing_identifier_decides_enabled():
    a = Snapshot(
        prompts=[{"identifier": "p1", "name": "p1", "content": "x"}],
        prompt_order=[
            {"character_id": 1, "order": [{"identifier": "p1", "enabled": True}]},
            {"character_id": 2, "order": [{"identifier": "p1", "enabled": False}]},
        ],
    )
    b = _single("p1", "x", enabled=True)

    assert a.resolve_enabled("p1") is True
    assert diff_snapshots(a, b) == []


def test_content_and_enabled_changes_can_both_apply_to_one_prompt():
    a = _single("p1", "old", enabled=True)
    b = _single("p1", "new", enabled=False)

    types = [c.type for c in diff_snapshots(a, b)]

    assert types == [ChangeType.CONTENT_CHANGED, ChangeType.ENABLED_CHANGED]


def test_order_is_a_keys_first_then_additions():
    a = make_snapshot(
        prompts=[
            {"identifier": "gone", "content": "1"},
            {"identifier": "edited", "content": "2"},
        ],
        order=[
            {"identifier": "gone", "enabled": True},
            {"identifier": "edited", "enabled": True},
        ],
    )
    b = make_snapshot(
        prompts=[
            {"identifier": "new", "content": "3"},
            {"identifier": "edited", "content": "2!"},
        ],
        order=[
            {"identifier": "new", "enabled": True},
            {"identifier": "edited", "enabled": True},
        ],
    )

    changes = diff_snapshots(a, b)

    assert [(c.type, c.identifier) for c in changes] == [
        (ChangeType.REMOVED, "gone"),
        (ChangeType.CONTENT_CHANGED, "edited"),
        (ChangeType.ADDED, "new"),
    ]


def test_content_comparison_is_exact():
    a = _single("p1", "Hello ")
    b = _single("p1", "Hello")

    assert len(diff_snapshots(a, b)) == 1


def test_unresolved_order_references_do_not_error():
    a = make_snapshot(
        prompts=[{"identifier": "p1", "content": "x"}],
        order=[
            {"identifier": "ghost", "enabled": True},
            {"identifier": "p1", "enabled": True},
        ],
    )

    assert diff_snapshots(a, a) == []


# ----------------------------------------------------------------------
# Inverse consistency
# ----------------------------------------------------------------------

def test_reversed_diff_is_the_inverse():
    a = make_snapshot(
        prompts=[
            {"identifier": "keep", "name": "Keep", "content": "same"},
            {"identifier": "edit", "name": "Edit", "content": "before"},
            {"identifier": "drop", "name": "Drop", "content": "bye"},
            {"identifier": "flip", "name": "Flip", "content": "f"},
        ],
        order=[
            {"identifier": "keep", "enabled": True},
            {"identifier": "edit", "enabled": True},
            {"identifier": "flip", "enabled": True},
        ],
    )
    b = make_snapshot(
        prompts=[
            {"identifier": "keep", "name": "Keep", "content": "same"},
            {"identifier": "edit", "name": "Edit", "content": "after"},
            {"identifier": "flip", "name": "Flip", "content": "f"},
            {"identifier": "add", "name": "Add", "content": "hi"},
        ],
        order=[
            {"identifier": "keep", "enabled": True},
            {"identifier": "edit", "enabled": True},
            {"identifier": "flip", "enabled": False},
            {"identifier": "add", "enabled": True},
        ],
    )

    forward = diff_snapshots(a, b)
    backward = diff_snapshots(b, a)

    assert sorted(_swap(c) for c in forward) == sorted(_key(c) for c in backward)
    assert len(forward) == 4
