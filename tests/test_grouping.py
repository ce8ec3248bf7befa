import itertools

import pytest

from gitlab_app.analytics.aggregations.grouping import (
    Branch,
    Leaf,
    get_group_metadata,
    group_issues,
    group_key,
    groups_to_dataframe,
    iter_groups,
    order_categories,
    tree_to_dict,
)
from gitlab_app.core.errors import InvalidInputError
from gitlab_app.core.models import EpicModel, IssueModel, IterationModel, ParentModel, UserModel


def _sample_issues():
    s1 = IterationModel(title="Sprint 1")
    s2 = IterationModel(title="Sprint 2")
    alice = UserModel(id=1, name="Alice")
    bob = UserModel(id=2, name="Bob")
    return [
        IssueModel(
            id=1, iid=1, title="a", state="opened", iteration=s1, assignees=[alice],
            labels=["Status::Doing"], time_estimate_seconds=7200, time_spent_seconds=3600,
            epic=EpicModel(title="Payments"),
        ),
        IssueModel(
            id=2, iid=2, title="b", state="closed", iteration=s1, assignees=[bob],
            time_estimate_seconds=3600, time_spent_seconds=5400, parent=ParentModel(title=None, iid=42),
        ),
        IssueModel(
            id=3, iid=3, title="c", state="opened", iteration=s2, assignees=[alice, bob],
            time_estimate_seconds=1800, epic=EpicModel(title=None),
        ),
        IssueModel(id=4, iid=4, title="d", state="opened", time_spent_seconds=900),
    ]


def test_order_categories_is_canonical():
    assert order_categories(["assignee", "iteration"]) == ("iteration", "assignee")
    assert order_categories("epic") == ("epic",)
    assert order_categories(["bogus"]) == ()
    assert order_categories(None) == ()


def test_selection_order_does_not_change_tree():
    issues = _sample_issues()
    expected = group_issues(["iteration", "status", "epic", "assignee"], issues)
    for perm in itertools.permutations(["assignee", "epic", "status", "iteration"]):
        result = group_issues(list(perm), issues)
        assert result.hierarchy == expected.hierarchy
        assert tree_to_dict(result.data) == tree_to_dict(expected.data)


def test_no_categories_returns_flat_list():
    issues = _sample_issues()
    for categories in ([], None, ["unknown"]):
        result = group_issues(categories, issues)
        assert result.level == 0
        assert result.hierarchy == ()
        assert [i.iid for i in result.data] == [1, 2, 3, 4]


def test_two_level_tree_keys_in_first_seen_order():
    result = group_issues(["assignee", "iteration"], _sample_issues())
    assert result.level == 2
    assert isinstance(result.data, Branch)
    assert list(result.data.children) == ["Sprint 1", "Sprint 2", "No Iteration"]
    sprint1 = result.data.children["Sprint 1"]
    assert list(sprint1.children) == ["Alice", "Bob"]
    assert isinstance(sprint1.children["Alice"], Leaf)
    assert [i.iid for i in sprint1.children["Alice"].issues] == [1]
    assert list(result.data.children["No Iteration"].children) == ["Unassigned"]


def test_first_assignee_decides_group():
    result = group_issues(["assignee"], _sample_issues())
    assert [i.iid for i in result.data.children["Alice"].issues] == [1, 3]


def test_epic_and_parent_keys():
    issues = _sample_issues()
    assert group_key(issues[0], "epic") == "Payments"
    assert group_key(issues[1], "epic") == "Parent: #42"
    assert group_key(issues[2], "epic") == "Epic: No Title"
    assert group_key(issues[3], "epic") == "No Epic/Parent"


def test_status_key_raw_state_or_resolved_name():
    issue = _sample_issues()[0]
    assert group_key(issue, "status") == "opened"
    assert group_key(issue, "status", resolve_status=True) == "Doing"
    result = group_issues(["status"], _sample_issues(), resolve_status=True)
    assert list(result.data.children) == ["Doing", "Closed", "Opened"]


def test_metadata_sums_and_remaining_clamp():
    issues = _sample_issues()
    meta = get_group_metadata(issues)
    assert meta.issue_count == 4
    assert meta.total_estimate_hours == pytest.approx(3.5)
    assert meta.total_spent_hours == pytest.approx(2.75)
    assert meta.remaining_hours == pytest.approx(0.75)

    bob_leaf = group_issues(["assignee"], issues).data.children["Bob"]
    assert get_group_metadata(bob_leaf).remaining_hours == 0


def test_branch_metadata_is_additive():
    issues = _sample_issues()
    root = group_issues(["iteration", "assignee"], issues).data
    total = get_group_metadata(root)
    children = [get_group_metadata(child) for child in root.children.values()]
    assert total.issue_count == sum(m.issue_count for m in children) == 4
    assert total.total_estimate_hours == pytest.approx(sum(m.total_estimate_hours for m in children))
    assert total.total_spent_hours == pytest.approx(sum(m.total_spent_hours for m in children))


def test_iter_groups_walks_depth_first():
    root = group_issues(["iteration", "assignee"], _sample_issues()).data
    paths = [path for path, _, _ in iter_groups(root)]
    assert paths[:3] == [("Sprint 1",), ("Sprint 1", "Alice"), ("Sprint 1", "Bob")]
    assert ("No Iteration", "Unassigned") in paths


def test_tree_to_dict_tags_nodes():
    tree = tree_to_dict(group_issues(["iteration"], _sample_issues()).data)
    assert tree["type"] == "branch"
    assert tree["metadata"]["issue_count"] == 4
    leaf = tree["children"]["Sprint 2"]
    assert leaf["type"] == "leaf"
    assert leaf["issues"] == [{"id": 3, "iid": 3, "title": "c", "state": "opened"}]


def test_groups_to_dataframe():
    df = groups_to_dataframe(group_issues(["iteration", "assignee"], _sample_issues()))
    assert list(df.columns[:2]) == ["iteration", "assignee"]
    assert len(df) == 4
    assert df["issue_count"].sum() == 4

    flat = groups_to_dataframe(group_issues([], _sample_issues()))
    assert len(flat) == 1
    assert flat.loc[0, "issue_count"] == 4


def test_raw_payloads_are_accepted():
    result = group_issues(["assignee"], [{"id": 9, "iid": 9, "title": "raw", "state": "opened"}])
    assert list(result.data.children) == ["Unassigned"]


def test_invalid_issue_collection():
    with pytest.raises(InvalidInputError):
        group_issues(["status"], None)
    with pytest.raises(InvalidInputError):
        group_issues(["status"], [1, 2, 3])


def test_parent_without_title_or_iid_has_no_epic_group():
    orphan = IssueModel(id=5, iid=5, title="e", state="opened", parent=ParentModel(title=None, iid=None))
    assert group_key(orphan, "epic") == "No Epic/Parent"
    titled = IssueModel(id=6, iid=6, title="f", state="opened", parent=ParentModel(title="Checkout", iid=3))
    assert group_key(titled, "epic") == "Checkout"


def test_group_key_accepts_raw_payloads():
    raw = {"id": 1, "iid": 1, "title": "raw", "state": "opened", "labels": ["Status::Review"], "epic": {"title": "Auth"}}
    assert group_key(raw, "status") == "opened"
    assert group_key(raw, "status", resolve_status=True) == "Review"
    assert group_key(raw, "epic") == "Auth"
    assert group_key(raw, "assignee") == "Unassigned"
