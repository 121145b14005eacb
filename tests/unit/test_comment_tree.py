"""Unit tests for the comment tree engine."""

import pytest

from taskboard.core import comment_tree
from taskboard.core.errors import MalformedInputError
from taskboard.domain.comment import CommentForest, CommentNode


def _node(node_id: str, text: str = "hello") -> CommentNode:
    return CommentNode(id=node_id, text=text, author="Alex", created_at="2024-01-15T10:00:00Z")


def _shape(nested: list[dict]) -> list[dict]:
    """Reduce nested comments to ids and replies."""
    return [{"id": item["id"], "replies": _shape(item["replies"])} for item in nested]


def _ids(forest: CommentForest) -> set[str]:
    ids = set(forest.nodes)
    for node in forest.nodes.values():
        ids.update(node.children)
    return ids | set(forest.roots)


@pytest.fixture
def thread() -> CommentForest:
    """Root 1 with replies 2 (which has reply 3) and 4; root 5 on its own."""
    return comment_tree.from_nested(
        [
            {
                "id": "1",
                "text": "root",
                "replies": [
                    {"id": "2", "text": "reply", "replies": [{"id": "3", "text": "nested", "replies": []}]},
                    {"id": "4", "text": "reply", "replies": []},
                ],
            },
            {"id": "5", "text": "second root", "replies": []},
        ]
    )


@pytest.mark.unit
class TestInsertReply:
    """Tests for insert_reply."""

    def test_reply_to_single_root(self):
        """A reply to the only root nests under it, and the total counts both."""
        forest = comment_tree.from_nested([{"id": 1, "replies": []}])

        result = comment_tree.insert_reply(forest, "1", _node("2", text="hi"))

        assert result.found is True
        assert _shape(comment_tree.to_nested(result.forest)) == [{"id": "1", "replies": [{"id": "2", "replies": []}]}]
        assert comment_tree.count_all(result.forest) == 2

        after_delete = comment_tree.delete_node(result.forest, "1")
        assert comment_tree.to_nested(after_delete.forest) == []

    def test_root_comment_appended_last(self, thread):
        """Without a parent the comment becomes the last root."""
        result = comment_tree.insert_reply(thread, None, _node("6"))

        assert result.forest.roots == ["1", "5", "6"]
        assert result.forest.nodes["6"].parent_id is None
        assert result.affected_ids == ("6",)

    def test_reply_appended_after_existing_siblings(self, thread):
        """A new reply goes after earlier replies of the same parent."""
        result = comment_tree.insert_reply(thread, "1", _node("6"))

        assert result.forest.nodes["1"].children == ["2", "4", "6"]
        assert result.forest.nodes["6"].parent_id == "1"

    def test_reply_to_deep_descendant(self, thread):
        """Replies can nest at any depth."""
        result = comment_tree.insert_reply(thread, "3", _node("6"))

        nested = _shape(comment_tree.to_nested(result.forest))
        assert nested[0]["replies"][0]["replies"][0] == {"id": "3", "replies": [{"id": "6", "replies": []}]}

    def test_missing_parent_is_reported_and_leaves_forest_unchanged(self, thread):
        """Replying to an unknown comment returns found=False and an equal forest."""
        before = thread.model_copy(deep=True)

        result = comment_tree.insert_reply(thread, "404", _node("6"))

        assert result.found is False
        assert result.forest == before
        assert thread == before

    def test_input_forest_is_not_mutated(self, thread):
        """The returned forest is a new value."""
        before = thread.model_copy(deep=True)

        comment_tree.insert_reply(thread, "1", _node("6"))

        assert thread == before

    def test_count_matches_successful_inserts(self):
        """Building only through insert_reply, the total equals the inserts that found their parent."""
        forest = CommentForest()
        parents = [None, "c0", "c0", "c1", "missing", None, "c3", "nope", "c5"]
        successes = 0
        for index, parent in enumerate(parents):
            result = comment_tree.insert_reply(forest, parent, _node(f"c{index}"))
            forest = result.forest
            successes += result.found

        assert comment_tree.count_all(forest) == successes == 7

    def test_duplicate_id_is_malformed(self, thread):
        """A comment whose id already exists cannot be inserted."""
        with pytest.raises(MalformedInputError, match="already exists"):
            comment_tree.insert_reply(thread, None, _node("3"))


@pytest.mark.unit
class TestDeleteNode:
    """Tests for delete_node."""

    def test_delete_removes_whole_subtree(self, thread):
        """None of the deleted comment's descendants remain anywhere."""
        result = comment_tree.delete_node(thread, "1")

        assert result.found is True
        assert set(result.affected_ids) == {"1", "2", "3", "4"}
        assert _ids(result.forest) == {"5"}
        assert comment_tree.count_all(result.forest) == 1

    def test_delete_nested_reply_keeps_siblings(self, thread):
        """Deleting a reply only detaches it from its parent."""
        result = comment_tree.delete_node(thread, "2")

        assert result.forest.nodes["1"].children == ["4"]
        assert "3" not in result.forest.nodes
        assert result.affected_ids == ("2", "3")

    def test_delete_missing_is_reported_and_leaves_forest_unchanged(self, thread):
        """Deleting an unknown id returns found=False and an equal forest."""
        before = thread.model_copy(deep=True)

        result = comment_tree.delete_node(thread, "404")

        assert result.found is False
        assert result.forest == before
        assert result.affected_ids == ()

    def test_delete_from_empty_forest(self):
        """An empty forest stays empty."""
        result = comment_tree.delete_node(CommentForest(), "1")

        assert result.found is False
        assert comment_tree.count_all(result.forest) == 0


@pytest.mark.unit
class TestCountAll:
    """Tests for count_all."""

    def test_counts_every_depth(self, thread):
        """Roots and all descendants are counted."""
        assert comment_tree.count_all(thread) == 5

    def test_empty_forest(self):
        """No comments counts zero."""
        assert comment_tree.count_all(CommentForest()) == 0


@pytest.mark.unit
class TestMalformedForests:
    """Structurally invalid forests raise MalformedInputError."""

    def test_root_referencing_missing_node(self):
        """A root id without a node is rejected."""
        forest = CommentForest(nodes={}, roots=["ghost"])

        with pytest.raises(MalformedInputError, match="missing"):
            comment_tree.count_all(forest)

    def test_node_owned_twice(self):
        """A node listed under two parents is rejected."""
        forest = CommentForest(
            nodes={
                "a": CommentNode(id="a", text="", author="", created_at="", children=["c"]),
                "b": CommentNode(id="b", text="", author="", created_at="", children=["c"]),
                "c": CommentNode(id="c", text="", author="", created_at="", parent_id="a"),
            },
            roots=["a", "b"],
        )

        with pytest.raises(MalformedInputError, match="more than once"):
            comment_tree.validate_forest(forest)

    def test_unreachable_node(self):
        """A node no root leads to is rejected."""
        forest = CommentForest(nodes={"a": _node("a")}, roots=[])

        with pytest.raises(MalformedInputError, match="not reachable"):
            comment_tree.insert_reply(forest, None, _node("b"))

    def test_wrong_parent_pointer(self):
        """A child whose parent_id disagrees with its owner is rejected."""
        forest = CommentForest(
            nodes={
                "a": CommentNode(id="a", text="", author="", created_at="", children=["b"]),
                "b": CommentNode(id="b", text="", author="", created_at="", parent_id="zzz"),
            },
            roots=["a"],
        )

        with pytest.raises(MalformedInputError, match="claims parent"):
            comment_tree.delete_node(forest, "b")

    def test_nested_item_without_id(self):
        """Nested input must carry an id on every comment."""
        with pytest.raises(MalformedInputError, match="without an id"):
            comment_tree.from_nested([{"id": "1", "replies": [{"text": "no id"}]}])

    def test_nested_duplicate_ids(self):
        """Nested input must not repeat ids."""
        with pytest.raises(MalformedInputError, match="Duplicate"):
            comment_tree.from_nested([{"id": "1"}, {"id": 1}])


@pytest.mark.unit
class TestFromRecords:
    """Tests for building a forest from flat stored records."""

    def test_records_build_nested_forest_in_creation_order(self):
        """Children follow their parents and siblings follow created_at."""
        records = [
            {"id": "12", "uid": "r2", "parent_comment": "r1", "text": "b", "created_at": "2024-01-02T00:00:00Z"},
            {"id": "10", "uid": "r1", "parent_comment": None, "text": "a", "created_at": "2024-01-01T00:00:00Z"},
            {"id": "11", "uid": "r0", "parent_comment": "", "text": "z", "created_at": "2024-01-01T12:00:00Z"},
            {"id": "13", "uid": "r3", "parent_comment": "r1", "text": "c", "created_at": "2024-01-03T00:00:00Z"},
        ]

        forest = comment_tree.from_records(records)

        assert forest.roots == ["r1", "r0"]
        assert forest.nodes["r1"].children == ["r2", "r3"]

    def test_orphan_is_shown_as_root(self):
        """A record whose parent is gone is not hidden."""
        records = [{"id": "1", "uid": "child", "parent_comment": "deleted", "created_at": "2024-01-01T00:00:00Z"}]

        forest = comment_tree.from_records(records)

        assert forest.roots == ["child"]
        assert forest.nodes["child"].parent_id is None

    def test_record_without_uid_is_malformed(self):
        """Every stored comment needs a uid."""
        with pytest.raises(MalformedInputError):
            comment_tree.from_records([{"id": "1", "text": "x"}])


@pytest.mark.unit
def test_new_comment_generates_unique_ids():
    """Client-generated ids never collide between calls."""
    first = comment_tree.new_comment(text="a", author="Alex")
    second = comment_tree.new_comment(text="a", author="Alex")

    assert first.id != second.id
    assert first.created_at.endswith("Z")
