"""
Tests for the Group Store

Tests for group discovery under both announcement policies, per-group
timelines, selection and the group label derivation.
"""

import pytest

from groupchat import (
    ChatLine,
    Group,
    GroupListPolicy,
    GroupNotFoundError,
    GroupStore,
    group_initials,
)


class TestGroupStoreBasics:
    """Basic tests for GroupStore state."""

    def test_store_starts_empty(self):
        """Test that a new store has no groups, lines or selection."""
        store = GroupStore()
        assert store.groups == []
        assert store.selected_group is None
        assert store.notices == []
        assert store.policy is GroupListPolicy.APPEND

    def test_policy_can_be_given_as_string(self):
        """Test policy coercion from its value."""
        store = GroupStore(policy="replace")
        assert store.policy is GroupListPolicy.REPLACE

    def test_group_key_equals_name(self):
        """Test that groups are keyed by name."""
        group = Group("Dev Team")
        assert group.key == "Dev Team"
        assert group.initials == "DT"


class TestApplyGroupListAppend:
    """Tests for the append-only announcement policy."""

    def test_groups_keep_announced_order(self):
        """Test that groups are stored in discovery order."""
        store = GroupStore()
        assert store.apply_group_list(["General", "Dev Team", "Ops"]) is True
        assert store.group_names == ["General", "Dev Team", "Ops"]

    def test_duplicates_are_ignored(self):
        """Test that no key repeats within or across announcements."""
        store = GroupStore()
        store.apply_group_list(["A", "B", "A"])
        store.apply_group_list(["B", "C", "A"])
        assert store.group_names == ["A", "B", "C"]

    def test_first_seen_order_is_preserved(self):
        """Test that later announcements do not reorder groups."""
        store = GroupStore()
        sequences = [["x", "y"], ["z", "y", "x"], ["w"], ["y", "w", "v"]]
        for names in sequences:
            store.apply_group_list(names)
        assert store.group_names == ["x", "y", "z", "w", "v"]

    def test_omitted_groups_are_not_removed(self):
        """Test that append-only never drops groups."""
        store = GroupStore()
        store.apply_group_list(["A", "B"])
        assert store.apply_group_list(["B"]) is False
        assert store.group_names == ["A", "B"]

    def test_reannounce_keeps_history(self):
        """Test that re-announcing a group keeps its messages."""
        store = GroupStore()
        store.apply_group_list(["General"])
        store.record_message("General", "[General] a: one")
        store.apply_group_list(["General"])
        assert [line.text for line in store.messages_for("General")] == [
            "[General] a: one"
        ]

    def test_unchanged_announcement_reports_no_change(self):
        """Test the change flag for repeated announcements."""
        store = GroupStore()
        store.apply_group_list(["A"])
        assert store.apply_group_list(["A"]) is False


class TestApplyGroupListReplace:
    """Tests for the full-replace announcement policy."""

    def test_known_set_becomes_announced_set(self):
        """Test that groups missing from an announcement are dropped."""
        store = GroupStore(GroupListPolicy.REPLACE)
        store.apply_group_list(["A", "B", "C"])
        assert store.apply_group_list(["C", "D"]) is True
        assert store.group_names == ["C", "D"]

    def test_replace_deduplicates(self):
        """Test that duplicate names are still collapsed."""
        store = GroupStore(GroupListPolicy.REPLACE)
        store.apply_group_list(["A", "A", "B"])
        assert store.group_names == ["A", "B"]

    def test_history_survives_drop_and_reannounce(self):
        """Test that a dropped group's history returns with it."""
        store = GroupStore(GroupListPolicy.REPLACE)
        store.apply_group_list(["A", "B"])
        store.record_message("A", "[A] x: kept")
        store.apply_group_list(["B"])
        assert not store.has_group("A")
        store.apply_group_list(["A", "B"])
        assert [line.text for line in store.messages_for("A")] == [
            "[A] x: kept"
        ]

    def test_dropping_selected_group_clears_selection(self):
        """Test that the selection always references a known group."""
        store = GroupStore(GroupListPolicy.REPLACE)
        store.apply_group_list(["A", "B"])
        store.select("A")
        store.apply_group_list(["B"])
        assert store.selected_group is None

    def test_selection_kept_when_still_announced(self):
        """Test that a re-announced selection survives."""
        store = GroupStore(GroupListPolicy.REPLACE)
        store.apply_group_list(["A", "B"])
        store.select("B")
        store.apply_group_list(["B", "C"])
        assert store.selected_group == Group("B")


class TestRecordMessage:
    """Tests for per-group timelines."""

    def test_record_then_read(self):
        """Test that a recorded line is returned last for its group."""
        store = GroupStore()
        store.record_message("General", "[General] a: one")
        line = store.record_message("General", "[General] b: two")
        lines = store.messages_for("General")
        assert lines[-1] is line
        assert [l.text for l in lines] == [
            "[General] a: one",
            "[General] b: two",
        ]

    def test_lines_carry_their_group_key(self):
        """Test that every stored line belongs to its timeline."""
        store = GroupStore()
        store.record_message("A", "[A] x: 1")
        store.record_message("B", "[B] y: 2")
        store.record_message("A", "[A] z: 3")
        for key in ("A", "B"):
            assert all(line.group_key == key for line in store.messages_for(key))

    def test_unknown_group_is_created(self):
        """Test that messages may arrive before the group is announced."""
        store = GroupStore()
        store.apply_group_list(["A"])
        store.record_message("Late", "[Late] x: hi")
        assert store.group_names == ["A", "Late"]

    def test_empty_group_key_is_ignored(self):
        """Test that an empty key stores nothing."""
        store = GroupStore()
        assert store.record_message("", "text") is None
        assert store.groups == []

    def test_messages_for_unknown_group_is_empty(self):
        """Test that reading an unknown group never fails."""
        store = GroupStore()
        assert store.messages_for("nope") == []
        assert store.messages_for(None) == []

    def test_messages_for_returns_copy(self):
        """Test that callers cannot mutate the stored timeline."""
        store = GroupStore()
        store.record_message("A", "[A] x: 1")
        store.messages_for("A").clear()
        assert len(store.messages_for("A")) == 1

    def test_system_flag_is_kept(self):
        """Test that group-scoped system lines are marked."""
        store = GroupStore()
        line = store.record_message("A", "[System]: oops", is_system=True)
        assert line.is_system is True

    def test_notices_are_separate_from_groups(self):
        """Test that cross-cutting notices do not create groups."""
        store = GroupStore()
        notice = store.record_notice("Connected to server.")
        assert notice.text == "[System]: Connected to server."
        assert notice.group_key is None
        assert notice.is_system is True
        assert store.notices == [notice]
        assert store.groups == []

    def test_append_routes_prebuilt_lines(self):
        """Test that append files lines by their group key."""
        store = GroupStore()
        line = store.append(ChatLine(group_key="Ops", text="[Ops] x: 1"))
        notice = store.append(ChatLine.notice("Error", group_key="Ops"))
        global_notice = store.append(ChatLine.notice("Connected to server."))

        assert store.group_names == ["Ops"]
        assert store.messages_for("Ops") == [line, notice]
        assert store.notices == [global_notice]


class TestSelection:
    """Tests for selecting groups."""

    def test_select_known_group(self):
        """Test selecting an announced group."""
        store = GroupStore()
        store.apply_group_list(["A", "B"])
        group = store.select("B")
        assert group.name == "B"
        assert store.selected_group == group

    def test_select_unknown_group_fails(self):
        """Test that selecting an unknown group raises."""
        store = GroupStore()
        store.apply_group_list(["A"])
        with pytest.raises(GroupNotFoundError) as exc_info:
            store.select("Z")
        assert exc_info.value.group_key == "Z"
        assert store.selected_group is None

    def test_reset_clears_everything(self):
        """Test that reset empties the store."""
        store = GroupStore()
        store.apply_group_list(["A"])
        store.record_message("A", "[A] x: 1")
        store.record_notice("hi")
        store.select("A")
        store.reset()
        assert store.groups == []
        assert store.messages_for("A") == []
        assert store.notices == []
        assert store.selected_group is None


class TestGroupInitials:
    """Tests for the group label derivation."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Dev Team", "DT"),
            ("Ops", "OP"),
            ("A", "A"),
            ("general", "GE"),
            ("quality assurance team", "QA"),
            ("  spaced   out  ", "SO"),
            ("", ""),
        ],
    )
    def test_initials(self, name, expected):
        """Test initials for single and multi-word names."""
        assert group_initials(name) == expected
