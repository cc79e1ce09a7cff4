"""Tests for domain enumerations and label constants."""

import pytest

from inboxflow.domain.types import (
    PENDING_LABEL,
    TODO_LABEL,
    UNCOUNTED_VIEW_IDS,
    MoveAction,
    RsvpResponse,
    RsvpState,
    SystemLabel,
)


class TestSystemLabel:
    """Tests for the SystemLabel enum."""

    def test_members(self):
        assert SystemLabel.INBOX == "INBOX"
        assert SystemLabel.UNREAD == "UNREAD"
        assert SystemLabel.STARRED == "STARRED"

    def test_compares_equal_inside_label_lists(self):
        assert SystemLabel.UNREAD in ["INBOX", "UNREAD"]


class TestRsvpEnums:
    """Tests for RSVP responses and states."""

    def test_every_response_is_a_state(self):
        for response in RsvpResponse:
            assert RsvpState(response.value) == response.value

    def test_states(self):
        assert [s.value for s in RsvpState] == [
            "none",
            "loading",
            "accepted",
            "tentative",
            "declined",
        ]

    def test_string_serialization(self):
        assert str(RsvpResponse.TENTATIVE) == "tentative"

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            RsvpResponse("maybe")


class TestConstants:
    def test_shortcut_labels(self):
        assert PENDING_LABEL == "PENDING"
        assert TODO_LABEL == "TODO"

    def test_uncounted_views(self):
        assert {"all", "sent", "drafts"} == UNCOUNTED_VIEW_IDS

    def test_move_actions(self):
        assert {a.value for a in MoveAction} == {"added", "removed", "cleared", "restored"}
