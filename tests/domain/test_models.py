"""Tests for Pydantic domain models: EmailAddress, Thread, View."""

import pytest
from fakes import make_message, make_thread
from pydantic import ValidationError

from inboxflow.domain.errors import InvalidTransitionError, MissingEventIdError, ViewNotFoundError
from inboxflow.domain.models import DEFAULT_VIEWS, EmailAddress, View


class TestEmailAddress:
    def test_display_prefers_name(self):
        assert EmailAddress(email="a@x.com", name="Ann").display == "Ann"

    def test_display_falls_back_to_address(self):
        assert EmailAddress(email="a@x.com").display == "a@x.com"

    def test_is_frozen(self):
        address = EmailAddress(email="a@x.com")
        with pytest.raises(ValidationError):
            address.email = "b@x.com"  # type: ignore[misc]


class TestThread:
    def test_unread_when_any_message_is_unread(self):
        messages = [
            make_message("m1", is_unread=False),
            make_message("m2", is_unread=True),
        ]
        assert make_thread(messages=messages).is_unread

    def test_read_thread(self):
        thread = make_thread()
        assert not thread.is_unread
        assert thread.latest is not None
        assert thread.latest.id == "t1-m1"

    def test_is_unread_is_serialized(self):
        assert make_thread(unread=True).model_dump()["is_unread"] is True

    def test_has_label(self):
        thread = make_thread(labels=["INBOX", "TODO"])
        assert thread.has_label("TODO")
        assert not thread.has_label("PENDING")


class TestView:
    @pytest.mark.parametrize(
        ("query", "label"),
        [
            ("label:TODO", "TODO"),
            (" label:Work/Clients ", "Work/Clients"),
            ("label:TODO is:unread", None),
            ("in:inbox", None),
            ("", None),
        ],
    )
    def test_managed_label(self, query, label):
        assert View(id="v", name="V", query=query).managed_label == label

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError, match="view id must not be empty"):
            View(id="  ", name="Blank")

    def test_default_views(self):
        assert [v.id for v in DEFAULT_VIEWS] == [
            "inbox",
            "pending",
            "todo",
            "snoozed",
            "starred",
            "sent",
            "drafts",
            "all",
        ]


class TestErrors:
    def test_invalid_transition_message(self):
        err = InvalidTransitionError("none", "accepted")
        assert str(err) == "Cannot apply event 'accepted' in state 'none'"
        assert err.current_state == "none"

    def test_missing_event_id_keeps_message_id(self):
        assert MissingEventIdError("m1").message_id == "m1"

    def test_view_not_found(self):
        assert str(ViewNotFoundError("x")) == "Unknown view: x"
