"""Tests for managed-label view reconciliation."""

from __future__ import annotations

import pytest
from fakes import FakeBridge, make_thread

from inboxflow.domain.models import DEFAULT_VIEWS, View
from inboxflow.domain.types import MoveAction
from inboxflow.threads.reconcile import ReconcileStatus
from inboxflow.threads.store import ThreadListStore
from inboxflow.threads.views import ViewReconciler, managed_labels

MANAGED = {"PENDING", "TODO", "SNOOZED"}


async def _reconciler(bridge: FakeBridge, query: str = "in:inbox") -> ViewReconciler:
    store = ThreadListStore(bridge, query)
    await store.fetch()
    return ViewReconciler(store, DEFAULT_VIEWS, move_refresh_delay=0, archive_refresh_delay=0)


# ---------------------------------------------------------------------------
# Managed labels
# ---------------------------------------------------------------------------


class TestManagedLabels:
    def test_default_views(self) -> None:
        assert managed_labels(DEFAULT_VIEWS) == ["PENDING", "TODO", "SNOOZED"]

    def test_only_whole_label_queries_count(self) -> None:
        views = [
            View(id="a", name="A", query="label:WORK"),
            View(id="b", name="B", query="label:WORK is:unread"),
            View(id="c", name="C", query="  label:LATER  "),
            View(id="d", name="D", query="label:WORK"),
        ]
        assert managed_labels(views) == ["WORK", "LATER"]

    def test_set_views_recomputes(self, fake_bridge: FakeBridge) -> None:
        reconciler = ViewReconciler(ThreadListStore(fake_bridge, "in:inbox"), DEFAULT_VIEWS)
        reconciler.set_views([View(id="x", name="X", query="label:X")])
        assert reconciler.managed == ["X"]


# ---------------------------------------------------------------------------
# Moving between views
# ---------------------------------------------------------------------------


class TestMoveToLabel:
    @pytest.mark.anyio()
    async def test_move_pending_inbox_thread_to_todo(self) -> None:
        bridge = FakeBridge([make_thread("t1", labels=["INBOX", "PENDING"])])
        reconciler = await _reconciler(bridge)

        outcome = await reconciler.move_to_label("t1", "TODO")

        assert outcome.action == MoveAction.ADDED
        assert outcome.labels == ["TODO"]
        assert reconciler.store.get("t1") is None
        assert bridge.calls_of("modify_labels") == [
            ("t1", None, ["PENDING"]),
            ("t1", None, ["SNOOZED"]),
            ("t1", ["TODO"], None),
        ]
        assert bridge.calls_of("archive_thread") == ["t1"]
        assert bridge.server["t1"].labels == ["TODO"]

        assert outcome.reconciliation is not None
        assert await outcome.reconciliation.wait() == ReconcileStatus.SETTLED
        assert reconciler.store.get("t1") is None

    @pytest.mark.anyio()
    async def test_move_without_leaving_list(self, fake_bridge: FakeBridge) -> None:
        reconciler = await _reconciler(fake_bridge, "label:PENDING")

        outcome = await reconciler.move_to_label("t3", "TODO", leaves_list=False)

        assert outcome.labels == ["TODO"]
        thread = reconciler.store.get("t3")
        assert thread is not None
        assert thread.labels == ["TODO"]
        assert fake_bridge.calls_of("archive_thread") == []
        reconciler.store.close()

    @pytest.mark.anyio()
    async def test_moving_to_current_label_toggles_it_off(self) -> None:
        bridge = FakeBridge([make_thread("t1", labels=["INBOX", "TODO"])])
        reconciler = await _reconciler(bridge)

        outcome = await reconciler.move_to_label("t1", "TODO")

        assert outcome.action == MoveAction.REMOVED
        assert outcome.labels == ["INBOX"]
        assert reconciler.store.get("t1") is not None
        assert bridge.calls_of("modify_labels") == [("t1", None, ["TODO"])]
        assert bridge.calls_of("archive_thread") == []
        reconciler.store.close()

    @pytest.mark.anyio()
    async def test_at_most_one_managed_label_after_moves(self) -> None:
        bridge = FakeBridge([make_thread("t1", labels=["INBOX"])])
        reconciler = await _reconciler(bridge)

        for label in ("PENDING", "TODO", "SNOOZED", "TODO"):
            await reconciler.move_to_label("t1", label, leaves_list=False)
            thread = reconciler.store.get("t1")
            assert thread is not None
            assert len(MANAGED & set(thread.labels)) == 1
            assert len(MANAGED & set(bridge.server["t1"].labels)) == 1
        reconciler.store.close()

    @pytest.mark.anyio()
    async def test_remote_failure_does_not_stop_the_sequence(
        self, fake_bridge: FakeBridge
    ) -> None:
        reconciler = await _reconciler(fake_bridge)
        fake_bridge.fail.add("modify_labels")

        outcome = await reconciler.move_to_label("t1", "TODO")

        assert outcome.action == MoveAction.ADDED
        assert fake_bridge.calls_of("archive_thread") == ["t1"]
        assert len(fake_bridge.calls_of("modify_labels")) == 3
        reconciler.store.close()


# ---------------------------------------------------------------------------
# Done, restore, star
# ---------------------------------------------------------------------------


class TestDoneAndRestore:
    @pytest.mark.anyio()
    async def test_done_clears_managed_labels_and_archives(self) -> None:
        bridge = FakeBridge([make_thread("t1", labels=["INBOX", "PENDING", "IMPORTANT"])])
        reconciler = await _reconciler(bridge)

        outcome = await reconciler.done("t1")

        assert outcome.action == MoveAction.CLEARED
        assert outcome.label is None
        assert outcome.labels == ["IMPORTANT"]
        assert [r for _, _, r in bridge.calls_of("modify_labels")] == [
            ["PENDING"],
            ["TODO"],
            ["SNOOZED"],
        ]
        assert bridge.server["t1"].labels == ["IMPORTANT"]
        assert reconciler.store.get("t1") is None
        assert outcome.reconciliation is not None
        await outcome.reconciliation.wait()

    @pytest.mark.anyio()
    async def test_restore_into_inbox_and_view(self) -> None:
        bridge = FakeBridge([make_thread("t1", labels=[])])
        reconciler = await _reconciler(bridge, "")
        pending_view = DEFAULT_VIEWS[1]

        outcome = await reconciler.restore("t1", pending_view)

        assert outcome.action == MoveAction.RESTORED
        assert outcome.labels == ["INBOX", "PENDING"]
        assert bridge.calls_of("modify_labels") == [("t1", ["INBOX", "PENDING"], None)]
        assert bridge.server["t1"].labels == ["INBOX", "PENDING"]
        reconciler.store.close()

    @pytest.mark.anyio()
    async def test_restore_without_view(self, fake_bridge: FakeBridge) -> None:
        reconciler = await _reconciler(fake_bridge)
        await reconciler.done("t1")

        outcome = await reconciler.restore("t1")

        assert outcome.labels == ["INBOX"]
        assert fake_bridge.server["t1"].labels == ["INBOX"]
        reconciler.store.close()


class TestToggleStar:
    @pytest.mark.anyio()
    async def test_star_then_unstar(self, fake_bridge: FakeBridge) -> None:
        reconciler = await _reconciler(fake_bridge)

        starred = await reconciler.toggle_star("t1")
        assert starred.action == MoveAction.ADDED
        assert starred.labels == ["INBOX", "STARRED"]

        unstarred = await reconciler.toggle_star("t1")
        assert unstarred.action == MoveAction.REMOVED
        assert unstarred.labels == ["INBOX"]
        assert fake_bridge.server["t1"].labels == ["INBOX"]
        reconciler.store.close()
