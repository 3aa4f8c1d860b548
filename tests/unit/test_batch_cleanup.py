import threading
import time

from services.batch_cleanup import BatchCleanup
from tests.test_helpers import FakeAssetStore


def test_deletes_every_unique_ref(ctx):
    store = FakeAssetStore()
    report = BatchCleanup(store).cleanup(ctx, ["a", "b", "a", "", None, "  ", "c"])

    assert sorted(store.deleted) == ["a", "b", "c"]
    assert sorted(report.deleted) == ["a", "b", "c"]
    assert report.failed == []


def test_failures_are_collected_not_raised(ctx, caplog):
    store = FakeAssetStore(failing={"b"})
    report = BatchCleanup(store).cleanup(ctx, ["a", "b", "c"])

    assert sorted(report.deleted) == ["a", "c"]
    assert [ref for ref, _ in report.failed] == ["b"]
    assert "Failed to delete asset b" in caplog.text


def test_unexpected_errors_are_collected(ctx):
    class Broken:
        def delete(self, ref):
            raise RuntimeError("boom")

    report = BatchCleanup(Broken()).cleanup(ctx, ["a"])
    assert report.failed == [("a", "boom")]


def test_nothing_to_delete(ctx):
    report = BatchCleanup(FakeAssetStore()).cleanup(ctx, [])
    assert report.deleted == [] and report.failed == []


def test_concurrency_is_bounded(ctx):
    lock = threading.Lock()
    state = {"running": 0, "peak": 0}

    class Slow:
        def delete(self, ref):
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.02)
            with lock:
                state["running"] -= 1

    report = BatchCleanup(Slow(), max_workers=3).cleanup(ctx, [f"img-{i}" for i in range(12)])

    assert len(report.deleted) == 12
    assert 1 <= state["peak"] <= 3
