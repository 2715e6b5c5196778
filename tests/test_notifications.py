from __future__ import annotations

import pytest

from docdesk.services.notifications import NotificationFeed

from tests.helpers.stubs import NotificationRecorder


@pytest.mark.asyncio
async def test_publish_with_same_key_replaces_entry() -> None:
    feed = NotificationFeed()

    await feed.loading("Working...", key="job")
    await feed.success("Done.", key="job")

    pending = feed.pending()
    assert len(pending) == 1
    assert pending[0].level == "success"
    assert pending[0].message == "Done."


@pytest.mark.asyncio
async def test_drain_empties_feed_and_dismiss_removes_key() -> None:
    feed = NotificationFeed()
    await feed.info("one", key="a")
    await feed.error("two", key="b")

    feed.dismiss("a")
    drained = feed.drain()

    assert [item.key for item in drained] == ["b"]
    assert feed.pending() == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_publish() -> None:
    feed = NotificationFeed()
    recorder = NotificationRecorder()

    async def _broken(notification) -> None:  # noqa: ANN001
        raise RuntimeError("subscriber down")

    feed.subscribe(_broken)
    feed.subscribe(recorder)

    notification = await feed.success("ok")

    assert recorder.received == [notification]
    assert feed.pending() == [notification]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery() -> None:
    feed = NotificationFeed()
    recorder = NotificationRecorder()
    feed.subscribe(recorder)
    feed.unsubscribe(recorder)

    await feed.info("quiet")

    assert recorder.received == []
