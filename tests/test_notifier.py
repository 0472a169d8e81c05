import logging

from hostelkeep.notifier import EventName, EventNotifier, RecordingNotifier


def test_publish_reaches_named_and_wildcard_subscribers_in_order() -> None:
    notifier = EventNotifier()
    seen: list[str] = []

    notifier.subscribe(EventName.ISSUE_MERGED, lambda name, payload: seen.append(f"named:{payload['id']}"))
    notifier.subscribe_all(lambda name, payload: seen.append(f"all:{name.value}"))
    notifier.subscribe(EventName.ISSUE_UNMERGED, lambda name, payload: seen.append("wrong"))

    delivered = notifier.publish(EventName.ISSUE_MERGED, {"id": "p"})

    assert delivered == 2
    assert seen == ["named:p", "all:issue.merged"]


def test_failing_subscriber_is_logged_and_skipped(caplog) -> None:
    notifier = EventNotifier()
    seen: list[str] = []

    def _boom(name, payload) -> None:
        raise RuntimeError("client disconnected")

    notifier.subscribe(EventName.ISSUE_AUTO_MERGED, _boom)
    notifier.subscribe(EventName.ISSUE_AUTO_MERGED, lambda name, payload: seen.append("ok"))

    with caplog.at_level(logging.WARNING, logger="hostelkeep.notifier"):
        delivered = notifier.publish(EventName.ISSUE_AUTO_MERGED, {})

    assert delivered == 1
    assert seen == ["ok"]
    assert "issue.autoMerged" in caplog.text


def test_recording_notifier_keeps_payload_copies() -> None:
    notifier = RecordingNotifier()
    payload = {"issue_id": "a"}

    notifier.publish(EventName.ISSUE_DELETED, payload)
    payload["issue_id"] = "b"

    assert notifier.names() == [EventName.ISSUE_DELETED]
    assert notifier.events[0][1] == {"issue_id": "a"}
