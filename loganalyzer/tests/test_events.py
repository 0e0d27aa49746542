import unittest

from loganalyzer.models import EventNotification, LogLine
from loganalyzer.parsers.events import TaskOwnerRegistry, as_id, extract_event
from loganalyzer.parsers.log_lines import parse_line


def _notify_line(params: str, pid: str = "Px1", tid: str = "Tx1") -> str:
    return f"[2024-05-01 10:00:00.000][INF][{pid}][{tid}][Tasker.cpp][10][notify] !!!OnEventNotify!!! {params}"


class ExtractEventTests(unittest.TestCase):
    def test_event_carries_msg_and_details(self) -> None:
        line = parse_line(_notify_line('[handle=0x1] [msg=Tasker.Task.Starting] [details={"task_id":3,"entry":"Main"}]'), 12)
        assert line is not None

        event = extract_event(line)

        self.assertIsNotNone(event)
        assert event is not None
        self.assertEqual(event.message, "Tasker.Task.Starting")
        self.assertEqual(event.details, {"task_id": 3, "entry": "Main"})
        self.assertEqual(event.timestamp, "2024-05-01 10:00:00.000")
        self.assertEqual(event.level, "INF")
        self.assertEqual(event.line_number, 12)

    def test_missing_msg_yields_no_event(self) -> None:
        line = parse_line(_notify_line('[details={"task_id":3}]'))
        assert line is not None
        self.assertIsNone(extract_event(line))

    def test_line_without_marker_yields_no_event(self) -> None:
        line = LogLine(
            timestamp="ts",
            level="INF",
            processId="P",
            threadId="T",
            message="regular message",
            params={"msg": "Tasker.Task.Starting"},
        )
        self.assertIsNone(extract_event(line))

    def test_non_object_details_become_empty(self) -> None:
        line = parse_line(_notify_line("[msg=Node.Action.Succeeded] [details=oops]"))
        assert line is not None
        event = extract_event(line)
        assert event is not None
        self.assertEqual(event.details, {})


class TaskOwnerRegistryTests(unittest.TestCase):
    def _starting(self, task_id) -> EventNotification:
        return EventNotification(
            timestamp="ts",
            level="INF",
            message="Tasker.Task.Starting",
            details={"task_id": task_id},
        )

    def test_first_owner_wins_over_relayed_duplicates(self) -> None:
        registry = TaskOwnerRegistry()
        registry.observe(self._starting(1), "Px1", "Tx1")
        registry.observe(self._starting(1), "Px9", "Tx9")
        registry.observe(self._starting(2), "Px2", "Tx1")

        self.assertEqual(registry.process_id(1), "Px1")
        self.assertEqual(registry.thread_id(1), "Tx1")
        self.assertEqual(registry.process_ids(), ["Px1", "Px2"])
        self.assertEqual(registry.thread_ids(), ["Tx1"])

    def test_ignores_other_messages_and_missing_ids(self) -> None:
        registry = TaskOwnerRegistry()
        registry.observe(
            EventNotification(timestamp="ts", level="INF", message="Tasker.Task.Succeeded", details={"task_id": 1}),
            "Px1",
            "Tx1",
        )
        registry.observe(self._starting(None), "Px1", "Tx1")
        registry.observe(self._starting(0), "Px1", "Tx1")

        self.assertEqual(registry.process_ids(), [])
        self.assertIsNone(registry.process_id(1))

    def test_clear_forgets_owners(self) -> None:
        registry = TaskOwnerRegistry()
        registry.observe(self._starting(1), "Px1", "Tx1")
        registry.clear()
        self.assertIsNone(registry.process_id(1))


class AsIdTests(unittest.TestCase):
    def test_only_plain_integers_are_ids(self) -> None:
        self.assertEqual(as_id(5), 5)
        self.assertIsNone(as_id(True))
        self.assertIsNone(as_id("5"))
        self.assertIsNone(as_id(None))
        self.assertIsNone(as_id([1]))


if __name__ == "__main__":
    unittest.main()
