import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from loganalyzer.scripts import analyze_log


def _event(ts: str, msg: str, details: dict) -> str:
    return (
        f"[2024-05-01 {ts}][INF][Px1][Tx1][MaaUtils.cpp][120][notify] "
        f"!!!OnEventNotify!!! [msg={msg}] [details={json.dumps(details)}]"
    )


_LOG = "\n".join(
    [
        _event("10:00:00.000", "Tasker.Task.Starting", {"task_id": 1, "entry": "Main"}),
        _event("10:00:00.500", "Node.PipelineNode.Succeeded", {"task_id": 1, "node_id": 10, "name": "Start"}),
        _event("10:00:02.000", "Tasker.Task.Succeeded", {"task_id": 1}),
    ]
)


class AnalyzeLogScriptTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.log_path = Path(self._tmp.name) / "maa.log"
        self.log_path.write_text(_LOG, encoding="utf-8")

    def _run(self, *argv: str) -> tuple[int, str]:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = analyze_log.main(list(argv))
        return code, buffer.getvalue()

    def test_missing_file_exits_with_error(self) -> None:
        code, output = self._run(str(Path(self._tmp.name) / "absent.log"))
        self.assertEqual(code, 1)
        self.assertIn("Failed to read log file", output)

    def test_json_output_is_full_analysis(self) -> None:
        code, output = self._run(str(self.log_path), "--json")

        self.assertEqual(code, 0)
        payload = json.loads(output)
        self.assertEqual(payload["tasks"][0]["entry"], "Main")
        self.assertEqual(payload["tasks"][0]["duration"], 2000)
        self.assertEqual(payload["nodeStatistics"][0]["name"], "Start")
        self.assertEqual(payload["nodeStatistics"][0]["durations"], [1500])

    def test_text_report_lists_tasks_and_top_nodes(self) -> None:
        code, output = self._run(str(self.log_path), "--tasks", "--top", "3")

        self.assertEqual(code, 0)
        self.assertIn("Tasks: 1", output)
        self.assertIn("task=1 entry=Main status=succeeded", output)
        self.assertIn("01. Start count=1 avg=1.50s", output)
        self.assertIn("Most failed nodes:\n  (none)", output)

    def test_format_duration(self) -> None:
        self.assertEqual(analyze_log._format_duration(None), "-")
        self.assertEqual(analyze_log._format_duration(250), "250ms")
        self.assertEqual(analyze_log._format_duration(2500), "2.50s")


if __name__ == "__main__":
    unittest.main()
