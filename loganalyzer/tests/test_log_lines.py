import unittest

from loganalyzer.parsers.log_lines import extract_param_spans, parse_line, parse_message_and_params, parse_value


class ParseLineTests(unittest.TestCase):
    def test_full_line_with_source_location(self) -> None:
        line = (
            "[2024-05-01 10:00:00.123][INF][Px100][Tx200][Tasker.cpp][88][run_task] "
            "Task started [task_id=7] [entry=\"Main\"] | leave, 15ms"
        )

        parsed = parse_line(line, 3)

        self.assertIsNotNone(parsed)
        assert parsed is not None
        self.assertEqual(parsed.timestamp, "2024-05-01 10:00:00.123")
        self.assertEqual(parsed.level, "INF")
        self.assertEqual(parsed.processId, "Px100")
        self.assertEqual(parsed.threadId, "Tx200")
        self.assertEqual(parsed.sourceFile, "Tasker.cpp")
        self.assertEqual(parsed.lineNumber, "88")
        self.assertEqual(parsed.functionName, "run_task")
        self.assertEqual(parsed.message, "Task started")
        self.assertEqual(parsed.params, {"task_id": 7, "entry": "Main"})
        self.assertEqual(parsed.status, "leave")
        self.assertEqual(parsed.duration, 15)
        self.assertEqual(parsed.line_number, 3)

    def test_single_optional_group_with_source_extension_is_source_file(self) -> None:
        parsed = parse_line("[ts][DBG][P1][T1][Controller.h] hello")
        assert parsed is not None
        self.assertEqual(parsed.sourceFile, "Controller.h")
        self.assertIsNone(parsed.lineNumber)
        self.assertIsNone(parsed.functionName)

    def test_single_optional_group_without_extension_is_function_name(self) -> None:
        parsed = parse_line("[ts][DBG][P1][T1][post_click] hello")
        assert parsed is not None
        self.assertIsNone(parsed.sourceFile)
        self.assertEqual(parsed.functionName, "post_click")

    def test_two_optional_groups_are_file_and_line(self) -> None:
        parsed = parse_line("[ts][DBG][P1][T1][Utils][42] hello")
        assert parsed is not None
        self.assertEqual(parsed.sourceFile, "Utils")
        self.assertEqual(parsed.lineNumber, "42")
        self.assertIsNone(parsed.functionName)

    def test_no_optional_groups(self) -> None:
        parsed = parse_line("[ts][ERR][P1][T1] something broke")
        assert parsed is not None
        self.assertIsNone(parsed.sourceFile)
        self.assertIsNone(parsed.lineNumber)
        self.assertIsNone(parsed.functionName)
        self.assertEqual(parsed.message, "something broke")

    def test_non_matching_line_returns_none(self) -> None:
        self.assertIsNone(parse_line("plain text without brackets"))
        self.assertIsNone(parse_line("[ts][INF][P1] only three groups"))


class ParamExtractionTests(unittest.TestCase):
    def test_nested_json_value_is_captured_whole(self) -> None:
        message = 'notify [details={"box":[1,2,3,4],"name":"A]B"}] [flag]'
        spans = extract_param_spans(message)
        self.assertEqual(spans, ['details={"box":[1,2,3,4],"name":"A]B"}', "flag"])

        clean, params, status, duration = parse_message_and_params(message)
        self.assertEqual(clean, "notify")
        self.assertEqual(params["details"], {"box": [1, 2, 3, 4], "name": "A]B"})
        self.assertIs(params["flag"], True)
        self.assertIsNone(status)
        self.assertIsNone(duration)

    def test_nested_square_brackets_are_balanced(self) -> None:
        _, params, _, _ = parse_message_and_params("m [roi=[[1,2],[3,4]]]")
        self.assertEqual(params["roi"], [[1, 2], [3, 4]])

    def test_unbalanced_bracket_is_skipped(self) -> None:
        clean, params, _, _ = parse_message_and_params("broken [open [ok=1]")
        self.assertEqual(params, {"ok": 1})
        self.assertEqual(clean, "broken [open")

    def test_enter_status_without_duration(self) -> None:
        clean, _, status, duration = parse_message_and_params("run_recognition | enter")
        self.assertEqual(clean, "run_recognition")
        self.assertEqual(status, "enter")
        self.assertIsNone(duration)


class ParseValueTests(unittest.TestCase):
    def test_scalar_coercion(self) -> None:
        self.assertIs(parse_value("true"), True)
        self.assertIs(parse_value("false"), False)
        self.assertEqual(parse_value("-12"), -12)
        self.assertEqual(parse_value("3.5"), 3.5)
        self.assertEqual(parse_value('"quoted"'), "quoted")
        self.assertEqual(parse_value("'single'"), "single")
        self.assertEqual(parse_value("bare text"), "bare text")

    def test_invalid_json_falls_back_to_text(self) -> None:
        self.assertEqual(parse_value("{not json"), "{not json")
        self.assertEqual(parse_value("[1,2"), "[1,2")

    def test_deeply_nested_value_falls_back_to_text(self) -> None:
        nested = "[" * 5000 + "]" * 5000
        line = f"[2024-05-01 10:00:00.000][INF][Px1][Tx1] hello [k={nested}] [msg=Tasker.Task.Starting]"

        parsed = parse_line(line)

        self.assertIsNotNone(parsed)
        assert parsed is not None
        self.assertEqual(parsed.params["k"], nested)
        self.assertEqual(parsed.params["msg"], "Tasker.Task.Starting")
        self.assertEqual(parsed.message, "hello")

    def test_version_like_value_stays_text(self) -> None:
        self.assertEqual(parse_value("1.2.3"), "1.2.3")


if __name__ == "__main__":
    unittest.main()
