import json
import unittest
from unittest.mock import patch

from agent_trace.models import (
    AssistantEvent,
    BashData,
    ExecResultEvent,
    NoteEvent,
    ReadData,
    SessionStartEvent,
    ToolCallEvent,
    ToolResultEvent,
    UserEvent,
)
from agent_trace.parsers import claude_code
from agent_trace.parsers.claude_code import parse_claude_code_log


def _jsonl(lines: list[dict], prefix: str = "") -> str:
    return "\n".join(prefix + json.dumps(line) for line in lines)


_INIT = {
    "type": "system",
    "subtype": "init",
    "cwd": "/home/dev/project",
    "session_id": "sess-1",
    "model": "claude-sonnet-4-5",
    "claude_code_version": "2.0.14",
    "permissionMode": "acceptEdits",
}


class ClaudeCodeParserTests(unittest.TestCase):
    def test_init_opens_session_with_meta(self) -> None:
        sessions = parse_claude_code_log(_jsonl([_INIT]))
        self.assertIsNotNone(sessions)
        assert sessions is not None
        self.assertEqual(len(sessions), 1)

        start = sessions[0].events[0]
        self.assertIsInstance(start, SessionStartEvent)
        self.assertEqual(start.meta.workdir, "/home/dev/project")
        self.assertEqual(start.meta.model, "claude-sonnet-4-5")
        self.assertEqual(start.meta.sessionId, "sess-1")
        self.assertEqual(start.meta.contextId, "sess-1")
        self.assertEqual(start.meta.version, "2.0.14")
        self.assertEqual(start.meta.approval, "acceptEdits")
        self.assertIsNone(start.meta.parentSessionId)

    def test_resumed_session_uses_parent_id_as_context(self) -> None:
        init = dict(_INIT, parent_session_id="sess-0")
        sessions = parse_claude_code_log(_jsonl([init]))
        assert sessions is not None
        meta = sessions[0].meta
        self.assertEqual(meta.sessionId, "sess-1")
        self.assertEqual(meta.parentSessionId, "sess-0")
        self.assertEqual(meta.contextId, "sess-0")

    def test_minimal_init_and_user_text(self) -> None:
        text = (
            '{"type":"system","subtype":"init","session_id":"abc"}\n'
            '{"type":"user","message":{"content":[{"type":"text","text":"hi"}]}}'
        )
        sessions = parse_claude_code_log(text)
        assert sessions is not None
        self.assertEqual(len(sessions), 1)
        self.assertEqual(sessions[0].meta.contextId, "abc")
        self.assertEqual([e.type for e in sessions[0].events], ["session_start", "user"])
        self.assertEqual(sessions[0].events[1], UserEvent(text="hi"))

    def test_first_line_must_be_typed_json(self) -> None:
        self.assertIsNone(parse_claude_code_log("hello world\n" + json.dumps(_INIT)))
        self.assertIsNone(parse_claude_code_log('{"subtype": "init"}'))
        self.assertIsNone(parse_claude_code_log("[1, 2, 3]"))
        self.assertIsNone(parse_claude_code_log(""))
        self.assertIsNone(parse_claude_code_log("\n\n"))

    def test_stream_prefixes_and_garbage_lines_are_tolerated(self) -> None:
        text = "\n".join(
            [
                json.dumps(_INIT),
                "[stdout]" + json.dumps({"type": "assistant", "message": {"content": [{"type": "text", "text": "Hello"}]}}),
                "[stderr] warning: something odd",
                '{"type": "assistant", "message": {"content": [',
                "[stdout] " + json.dumps({"type": "user", "message": {"content": "plain prompt"}}),
            ]
        )
        sessions = parse_claude_code_log(text)
        assert sessions is not None
        events = sessions[0].events
        self.assertEqual([e.type for e in events], ["session_start", "assistant", "user"])
        self.assertEqual(events[1].text, "Hello")
        self.assertEqual(events[2].text, "plain prompt")

    def test_assistant_tool_use_is_interpreted(self) -> None:
        assistant = {
            "type": "assistant",
            "message": {
                "content": [
                    {"type": "thinking", "thinking": "Need to look at the readme."},
                    {"type": "text", "text": "Reading the file."},
                    {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"file_path": "/tmp/README.md"}},
                    {"type": "tool_use", "id": "toolu_2", "name": "Bash", "input": {"command": "ls"}},
                ]
            },
        }
        sessions = parse_claude_code_log(_jsonl([_INIT, assistant]))
        assert sessions is not None
        events = sessions[0].events[1:]
        self.assertEqual(events[0], NoteEvent(channel="thinking", text="Need to look at the readme."))
        self.assertEqual(events[1], AssistantEvent(text="Reading the file."))

        read_call = events[2]
        self.assertIsInstance(read_call, ToolCallEvent)
        self.assertEqual(read_call.name, "Read")
        self.assertEqual(read_call.argsText, json.dumps({"file_path": "/tmp/README.md"}, indent=2))
        self.assertIsInstance(read_call.data, ReadData)
        self.assertEqual(read_call.data.filePath, "/tmp/README.md")

        self.assertIsInstance(events[3].data, BashData)
        self.assertEqual(events[3].data.command, "ls")

    def test_assistant_without_text_emits_only_tool_calls(self) -> None:
        assistant = {
            "type": "assistant",
            "message": {"content": [{"type": "tool_use", "name": "CustomTool", "input": "raw args"}]},
        }
        sessions = parse_claude_code_log(_jsonl([_INIT, assistant]))
        assert sessions is not None
        events = sessions[0].events[1:]
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].argsText, "raw args")
        self.assertEqual(events[0].data.kind, "generic")

    def test_small_tool_results_are_emitted_large_ones_dropped(self) -> None:
        user = {
            "type": "user",
            "message": {
                "content": [
                    {"type": "tool_result", "tool_use_id": "toolu_1", "content": "file contents"},
                    {"type": "tool_result", "tool_use_id": "toolu_2", "is_error": True, "content": [{"type": "text", "text": "boom"}]},
                    {"type": "tool_result", "tool_use_id": "toolu_3", "content": "x" * 600},
                ]
            },
        }
        sessions = parse_claude_code_log(_jsonl([_INIT, user]))
        assert sessions is not None
        events = sessions[0].events[1:]
        self.assertEqual(events, [ToolResultEvent(ok=True, text="file contents"), ToolResultEvent(ok=False, text="boom")])

    def test_result_text_duplicate_of_assistant_is_omitted(self) -> None:
        assistant = {"type": "assistant", "message": {"content": [{"type": "text", "text": "Done."}]}}
        result = {"type": "result", "subtype": "success", "is_error": False, "result": "Done.", "duration_ms": 1200}
        sessions = parse_claude_code_log(_jsonl([_INIT, assistant, result]))
        assert sessions is not None
        final = sessions[0].events[-1]
        self.assertIsInstance(final, ExecResultEvent)
        self.assertTrue(final.ok)
        self.assertIsNone(final.text)
        self.assertEqual(final.durationMs, 1200)

    def test_result_with_different_text_is_preserved(self) -> None:
        assistant = {"type": "assistant", "message": {"content": [{"type": "text", "text": "Done."}]}}
        result = {"type": "result", "subtype": "success", "result": "Finished: Done."}
        sessions = parse_claude_code_log(_jsonl([_INIT, assistant, result]))
        assert sessions is not None
        self.assertEqual(sessions[0].events[-1].text, "Finished: Done.")

    def test_result_updates_meta_cost_and_duration(self) -> None:
        result = {
            "type": "result",
            "subtype": "error_max_turns",
            "is_error": True,
            "duration_ms": 5400,
            "total_cost_usd": 0.0421,
        }
        sessions = parse_claude_code_log(_jsonl([_INIT, result]))
        assert sessions is not None
        session = sessions[0]
        self.assertFalse(session.events[-1].ok)
        self.assertEqual(session.meta.costUsd, 0.0421)
        self.assertEqual(session.meta.durationMs, 5400)
        # session_start shares the session's meta.
        self.assertEqual(session.events[0].meta.costUsd, 0.0421)

    def test_missing_init_synthesizes_default_session(self) -> None:
        lines = [
            {"type": "user", "message": {"content": [{"type": "text", "text": "fix the bug"}]}},
            {"type": "assistant", "message": {"content": [{"type": "text", "text": "On it."}]}},
        ]
        sessions = parse_claude_code_log(_jsonl(lines))
        assert sessions is not None
        self.assertEqual(len(sessions), 1)
        self.assertIsNone(sessions[0].meta.contextId)
        self.assertEqual([e.type for e in sessions[0].events], ["user", "assistant"])

    def test_each_init_starts_a_new_session(self) -> None:
        second_init = dict(_INIT, session_id="sess-2")
        user = {"type": "user", "message": {"content": [{"type": "text", "text": "again"}]}}
        sessions = parse_claude_code_log(_jsonl([_INIT, user, second_init, user]))
        assert sessions is not None
        self.assertEqual([s.meta.sessionId for s in sessions], ["sess-1", "sess-2"])
        self.assertEqual(len(sessions[1].events), 2)

    def test_unrelated_message_types_produce_no_session(self) -> None:
        self.assertIsNone(parse_claude_code_log(json.dumps({"type": "stream_event", "event": {}})))

    def test_tool_result_cap_uses_serialized_length(self) -> None:
        def _user(content):
            return {"type": "user", "message": {"content": [{"type": "tool_result", "content": content}]}}

        # json.dumps adds two quotes: 497 chars -> 499 serialized, 498 -> 500.
        sessions = parse_claude_code_log(_jsonl([_INIT, _user("x" * 497), _user("x" * 498), _user("\n" * 249)]))
        assert sessions is not None
        events = sessions[0].events[1:]
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].text, "x" * 497)

    def test_non_finite_numbers_do_not_drop_the_session(self) -> None:
        user = {"type": "user", "message": {"content": [{"type": "text", "text": "hi"}]}}
        text = "\n".join(
            [
                json.dumps(_INIT),
                json.dumps(user),
                '{"type":"result","subtype":"success","result":"ok","duration_ms":1e400,"total_cost_usd":NaN}',
            ]
        )
        sessions = parse_claude_code_log(text)
        assert sessions is not None
        self.assertEqual(len(sessions), 1)
        session = sessions[0]
        self.assertEqual([e.type for e in session.events], ["session_start", "user", "exec_result"])
        self.assertIsNone(session.events[-1].durationMs)
        self.assertEqual(session.events[-1].text, "ok")
        self.assertIsNone(session.meta.costUsd)
        self.assertIsNone(session.meta.durationMs)

    def test_failing_message_handler_skips_only_that_line(self) -> None:
        def _boom(session, entry):
            raise OverflowError("bad line")

        assistant = {"type": "assistant", "message": {"content": [{"type": "text", "text": "lost"}]}}
        user = {"type": "user", "message": {"content": [{"type": "text", "text": "kept"}]}}
        with patch.dict(claude_code._HANDLERS, {"assistant": _boom}):
            sessions = parse_claude_code_log(_jsonl([_INIT, assistant, user]))
        assert sessions is not None
        self.assertEqual([e.type for e in sessions[0].events], ["session_start", "user"])

    def test_deeply_nested_json_is_rejected_without_raising(self) -> None:
        nested = "[" * 200000 + "]" * 200000
        self.assertIsNone(parse_claude_code_log(nested))

        sessions = parse_claude_code_log(json.dumps(_INIT) + "\n" + nested)
        assert sessions is not None
        self.assertEqual(len(sessions[0].events), 1)


if __name__ == "__main__":
    unittest.main()
