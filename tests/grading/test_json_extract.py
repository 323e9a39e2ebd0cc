"""Tests for JSON object extraction from LLM output."""

from remaimber.core.json_extract import extract_json_object, strip_thinking


class TestExtractJsonObject:
    """Tests for the string-aware brace scan."""

    def test_plain_object(self):
        assert extract_json_object('{"covered": [], "missed": []}') == '{"covered": [], "missed": []}'

    def test_object_surrounded_by_prose(self):
        """Prose before and after the object is dropped."""
        text = 'Here is the grade:\n{"covered": ["a"], "missed": []}\nHope that helps!'
        assert extract_json_object(text) == '{"covered": ["a"], "missed": []}'

    def test_markdown_fence(self):
        text = '```json\n{"covered": ["a"], "missed": ["b"]}\n```'
        assert extract_json_object(text) == '{"covered": ["a"], "missed": ["b"]}'

    def test_braces_inside_strings_are_ignored(self):
        text = 'x {"covered": ["use {} for dicts", "a } b"], "missed": []} y'
        assert extract_json_object(text) == '{"covered": ["use {} for dicts", "a } b"], "missed": []}'

    def test_escaped_quote_inside_string(self):
        text = r'{"covered": ["say \"}\" loudly"], "missed": []} trailing'
        assert extract_json_object(text) == r'{"covered": ["say \"}\" loudly"], "missed": []}'

    def test_nested_objects(self):
        text = 'a {"outer": {"inner": {}}} b {"second": 1}'
        assert extract_json_object(text) == '{"outer": {"inner": {}}}'

    def test_first_object_wins(self):
        assert extract_json_object('{"a": 1} {"b": 2}') == '{"a": 1}'

    def test_no_object(self):
        assert extract_json_object("I cannot grade this answer.") == ""

    def test_unbalanced_object(self):
        assert extract_json_object('{"covered": ["a"]') == ""

    def test_empty_text(self):
        assert extract_json_object("") == ""

    def test_stray_closing_brace_before_object(self):
        """A } before any { does not end the scan."""
        assert extract_json_object('} oops {"a": 1}') == '{"a": 1}'


class TestStripThinking:
    """Tests for reasoning tag removal."""

    def test_removes_think_block(self):
        text = '<think>maybe {"covered": ["x"]}</think>{"covered": [], "missed": ["y"]}'
        assert strip_thinking(text) == '{"covered": [], "missed": ["y"]}'

    def test_case_insensitive_multiline(self):
        text = "<THINK>\nline one\nline two\n</THINK>\nanswer"
        assert strip_thinking(text) == "answer"

    def test_leaves_plain_text(self):
        assert strip_thinking("  plain  ") == "plain"
