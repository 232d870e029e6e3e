"""Tests for env file parsing and formatting."""
import pytest

from gcloud_secrets.secrets.domains.env_parser import format_env, parse_env_file
from gcloud_secrets.secrets.domains.models import EnvEntry


class TestParseEnvFile:
    """Test suite for parse_env_file."""

    def test_simple_assignments(self):
        entries = parse_env_file("A=1\nB=two\n")
        assert entries == [EnvEntry("A", "1"), EnvEntry("B", "two")]

    @pytest.mark.parametrize("content", ["", "\n\n", "# comment\n", "   # indented comment\n\n", "  \t \n"])
    def test_blank_and_comment_only_input_is_empty(self, content):
        assert parse_env_file(content) == []

    def test_multiline_backtick_value(self):
        """Test that FOO=`line1\\nline2` yields one multi-line entry."""
        entries = parse_env_file("FOO=`line1\nline2`")
        assert entries == [EnvEntry(key="FOO", value="line1\nline2", is_multiline=True)]

    def test_multiline_span_not_reparsed_as_lines(self):
        content = "CERT=`-----BEGIN-----\nINNER=not a key\n-----END-----`\nAFTER=1\n"
        entries = parse_env_file(content)
        assert [e.key for e in entries] == ["CERT", "AFTER"]
        assert entries[0].value == "-----BEGIN-----\nINNER=not a key\n-----END-----"

    def test_multiline_entries_come_first(self):
        content = "A=1\nB=`x\ny`\nC=3\nD=`z`\n"
        entries = parse_env_file(content)
        assert [e.key for e in entries] == ["B", "D", "A", "C"]
        assert [e.is_multiline for e in entries] == [True, True, False, False]

    def test_escaped_backtick_does_not_end_block(self):
        entries = parse_env_file("SCRIPT=`echo \\`date\\`\nexit`")
        assert len(entries) == 1
        assert entries[0].value == "echo `date`\nexit"

    @pytest.mark.parametrize("line, value", [
        ('A="quoted"', "quoted"),
        ("A='single'", "single"),
        ('A="mismatched\'', '"mismatched\''),
        ('A="', '"'),
        ('A=""', ""),
        ('A="inner "quotes""', 'inner "quotes"'),
        ("A=plain value", "plain value"),
    ])
    def test_quote_stripping(self, line, value):
        assert parse_env_file(line)[0].value == value

    def test_whitespace_around_equals(self):
        assert parse_env_file("  KEY =  value")[0] == EnvEntry("KEY", "value")

    def test_crlf_line_endings(self):
        entries = parse_env_file('A=1\r\nB="two"\r\n')
        assert entries == [EnvEntry("A", "1"), EnvEntry("B", "two")]

    def test_malformed_lines_skipped(self):
        content = "not an assignment\n1BAD=x\nexport\nGOOD=yes\n=nokey\n"
        assert parse_env_file(content) == [EnvEntry("GOOD", "yes")]

    def test_duplicate_keys_are_kept_in_order(self):
        entries = parse_env_file("A=1\nA=2\n")
        assert entries == [EnvEntry("A", "1"), EnvEntry("A", "2")]

    @pytest.mark.parametrize("content", ["`", "A=`unterminated\n", "\x00\x01=", "=`x`", "A=\\"])
    def test_never_raises(self, content):
        assert isinstance(parse_env_file(content), list)


class TestFormatEnv:
    def test_single_and_multiline(self):
        text = format_env([EnvEntry("A", "1"), EnvEntry("CERT", "l1\nl2", True)])
        assert text == "A=1\nCERT=`l1\nl2`"

    def test_output_parses_back(self):
        entries = [
            EnvEntry("CERT", "l1\nl2", True),
            EnvEntry("SCRIPT", "echo `date`\nexit", True),
            EnvEntry("A", "1"),
        ]
        assert parse_env_file(format_env(entries)) == entries

    def test_backticks_in_multiline_value_are_escaped(self):
        text = format_env([EnvEntry("SCRIPT", "a`b\nc", True)])
        assert text == "SCRIPT=`a\\`b\nc`"
