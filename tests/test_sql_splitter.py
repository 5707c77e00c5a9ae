"""
Unit tests for splitting SQL on GO separators.
"""
from dialectforge.utils import split_batches


class TestSplitBatches:
    """Test batch boundaries and line numbers."""

    def test_single_batch(self):
        batches = split_batches("CREATE TABLE t(a int)\n")
        assert len(batches) == 1
        assert batches[0].text == "CREATE TABLE t(a int)"
        assert batches[0].line_start == 1

    def test_go_any_case_with_whitespace(self):
        batches = split_batches("SELECT 1\nGO\n\nSELECT 2\n  go  \n")
        assert [b.text for b in batches] == ["SELECT 1", "SELECT 2"]
        assert [b.line_start for b in batches] == [1, 4]

    def test_go_must_be_alone_on_its_line(self):
        batches = split_batches("SELECT 'GOING'\nERGO\nGO")
        assert len(batches) == 1
        assert batches[0].text == "SELECT 'GOING'\nERGO"

    def test_comment_only_batches_are_skipped(self):
        batches = split_batches("-- nothing here\nGO\nSELECT 1\nGO\n")
        assert len(batches) == 1
        assert batches[0].text == "SELECT 1"
        assert batches[0].line_start == 3

    def test_empty(self):
        assert split_batches("") == []
        assert split_batches("GO\nGO\n") == []

    def test_multi_line_batch_keeps_lines(self):
        batches = split_batches("CREATE TABLE t(\na int,\nb int\n)\nGO")
        assert batches[0].text == "CREATE TABLE t(\na int,\nb int\n)"
