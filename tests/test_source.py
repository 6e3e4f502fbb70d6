"""
Tests for the source layer.

Covers:
    1. normalizer.py  - comment stripping
    2. text.py        - bracket, string and parameter scanners
    3. blocks.py      - indented suite discovery
"""

import pytest


# ═══════════════════════════════════════════════════════════════════
#  Module 1: Normalizer Tests
# ═══════════════════════════════════════════════════════════════════

class TestRemoveComments:
    """Test comment stripping."""

    def test_trailing_comment(self):
        from tailrec.source.normalizer import remove_comments
        assert remove_comments("x = 1  # one\ny = 2\n") == "x = 1\ny = 2\n"

    def test_full_line_comment_keeps_line_break(self):
        from tailrec.source.normalizer import remove_comments
        assert remove_comments("# header\nx = 1\n") == "\nx = 1\n"

    def test_comment_without_newline(self):
        from tailrec.source.normalizer import remove_comments
        assert remove_comments("return acc # done") == "return acc"

    def test_no_comment_unchanged(self):
        from tailrec.source.normalizer import remove_comments
        source = "if n <= 1:\n    return acc\nreturn fact(n - 1, acc * n)\n"
        assert remove_comments(source) == source

    def test_idempotent(self):
        from tailrec.source.normalizer import remove_comments
        samples = [
            "a = 1  # x\n# y\nb = 2\n",
            "#\n#\n",
            "return go(i + 1)  # tail\n",
            "",
        ]
        for sample in samples:
            once = remove_comments(sample)
            assert remove_comments(once) == once

    def test_hash_in_string_is_treated_as_comment(self):
        from tailrec.source.normalizer import remove_comments
        # Known limitation: the literal is cut short.
        assert remove_comments('s = "#"\n') == 's = "\n'


# ═══════════════════════════════════════════════════════════════════
#  Module 2: Text Helper Tests
# ═══════════════════════════════════════════════════════════════════

class TestBrackets:
    """Test bracket matching."""

    def test_find_closing_skips_strings(self):
        from tailrec.source.text import find_closing
        text = "f(a, (b), 'x)')"
        assert find_closing(text, 1) == len(text) - 1

    def test_find_closing_unclosed(self):
        from tailrec.source.text import find_closing
        assert find_closing("f(a", 1) == -1

    def test_find_closing_mismatched(self):
        from tailrec.source.text import find_closing
        assert find_closing("f(a]", 1) == -1

    def test_is_balanced(self):
        from tailrec.source.text import is_balanced
        assert is_balanced("f(a[1], {2: 3})")
        assert not is_balanced("f(a")
        assert not is_balanced("a)")

    def test_split_top_level(self):
        from tailrec.source.text import split_top_level
        assert split_top_level("a, f(b, c), [d, e], ") == ['a', 'f(b, c)', '[d, e]']

    def test_split_top_level_ignores_commas_in_strings(self):
        from tailrec.source.text import split_top_level
        assert split_top_level("'a,b', c") == ["'a,b'", 'c']


class TestParameters:
    """Test parameter list parsing."""

    def test_annotations_and_defaults_dropped(self):
        from tailrec.source.text import parse_parameters
        names = parse_parameters("n: int, acc=1, *args, key=None, **kw")
        assert names == ['n', 'acc', '*args', 'key', '**kw']

    def test_markers_skipped(self):
        from tailrec.source.text import parse_parameters
        assert parse_parameters("a, /, b, *, c") == ['a', 'b', 'c']

    def test_unrecognized_parameter(self):
        from tailrec.source.text import parse_parameters
        from tailrec.errors import UnrecognizedFunctionFormat
        with pytest.raises(UnrecognizedFunctionFormat):
            parse_parameters("(a, b)")

    def test_signature_parameters(self):
        from tailrec.source.text import signature_parameters
        assert signature_parameters("def f(x, y=2) -> int:") == ['x', 'y']


class TestIndentation:
    """Test indentation helpers."""

    def test_indent_lines_leaves_string_continuations(self):
        from tailrec.source.text import indent_lines
        text = 's = """a\nb"""\nx = 1\n'
        assert indent_lines(text, '    ') == '    s = """a\nb"""\n    x = 1\n'

    def test_dedent_lines_leaves_string_continuations(self):
        from tailrec.source.text import dedent_lines
        text = '    s = """a\n  b"""\n    x = 1\n'
        assert dedent_lines(text) == 's = """a\n  b"""\nx = 1\n'

    def test_dedent_lines_blank_lines(self):
        from tailrec.source.text import dedent_lines
        assert dedent_lines("  a\n   \n  b\n") == "a\n\nb\n"

    def test_logical_line_starts(self):
        from tailrec.source.text import logical_line_starts
        text = (
            "a = (1,\n"
            "     2)\n"
            "s = '''x\n"
            "y'''\n"
            "\n"
            "# note\n"
            "b = 1 + \\\n"
            "    2\n"
            "c = 3\n"
        )
        assert logical_line_starts(text) == {1, 3, 7, 9}

    def test_logical_line_starts_indented(self):
        from tailrec.source.text import logical_line_starts
        assert logical_line_starts("    x = 1\n    y = 2\n") == {1, 2}

    def test_indent_lines_skips_blank_lines(self):
        from tailrec.source.text import indent_lines
        assert indent_lines("a\n\nb\n", '  ') == "  a\n\n  b\n"

    def test_indent_unit(self):
        from tailrec.source.text import indent_unit
        assert indent_unit("if x:\n\treturn 1\n") == '\t'
        assert indent_unit("if x:\n  return 1\n") == '    '
        assert indent_unit("return 1\n") == '    '

    def test_indent_width_expands_tabs(self):
        from tailrec.source.text import indent_width
        assert indent_width("\treturn") == 8
        assert indent_width("    return") == 4
        assert indent_width("return") == 0

    def test_mentions_whole_identifier(self):
        from tailrec.source.text import mentions
        assert mentions("return fact(n)", "fact")
        assert not mentions("return factorial(n)", "fact")
        assert not mentions("return self.fact(n)", "fact")


# ═══════════════════════════════════════════════════════════════════
#  Module 3: Block Scanner Tests
# ═══════════════════════════════════════════════════════════════════

class TestFindBlocks:
    """Test indented suite discovery."""

    def test_single_block(self):
        from tailrec.source.blocks import Block, find_blocks
        text = "if n <= 1:\n    return acc\nreturn fact(n - 1, acc * n)\n"
        blocks = find_blocks(text)
        assert blocks == [Block(11, 26, '    ')]
        assert blocks[0].slice(text) == "    return acc\n"
        assert text[blocks[0].end:].startswith("return fact")

    def test_innermost_first(self):
        from tailrec.source.blocks import find_blocks
        text = (
            "def go(i):\n"
            "    if i:\n"
            "        return 1\n"
            "    return go(i - 1)\n"
            "return go(3)\n"
        )
        blocks = find_blocks(text)
        assert [b.indent for b in blocks] == ['        ', '    ']
        assert blocks[0].slice(text) == "        return 1\n"
        assert blocks[1].slice(text) == "    if i:\n        return 1\n    return go(i - 1)\n"
        assert text[blocks[1].end:] == "return go(3)\n"

    def test_no_blocks(self):
        from tailrec.source.blocks import find_blocks
        assert find_blocks("return 1\n") == []
        assert find_blocks("") == []

    def test_block_start_skips_blank_lines(self):
        from tailrec.source.blocks import find_blocks
        text = "def go(i):\n\n    return i\nreturn go(1)\n"
        blocks = find_blocks(text)
        assert len(blocks) == 1
        assert text[:blocks[0].start] == "def go(i):\n\n"

    def test_inconsistent_dedent(self):
        from tailrec.source.blocks import find_blocks
        from tailrec.errors import MalformedSourceError
        with pytest.raises(MalformedSourceError):
            find_blocks("if x:\n    a = 1\n  b = 2\n")

    def test_unclosed_bracket(self):
        from tailrec.source.blocks import find_blocks
        from tailrec.errors import MalformedSourceError
        with pytest.raises(MalformedSourceError):
            find_blocks("x = (1,\n")
