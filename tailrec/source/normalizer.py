"""
Text Normalizer
===============

Strips comments from function source before the textual scans run.

This is not a lexer. Python only has line comments, so the
scan looks for the leftmost ``#`` and deletes it through the end of its
line, then repeats until no ``#`` is left.

Known limitation:
    A ``#`` inside a string literal (``"#"``, ``f"{x:#x}"``) is treated as a
    comment opener too. The literal is cut short, the truncated text no
    longer tokenizes, and the optimization for that function is abandoned
    (``recur`` falls back to the original function). Downstream pattern
    matching relies on comments being gone, so the limitation is kept
    visible here rather than patched over.
"""

COMMENT_OPENER = '#'


def remove_comments(source: str) -> str:
    """
    Delete every ``#`` comment from *source*, keeping line breaks.

    Idempotent: ``remove_comments(remove_comments(s)) == remove_comments(s)``.
    """
    result = source
    while True:
        start = result.find(COMMENT_OPENER)
        if start < 0:
            break
        end = result.find('\n', start)
        if end < 0:
            result = result[:start].rstrip(' \t')
        else:
            result = result[:start].rstrip(' \t') + result[end:]
    return result
