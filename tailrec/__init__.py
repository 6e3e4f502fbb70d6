"""
tailrec: Self Tail-Call Elimination for Python Functions
=========================================================

Python keeps a frame for every call, so a function that recurses in tail
position runs out of stack long before it runs out of work. ``tailrec``
rewrites the source text of such a function so that every self tail call
becomes an iteration of a ``while True`` loop, then compiles the text back
into a drop-in replacement.

Core Components:
    - source: comment stripping, block scanning and the function codec
    - rewrite: tail-call detection, conditional expansion, loop rewriting
    - runtime: the ``recur`` decorator and ``TailRecOptimizer``

Usage:
    >>> from tailrec import recur
    >>> @recur
    ... def fact(n, acc):
    ...     if n <= 1:
    ...         return acc
    ...     return fact(n - 1, acc * n)
    >>> fact(5, 1)
    120
"""

__version__ = "1.0.0"

from tailrec.errors import (
    TailRecError,
    DecompilationUnsupported,
    UnrecognizedFunctionFormat,
    MalformedSourceError,
    AmbiguousConditionalError,
    NameCollisionError,
    CompilationError,
)
from tailrec.source import FunctionCodec, FunctionText, remove_comments, find_blocks
from tailrec.rewrite import LoopRewriter, TopLevelUnroller, expand_conditionals, match_tail_form
from tailrec.runtime import TailRecOptimizer, RecurReport, recur, optimize_source

__all__ = [
    'recur',
    'optimize_source',
    'TailRecOptimizer',
    'RecurReport',
    'FunctionCodec',
    'FunctionText',
    'LoopRewriter',
    'TopLevelUnroller',
    'expand_conditionals',
    'match_tail_form',
    'remove_comments',
    'find_blocks',
    'TailRecError',
    'DecompilationUnsupported',
    'UnrecognizedFunctionFormat',
    'MalformedSourceError',
    'AmbiguousConditionalError',
    'NameCollisionError',
    'CompilationError',
]
