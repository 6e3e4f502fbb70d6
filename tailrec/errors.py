"""
Error Taxonomy
==============

Every failure inside the rewriting pipeline is one of these exceptions.
They propagate unchanged to ``TailRecOptimizer.optimize``, which logs them
and hands back the original, unoptimized function.
"""


class TailRecError(Exception):
    """Base class for all tail-call rewriting failures."""


class DecompilationUnsupported(TailRecError):
    """The callable has no obtainable Python source text."""


class UnrecognizedFunctionFormat(TailRecError):
    """The source text is not a plain ``def`` this package can rewrite."""


class MalformedSourceError(TailRecError):
    """The text could not be split into indented blocks."""


class AmbiguousConditionalError(TailRecError):
    """A self call appears in the condition of its own guarding ``if``/``else``."""


class NameCollisionError(TailRecError):
    """A ``<param>_new`` temporary is already used as an identifier."""


class CompilationError(TailRecError):
    """The rewritten text did not compile back into a function."""
