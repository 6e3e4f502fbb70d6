"""
Top-Level Unroller
==================

A function's own body never shows a ``def`` header followed by a call to
it, so the loop rewriter cannot see the outermost self recursion. The
unroller re-expresses the body as a local definition immediately invoked
through a named-let binding::

    def fact(n, acc):                   def fact(n, acc):
        if n <= 1:                          def _fact_body(n, acc):
            return acc          -->             if n <= 1:
        return fact(n - 1, acc * n)                 return acc
                                                return fact(n - 1, acc * n)
                                            return (fact := _fact_body)(n, acc)

and lets ``LoopRewriter`` unroll that shell like any other block.
"""

import logging
from typing import Optional, Tuple

from tailrec.source.text import indent_lines, indent_unit, signature_parameters
from tailrec.rewrite.loop_rewriter import LoopRewriter

logger = logging.getLogger(__name__)


class TopLevelUnroller:
    """
    Applies the loop rewriter to the outermost function itself.

    Usage:
        >>> unroller = TopLevelUnroller(LoopRewriter())
        >>> unrolled = unroller.wrap_for_self_call('def fact(n, acc):', body, 'fact')
        >>> if unrolled is not None:
        ...     head, body = unrolled
    """

    SHELL_NAME = '_{name}_body'

    def __init__(self, rewriter: Optional[LoopRewriter] = None):
        self.rewriter = rewriter or LoopRewriter()

    def build_shell(self, body_text: str, name: str, params) -> str:
        """The named-let shell around *body_text*."""
        shell_name = self.SHELL_NAME.format(name=name)
        names = ', '.join(params)
        return (
            f"def {shell_name}({names}):\n"
            + indent_lines(body_text, indent_unit(body_text))
            + f"return ({name} := {shell_name})({names})\n"
        )

    def wrap_for_self_call(self, head_text: str, body_text: str, name: str) -> Optional[Tuple[str, str]]:
        """
        Unroll top-level tail calls of *name*.

        Returns ``(head_text, new_body)``, or ``None`` when the body has no
        top-level tail call (or a variadic signature), in which case the
        caller keeps its head and body.
        """
        if not head_text or not body_text or not name:
            return None

        params = signature_parameters(head_text)
        if any(param.startswith('*') for param in params):
            logger.debug(f"{name}: variadic signature, top level left as is")
            return None

        if not body_text.endswith('\n'):
            body_text += '\n'
        shell = self.build_shell(body_text, name, params)
        unrolled = self.rewriter.optimize_body(head_text, shell)
        if unrolled == shell:
            logger.debug(f"{name}: no tail call at the top level")
            return None
        return head_text, unrolled
