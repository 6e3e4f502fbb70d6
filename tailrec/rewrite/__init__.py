"""
Textual rewriting of self tail calls into loops.
"""

from tailrec.rewrite.detector import TAIL_FORMS, TailCallMatch, match_tail_form
from tailrec.rewrite.conditionals import expand_conditionals
from tailrec.rewrite.loop_rewriter import LoopRewriter, bind_arguments
from tailrec.rewrite.unroller import TopLevelUnroller

__all__ = [
    'TAIL_FORMS',
    'TailCallMatch',
    'match_tail_form',
    'expand_conditionals',
    'LoopRewriter',
    'bind_arguments',
    'TopLevelUnroller',
]
