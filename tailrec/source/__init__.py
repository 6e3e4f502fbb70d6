"""
Source handling: comments, indented blocks, and the conversion between
functions and their ``def`` text.
"""

from tailrec.source.normalizer import remove_comments
from tailrec.source.blocks import Block, find_blocks
from tailrec.source.codec import FunctionCodec, FunctionText

__all__ = [
    'remove_comments',
    'Block',
    'find_blocks',
    'FunctionCodec',
    'FunctionText',
]
