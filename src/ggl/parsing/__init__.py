"""Parsing module for the GGL language."""

from ggl.parsing.ast import Program
from ggl.parsing.lexer import GGLLexer
from ggl.parsing.parser import GGLParser

__all__ = [
    "GGLLexer",
    "GGLParser",
    "Program",
]
