"""Umjunsik compiler front end — public API."""

from __future__ import annotations

from .ast import Program
from .codegen import CodegenError as CodegenError, generate
from .errors import UmjunsikError as UmjunsikError
from .parse import ParseError as ParseError, Parser
from .tokens import LexError as LexError, Token, tokenize
from .verify import VerifyError as VerifyError, verify


def parse(source: str) -> Program:
    """Tokenize and parse Umjunsik source into a Program."""
    tokens: list[Token] = tokenize(source)
    return Parser(tokens).parse_program()


def compile_source(source: str, check: bool = False) -> str:
    """Compile Umjunsik source to IR text, optionally verifying the result."""
    ir = generate(parse(source))
    if check:
        verify(ir)
    return ir
