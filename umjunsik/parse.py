"""Umjunsik parser — recursive descent, one method per grammar production."""

from __future__ import annotations

import logging

from .ast import (
    Add,
    Assign,
    Expr,
    Goto,
    If,
    Input,
    IntLit,
    Mul,
    Pos,
    PrintChar,
    PrintNewline,
    PrintNum,
    Program,
    Return,
    Stmt,
    Sub,
    VarRef,
)
from .errors import UmjunsikError
from .tokens import (
    TK_ASSIGN,
    TK_COMMA,
    TK_CONSOLE,
    TK_DOT,
    TK_EOF,
    TK_EXCLAIM,
    TK_GOTO,
    TK_IF,
    TK_KEK,
    TK_NEWLINE,
    TK_PROGRAM_END,
    TK_PROGRAM_START,
    TK_QUESTION,
    TK_RETURN,
    TK_SPACE,
    TK_TILDE,
    TK_VAR,
    Token,
)

logger = logging.getLogger(__name__)

# Tokens that end a statement sequence without being part of it
STMT_END: set[str] = {TK_NEWLINE, TK_TILDE, TK_EOF, TK_PROGRAM_END}

TERM_START: set[str] = {TK_DOT, TK_COMMA, TK_VAR}

# Limits on conditional nesting and terms per product; the tree walkers recurse
MAX_NESTING = 100
MAX_TERMS = 256


class ParseError(UmjunsikError):
    """Parse error with location info and the offending token."""

    def __init__(self, msg: str, token: Token, index: int):
        super().__init__(msg, token.line, token.col)
        self.token: Token = token
        self.index: int = index


def fold_constant(expr: Expr) -> int | None:
    """Evaluate an expression with no variable reads; None if it reads one."""
    if isinstance(expr, IntLit):
        return expr.value
    if isinstance(expr, VarRef):
        return None
    if isinstance(expr, (Add, Sub, Mul)):
        left = fold_constant(expr.left)
        right = fold_constant(expr.right)
        if left is None or right is None:
            return None
        if isinstance(expr, Add):
            return left + right
        if isinstance(expr, Sub):
            return left - right
        return left * right
    return None


class Parser:
    """Recursive descent parser for Umjunsik."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.depth: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[len(self.tokens) - 1]

    def advance(self) -> Token:
        tok = self.current()
        if self.pos < len(self.tokens):
            self.pos += 1
        return tok

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def expect(self, type_: str, what: str) -> Token:
        tok = self.current()
        if tok.type != type_:
            raise self.error("expected " + what + ", got " + _describe(tok))
        return self.advance()

    def error(self, msg: str) -> ParseError:
        return ParseError(msg, self.current(), self.pos)

    def skip_spaces(self) -> None:
        while self.at_type(TK_SPACE):
            self.advance()

    def skip_blank(self) -> None:
        while self.at_type(TK_NEWLINE) or self.at_type(TK_SPACE):
            self.advance()

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Program:
        self.skip_spaces()
        self.expect(TK_PROGRAM_START, "program start '어떻게'")
        self.skip_blank()
        program = Program()
        while True:
            self.skip_blank()
            if self.at_type(TK_PROGRAM_END):
                self.advance()
                break
            if self.at_type(TK_EOF):
                break
            if self.at_type(TK_TILDE):
                self.advance()
                continue
            line = self.current().line
            program.statements.append((self.parse_stmt(), line))
        logger.debug("parsed %d statements", len(program.statements))
        return program

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        self.skip_spaces()
        tok = self.current()
        if tok.type == TK_ASSIGN:
            return self.parse_assign()
        if tok.type == TK_CONSOLE:
            return self.parse_console()
        if tok.type == TK_IF:
            return self.parse_if()
        if tok.type == TK_GOTO:
            return self.parse_goto()
        if tok.type == TK_RETURN:
            return self.parse_return()
        raise self.error("unexpected " + _describe(tok) + " at statement start")

    def parse_assign(self) -> Stmt:
        pos = self._pos()
        slot = self.advance().count
        self.skip_spaces()
        if self.at_type(TK_CONSOLE):
            self.advance()
            self.skip_spaces()
            if not self.at_type(TK_QUESTION):
                raise self.error("expected '?' after '식' for input")
            self.advance()
            return Input(pos, slot)
        if self.current().type in STMT_END:
            return Assign(pos, slot, IntLit(self._pos(), 0))
        return Assign(pos, slot, self.parse_expr())

    def parse_console(self) -> Stmt:
        pos = self._pos()
        self.advance()
        self.skip_spaces()
        if self.at_type(TK_KEK):
            self.advance()
            return PrintNewline(pos)
        if self.at_type(TK_QUESTION):
            raise self.error("input '식?' must be the value of an assignment")
        value = self.parse_expr()
        self.skip_spaces()
        if self.at_type(TK_KEK):
            self.advance()
            return PrintChar(pos, value)
        if self.at_type(TK_EXCLAIM):
            self.advance()
            return PrintNum(pos, value)
        raise self.error(
            "expected 'ㅋ' or '!' after console expression, got "
            + _describe(self.current())
        )

    def parse_if(self) -> Stmt:
        pos = self._pos()
        if self.depth >= MAX_NESTING:
            raise self.error(
                "conditionals nested deeper than " + str(MAX_NESTING) + " levels"
            )
        self.advance()
        cond = self.parse_expr()
        self.skip_spaces()
        self.expect(TK_QUESTION, "'?' after condition")
        body: list[Stmt] = []
        self.skip_spaces()
        self.depth += 1
        while self.current().type not in STMT_END:
            body.append(self.parse_stmt())
            self.skip_spaces()
        self.depth -= 1
        return If(pos, cond, body)

    def parse_goto(self) -> Stmt:
        pos = self._pos()
        self.advance()
        self.skip_spaces()
        target_tok = self.current()
        target_idx = self.pos
        target = fold_constant(self.parse_expr())
        if target is None:
            raise ParseError(
                "goto target must be a constant expression", target_tok, target_idx
            )
        if target <= 0:
            raise ParseError(
                "goto target must be a positive line number, got " + str(target),
                target_tok,
                target_idx,
            )
        return Goto(pos, target)

    def parse_return(self) -> Stmt:
        pos = self._pos()
        self.advance()
        self.skip_spaces()
        self.expect(TK_EXCLAIM, "'!' after '화이팅'")
        return Return(pos, self.parse_expr())

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        """Adjacent terms multiply, left to right."""
        self.skip_spaces()
        left = self.parse_term()
        terms = 1
        while True:
            self.skip_spaces()
            if self.current().type not in TERM_START:
                return left
            if terms >= MAX_TERMS:
                raise self.error("product has more than " + str(MAX_TERMS) + " terms")
            terms += 1
            right = self.parse_term()
            left = Mul(left.pos, left, right)

    def parse_term(self) -> Expr:
        """A run of `.`/`,` with at most one variable before or after it."""
        pos = self._pos()
        net = 0
        punct = False
        var: VarRef | None = None
        while True:
            tok = self.current()
            if tok.type == TK_DOT:
                net += 1
                punct = True
            elif tok.type == TK_COMMA:
                net -= 1
                punct = True
            elif tok.type == TK_VAR and var is None:
                var = VarRef(Pos(tok.line, tok.col), tok.count - 1)
            else:
                break
            self.advance()
        if var is None:
            if not punct:
                raise self.error("expected expression, got " + _describe(self.current()))
            return IntLit(pos, net)
        if not punct:
            return var
        if net < 0:
            return Sub(pos, var, IntLit(pos, -net))
        return Add(pos, var, IntLit(pos, net))


def _describe(tok: Token) -> str:
    if tok.type == TK_EOF:
        return "end of input"
    if tok.type == TK_NEWLINE:
        return "newline"
    return tok.type + " '" + tok.value + "'"


def parse(tokens: list[Token]) -> Program:
    """Parse a token list into a Program."""
    return Parser(tokens).parse_program()
