"""Umjunsik AST — parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass, field


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for all expression nodes."""

    pos: Pos


@dataclass
class IntLit(Expr):
    """Net value of a run of `.` and `,`."""

    value: int


@dataclass
class VarRef(Expr):
    """Read of a variable slot (0-based)."""

    slot: int


@dataclass
class BinaryExpr(Expr):
    left: Expr
    right: Expr


@dataclass
class Add(BinaryExpr):
    pass


@dataclass
class Sub(BinaryExpr):
    pass


@dataclass
class Mul(BinaryExpr):
    """Two adjacent terms."""


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statement nodes."""

    pos: Pos


@dataclass
class Assign(Stmt):
    """엄..: store a value into a slot."""

    slot: int
    value: Expr


@dataclass
class Input(Stmt):
    """엄식?: read an integer from stdin into a slot."""

    slot: int


@dataclass
class PrintNum(Stmt):
    """식..!: print the decimal value."""

    value: Expr


@dataclass
class PrintChar(Stmt):
    """식..ㅋ: write the value as one byte."""

    value: Expr


@dataclass
class PrintNewline(Stmt):
    """식ㅋ."""


@dataclass
class If(Stmt):
    """동탄{cond}?{body}: body runs when cond is zero."""

    cond: Expr
    body: list[Stmt]


@dataclass
class Goto(Stmt):
    """준..: target line resolved at parse time."""

    line: int


@dataclass
class Return(Stmt):
    """화이팅!..: exit main with a value."""

    value: Expr


# ============================================================
# PROGRAM
# ============================================================


@dataclass
class Program:
    """Statements paired with the source line they start on."""

    statements: list[tuple[Stmt, int]] = field(default_factory=list)

    def max_line(self) -> int:
        if not self.statements:
            return 0
        return max(line for _, line in self.statements)


# ============================================================
# SERIALIZATION
# ============================================================


def expr_to_dict(expr: Expr) -> dict[str, object]:
    if isinstance(expr, IntLit):
        return {"kind": "int", "value": expr.value}
    if isinstance(expr, VarRef):
        return {"kind": "var", "slot": expr.slot}
    if isinstance(expr, BinaryExpr):
        return {
            "kind": type(expr).__name__.lower(),
            "left": expr_to_dict(expr.left),
            "right": expr_to_dict(expr.right),
        }
    raise TypeError("unknown expression node: " + type(expr).__name__)


def stmt_to_dict(stmt: Stmt) -> dict[str, object]:
    if isinstance(stmt, Assign):
        return {"kind": "assign", "slot": stmt.slot, "value": expr_to_dict(stmt.value)}
    if isinstance(stmt, Input):
        return {"kind": "input", "slot": stmt.slot}
    if isinstance(stmt, PrintNum):
        return {"kind": "print_num", "value": expr_to_dict(stmt.value)}
    if isinstance(stmt, PrintChar):
        return {"kind": "print_char", "value": expr_to_dict(stmt.value)}
    if isinstance(stmt, PrintNewline):
        return {"kind": "print_newline"}
    if isinstance(stmt, If):
        return {
            "kind": "if",
            "cond": expr_to_dict(stmt.cond),
            "body": [stmt_to_dict(s) for s in stmt.body],
        }
    if isinstance(stmt, Goto):
        return {"kind": "goto", "target": stmt.line}
    if isinstance(stmt, Return):
        return {"kind": "return", "value": expr_to_dict(stmt.value)}
    raise TypeError("unknown statement node: " + type(stmt).__name__)


def program_to_dict(program: Program) -> dict[str, object]:
    """Plain dict/list form of a program, for dumps and test assertions."""
    statements: list[dict[str, object]] = []
    for stmt, line in program.statements:
        d = stmt_to_dict(stmt)
        d["line"] = line
        statements.append(d)
    return {"statements": statements}
