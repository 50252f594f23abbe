"""IR generator — lowers a Program to one `@main` function of labeled blocks.

Every source line from 1 to the last statement's line gets a block named
`line_<n>`. Lowering a statement reports whether control can still run off
its end; when it can, the block is closed with a jump to the next line.
Conditionals and input reading add synthesized blocks numbered by a
per-generation counter.
"""

from __future__ import annotations

import logging

from .ast import (
    Add,
    Assign,
    BinaryExpr,
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

logger = logging.getLogger(__name__)

_INSTR_INDENT = "    "
_LABEL_INDENT = "  "

_BIN_OPS: dict[type, str] = {
    Add: "add.i64",
    Sub: "sub.i64",
    Mul: "mul.i64",
}

ASCII_SPACE = 32
ASCII_NEWLINE = 10
ASCII_ZERO = 48

INPUT_ACC = "%in_acc"
INPUT_BYTE = "%in_byte"


class CodegenError(UmjunsikError):
    """Error during IR generation."""

    def __init__(self, msg: str, pos: Pos | None = None):
        if pos is None:
            super().__init__(msg)
        else:
            super().__init__(msg, pos.line, pos.col)
        self.pos: Pos | None = pos


def line_label(line: int) -> str:
    return "line_" + str(line)


# ============================================================
# PRE-PASSES
# ============================================================


def _collect_expr(expr: Expr, slots: set[int]) -> None:
    if isinstance(expr, VarRef):
        slots.add(expr.slot)
    elif isinstance(expr, BinaryExpr):
        _collect_expr(expr.left, slots)
        _collect_expr(expr.right, slots)


def _collect_stmt(stmt: Stmt, slots: set[int]) -> None:
    if isinstance(stmt, Assign):
        slots.add(stmt.slot)
        _collect_expr(stmt.value, slots)
    elif isinstance(stmt, Input):
        slots.add(stmt.slot)
    elif isinstance(stmt, (PrintNum, PrintChar, Return)):
        _collect_expr(stmt.value, slots)
    elif isinstance(stmt, If):
        _collect_expr(stmt.cond, slots)
        for s in stmt.body:
            _collect_stmt(s, slots)


def collect_slots(program: Program) -> list[int]:
    """Every slot assigned, read into, or read anywhere in the program, ascending."""
    slots: set[int] = set()
    for stmt, _ in program.statements:
        _collect_stmt(stmt, slots)
    return sorted(slots)


def _check_goto(stmt: Stmt, max_line: int) -> None:
    if isinstance(stmt, Goto):
        if stmt.line < 1 or stmt.line > max_line:
            raise CodegenError(
                "goto target line "
                + str(stmt.line)
                + " is outside 1.."
                + str(max_line),
                stmt.pos,
            )
    elif isinstance(stmt, If):
        for s in stmt.body:
            _check_goto(s, max_line)


def check_goto_targets(program: Program) -> None:
    """Raise CodegenError for any goto past the last line, reachable or not."""
    max_line = program.max_line()
    for stmt, _ in program.statements:
        _check_goto(stmt, max_line)


def _has_input(stmts: list[Stmt]) -> bool:
    for s in stmts:
        if isinstance(s, Input):
            return True
        if isinstance(s, If) and _has_input(s.body):
            return True
    return False


def uses_input(program: Program) -> bool:
    return _has_input([stmt for stmt, _ in program.statements])


# ============================================================
# GENERATOR
# ============================================================


class IRGenerator:
    """Single-use generator; all counters belong to one `generate` call."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.temp_counter: int = 0
        self.block_counter: int = 0
        self.slot_ptrs: dict[int, str] = {}
        self.max_line: int = 0

    # ── Output helpers ───────────────────────────────────────

    def instr(self, text: str) -> None:
        self.lines.append(_INSTR_INDENT + text)

    def label(self, name: str) -> None:
        self.lines.append("")
        self.lines.append(_LABEL_INDENT + name + ":")

    def temp(self) -> str:
        name = "%t" + str(self.temp_counter)
        self.temp_counter += 1
        return name

    def next_block(self) -> int:
        k = self.block_counter
        self.block_counter += 1
        return k

    def slot_ptr(self, slot: int, pos: Pos) -> str:
        if slot not in self.slot_ptrs:
            raise CodegenError("variable slot " + str(slot) + " has no storage", pos)
        return self.slot_ptrs[slot]

    # ── Function ─────────────────────────────────────────────

    def generate(self, program: Program) -> str:
        self.max_line = program.max_line()
        check_goto_targets(program)
        self.lines.append("fn @main() -> i64 {")
        self.lines.append(_LABEL_INDENT + "entry:")
        for slot in collect_slots(program):
            ptr = "%var_ptr_" + str(slot)
            self.instr(ptr + " = alloc.ptr.stack i64")
            self.instr("store.i64 " + ptr + ", 0")
            self.slot_ptrs[slot] = ptr
        if uses_input(program):
            # one pair of scratch cells serves every input statement
            self.instr(INPUT_ACC + " = alloc.ptr.stack i64")
            self.instr(INPUT_BYTE + " = alloc.ptr.stack i64")
        if not program.statements:
            self.instr("ret.i64 0")
        else:
            self.instr("jmp " + line_label(program.statements[0][1]))
            self.emit_lines(program)
        self.lines.append("}")
        logger.debug(
            "generated %d line blocks, %d synthesized block groups, %d temporaries",
            self.max_line,
            self.block_counter,
            self.temp_counter,
        )
        return "\n".join(self.lines) + "\n"

    def emit_lines(self, program: Program) -> None:
        by_line: dict[int, list[Stmt]] = {}
        for stmt, line in program.statements:
            by_line.setdefault(line, []).append(stmt)
        falls = True
        for n in range(1, self.max_line + 1):
            self.label(line_label(n))
            falls = self.lower_block(by_line.get(n, []))
            if falls and n < self.max_line:
                self.instr("jmp " + line_label(n + 1))
        if falls:
            self.instr("ret.i64 0")

    def lower_block(self, stmts: list[Stmt]) -> bool:
        """Lower statements sharing one block; True if control runs off the end."""
        falls = True
        for i, stmt in enumerate(stmts):
            if not falls:
                logger.debug(
                    "dropping %d unreachable statement(s) at line %d",
                    len(stmts) - i,
                    stmt.pos.line,
                )
                break
            falls = self.lower_stmt(stmt)
        return falls

    # ── Statements ───────────────────────────────────────────

    def lower_stmt(self, stmt: Stmt) -> bool:
        if isinstance(stmt, Assign):
            value = self.lower_expr(stmt.value)
            self.instr("store.i64 " + self.slot_ptr(stmt.slot, stmt.pos) + ", " + value)
            return True
        if isinstance(stmt, Input):
            self.lower_input(stmt)
            return True
        if isinstance(stmt, PrintNum):
            self.instr("print " + self.lower_expr(stmt.value))
            return True
        if isinstance(stmt, PrintChar):
            self.instr("writebyte " + self.lower_expr(stmt.value))
            return True
        if isinstance(stmt, PrintNewline):
            nl = self.temp()
            self.instr(f"{nl} = add.i64 {ASCII_NEWLINE}, 0")
            self.instr("writebyte " + nl)
            return True
        if isinstance(stmt, If):
            self.lower_if(stmt)
            return True
        if isinstance(stmt, Goto):
            self.instr("jmp " + line_label(stmt.line))
            return False
        if isinstance(stmt, Return):
            self.instr("ret.i64 " + self.lower_expr(stmt.value))
            return False
        raise CodegenError("unknown statement " + type(stmt).__name__, stmt.pos)

    def lower_if(self, stmt: If) -> None:
        cond = self.lower_expr(stmt.cond)
        is_zero = self.temp()
        self.instr(f"{is_zero} = eq.i64 {cond}, 0")
        k = self.next_block()
        then_label = f"then_{k}"
        cont_label = f"cont_{k}"
        self.instr(f"br {is_zero}, {then_label}, {cont_label}")
        self.label(then_label)
        if self.lower_block(stmt.body):
            self.instr("jmp " + cont_label)
        self.label(cont_label)

    def lower_input(self, stmt: Input) -> None:
        """Read a decimal integer byte by byte.

        Spaces and newlines before the number are skipped; any other byte
        starts the number, and the first non-digit ends it.
        """
        target = self.slot_ptr(stmt.slot, stmt.pos)
        k = self.next_block()
        acc = INPUT_ACC
        cur = INPUT_BYTE
        skip = f"input_skip_{k}"
        start = f"input_start_{k}"
        loop = f"input_loop_{k}"
        digit = f"input_digit_{k}"
        done = f"input_done_{k}"
        self.instr("jmp " + skip)

        self.label(skip)
        b = self.temp()
        self.instr(f"{b} = readbyte")
        self.instr(f"store.i64 {cur}, {b}")
        is_space = self.temp()
        self.instr(f"{is_space} = eq.i64 {b}, {ASCII_SPACE}")
        is_newline = self.temp()
        self.instr(f"{is_newline} = eq.i64 {b}, {ASCII_NEWLINE}")
        is_blank = self.temp()
        self.instr(f"{is_blank} = add.i64 {is_space}, {is_newline}")
        self.instr(f"br {is_blank}, {skip}, {start}")

        self.label(start)
        self.instr(f"store.i64 {acc}, 0")
        self.instr("jmp " + loop)

        self.label(loop)
        c = self.temp()
        self.instr(f"{c} = load.i64 {cur}")
        # at most one equality holds, so their sum is the OR
        is_digit = ""
        for code in range(ASCII_ZERO, ASCII_ZERO + 10):
            hit = self.temp()
            self.instr(f"{hit} = eq.i64 {c}, {code}")
            if not is_digit:
                is_digit = hit
            else:
                total = self.temp()
                self.instr(f"{total} = add.i64 {is_digit}, {hit}")
                is_digit = total
        self.instr(f"br {is_digit}, {digit}, {done}")

        self.label(digit)
        old = self.temp()
        self.instr(f"{old} = load.i64 {acc}")
        ch = self.temp()
        self.instr(f"{ch} = load.i64 {cur}")
        scaled = self.temp()
        self.instr(f"{scaled} = mul.i64 {old}, 10")
        value = self.temp()
        self.instr(f"{value} = sub.i64 {ch}, {ASCII_ZERO}")
        new = self.temp()
        self.instr(f"{new} = add.i64 {scaled}, {value}")
        self.instr(f"store.i64 {acc}, {new}")
        nxt = self.temp()
        self.instr(f"{nxt} = readbyte")
        self.instr(f"store.i64 {cur}, {nxt}")
        self.instr("jmp " + loop)

        self.label(done)
        result = self.temp()
        self.instr(f"{result} = load.i64 {acc}")
        self.instr(f"store.i64 {target}, {result}")

    # ── Expressions ──────────────────────────────────────────

    def lower_expr(self, expr: Expr) -> str:
        """Emit code for expr and return the temporary holding its value."""
        if isinstance(expr, IntLit):
            t = self.temp()
            self.instr(f"{t} = add.i64 {expr.value}, 0")
            return t
        if isinstance(expr, VarRef):
            ptr = self.slot_ptr(expr.slot, expr.pos)
            t = self.temp()
            self.instr(f"{t} = load.i64 {ptr}")
            return t
        if isinstance(expr, BinaryExpr):
            left = self.lower_expr(expr.left)
            right = self.lower_expr(expr.right)
            t = self.temp()
            self.instr(f"{t} = {_BIN_OPS[type(expr)]} {left}, {right}")
            return t
        raise CodegenError("unknown expression " + type(expr).__name__, expr.pos)


def generate(program: Program) -> str:
    """Lower a parsed Program to IR text."""
    return IRGenerator().generate(program)
