"""IR verifier — checks the block structure of generated IR text.

The backend accepts a function only when every block ends in exactly one
terminator, every label is defined once, and every jump names a defined
label. Positions in errors are IR text lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .errors import UmjunsikError

_LABEL_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*):$")
_DEF_RE = re.compile(r"^(%[A-Za-z0-9_]+) = ")

TERMINATORS: tuple[str, ...] = ("jmp ", "br ", "ret.i64 ")


class VerifyError(UmjunsikError):
    """Malformed IR."""


@dataclass
class Block:
    label: str
    line: int
    instrs: list[tuple[int, str]] = field(default_factory=list)

    def terminator(self) -> str | None:
        if self.instrs and self.instrs[-1][1].startswith(TERMINATORS):
            return self.instrs[-1][1]
        return None


def _targets(instr: str) -> list[str]:
    if instr.startswith("jmp "):
        return [instr[4:].strip()]
    if instr.startswith("br "):
        parts = [p.strip() for p in instr[3:].split(",")]
        return parts[1:]
    return []


def split_blocks(ir: str) -> list[Block]:
    """Split the body of one IR function into labeled blocks."""
    lines = ir.split("\n")
    blocks: list[Block] = []
    in_fn = False
    for lineno, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text:
            continue
        if text.startswith("fn "):
            if in_fn:
                raise VerifyError("nested function header", lineno, 1)
            in_fn = True
            continue
        if text == "}":
            in_fn = False
            continue
        if not in_fn:
            raise VerifyError("text outside function: " + text, lineno, 1)
        m = _LABEL_RE.match(raw)
        if m:
            blocks.append(Block(m.group(1), lineno))
            continue
        if not blocks:
            raise VerifyError("instruction before first label", lineno, 1)
        blocks[-1].instrs.append((lineno, text))
    if in_fn:
        raise VerifyError("unterminated function", len(lines), 1)
    return blocks


def verify(ir: str) -> None:
    """Raise VerifyError if the IR breaks block or label discipline."""
    blocks = split_blocks(ir)
    labels: dict[str, int] = {}
    for block in blocks:
        if block.label in labels:
            raise VerifyError("label '" + block.label + "' defined twice", block.line, 1)
        labels[block.label] = block.line
    defined: set[str] = set()
    for block in blocks:
        if block.terminator() is None:
            raise VerifyError(
                "block '" + block.label + "' does not end in a terminator", block.line, 1
            )
        for idx, (lineno, instr) in enumerate(block.instrs):
            if idx < len(block.instrs) - 1 and instr.startswith(TERMINATORS):
                raise VerifyError(
                    "instruction after terminator in block '" + block.label + "'",
                    block.instrs[idx + 1][0],
                    1,
                )
            m = _DEF_RE.match(instr)
            if m:
                name = m.group(1)
                if name in defined:
                    raise VerifyError("value '" + name + "' defined twice", lineno, 1)
                defined.add(name)
            for target in _targets(instr):
                if target not in labels:
                    raise VerifyError("jump to undefined label '" + target + "'", lineno, 1)
