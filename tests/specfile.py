"""Reader for `.tests` case files shared by the data-driven tests.

Format:

    === case name
    stdin: optional escaped bytes
    source lines
    ---
    expected lines
    ---

The `stdin:` line is only recognized as the first line of a case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

HEADER = "=== "
RULE = "---"
STDIN = "stdin:"


@dataclass
class Case:
    name: str
    source_lines: list[str] = field(default_factory=list)
    expected_lines: list[str] = field(default_factory=list)
    stdin: bytes = b""

    @property
    def source(self) -> str:
        return "\n".join(self.source_lines)

    @property
    def expected(self) -> str:
        return "\n".join(self.expected_lines).strip()


def directive(line: str, name: str) -> str | None:
    """Value of a `name: value` line, or None when the line is something else."""
    prefix = name + ":"
    if not line.startswith(prefix):
        return None
    value = line[len(prefix) :]
    return value[1:] if value.startswith(" ") else value


def unescape(text: str) -> bytes:
    """Decode backslash escapes in an ASCII directive value."""
    return text.encode("ascii").decode("unicode_escape").encode("latin-1")


def read_cases(path: Path) -> list[Case]:
    cases: list[Case] = []
    case: Case | None = None
    # 0 = source, 1 = expected, 2 = closed
    section = 0
    for line in path.read_text(encoding="utf-8").split("\n"):
        if line.startswith(HEADER):
            case = Case(line[len(HEADER) :].strip())
            cases.append(case)
            section = 0
            continue
        if case is None:
            continue
        if line.startswith(RULE):
            section += 1
            continue
        if section == 0:
            value = directive(line, "stdin") if not case.source_lines else None
            if value is not None:
                case.stdin = unescape(value)
            else:
                case.source_lines.append(line)
        elif section == 1:
            case.expected_lines.append(line)
    return cases


def discover_cases(test_dir: Path) -> list[tuple[str, Case]]:
    """All cases under test_dir as (test_id, case), ids like `file/name`."""
    return [
        (path.stem + "/" + case.name, case)
        for path in sorted(test_dir.glob("*.tests"))
        for case in read_cases(path)
    ]


def resolve_dotpath(obj: object, path: str) -> object:
    """Follow `statements.0.value.kind`-style paths; `length` yields len()."""
    current = obj
    for part in path.split("."):
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(part + " on " + type(current).__name__)
    return current


def to_comparable(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)
