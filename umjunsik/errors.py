"""Error base shared by every compiler phase."""

from __future__ import annotations


class UmjunsikError(Exception):
    """Base error for tokenizing, parsing, generating and verifying."""

    def __init__(self, msg: str, line: int = 0, col: int = 0):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        if line > 0:
            super().__init__(msg + " at line " + str(line) + " col " + str(col))
        else:
            super().__init__(msg)
