"""Umjunsik tokenizer — lexes source into a flat token list.

Variable identity is carried by repetition: a run of 어 reads a slot, and 엄
with the 어s adjacent to it assigns one. Both tokens keep the number of 어s
in `count` rather than in their text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import UmjunsikError

logger = logging.getLogger(__name__)


# Token type constants
TK_PROGRAM_START = "PROGRAM_START"
TK_PROGRAM_END = "PROGRAM_END"
TK_ASSIGN = "ASSIGN"
TK_VAR = "VAR"
TK_GOTO = "GOTO"
TK_CONSOLE = "CONSOLE"
TK_IF = "IF"
TK_RETURN = "RETURN"
TK_DOT = "DOT"
TK_COMMA = "COMMA"
TK_SPACE = "SPACE"
TK_TILDE = "TILDE"
TK_QUESTION = "QUESTION"
TK_EXCLAIM = "EXCLAIM"
TK_KEK = "KEK"
TK_NEWLINE = "NEWLINE"
TK_EOF = "EOF"

SYL_VAR = "어"
SYL_ASSIGN = "엄"
SYL_KEK = "ㅋ"
PROGRAM_START_WORD = "어떻게"
PROGRAM_END_LEAD = "이"
PROGRAM_END_PHRASE = "사람이름이냐"

# Keywords matched by their full spelling
KEYWORDS: dict[str, str] = {
    "준": TK_GOTO,
    "식": TK_CONSOLE,
    "동탄": TK_IF,
    "화이팅": TK_RETURN,
}

PUNCTUATION: dict[str, str] = {
    ".": TK_DOT,
    ",": TK_COMMA,
    " ": TK_SPACE,
    "\t": TK_SPACE,
    "~": TK_TILDE,
    "?": TK_QUESTION,
    "!": TK_EXCLAIM,
    SYL_KEK: TK_KEK,
    "\n": TK_NEWLINE,
}

KEYWORD_STARTS: set[str] = {"어", "엄", "준", "식", "동", "화", "이"}


class LexError(UmjunsikError):
    """Error during tokenization."""


class Token:
    """A token with type, source text, position and repetition count."""

    def __init__(self, type_: str, value: str, line: int, col: int, count: int = 0):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col
        self.count: int = count

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + (", count=" + str(self.count) if self.count else "")
            + ")"
        )


def _is_hangul(c: str) -> bool:
    return ("가" <= c <= "힣") or ("ㄱ" <= c <= "ㅎ") or ("ㅏ" <= c <= "ㅣ")


@dataclass(frozen=True)
class _Mark:
    """Restorable scanner position."""

    pos: int
    line: int
    col: int


class _Scanner:
    def __init__(self, source: str):
        self.src: str = source
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1
        self.tokens: list[Token] = []

    def peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.src):
            return self.src[idx]
        return ""

    def at(self, text: str) -> bool:
        return self.src.startswith(text, self.pos)

    def advance(self) -> str:
        c = self.src[self.pos]
        self.pos += 1
        if c == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return c

    def mark(self) -> _Mark:
        return _Mark(self.pos, self.line, self.col)

    def reset(self, mark: _Mark) -> None:
        self.pos = mark.pos
        self.line = mark.line
        self.col = mark.col

    def emit(self, type_: str, start: _Mark, count: int = 0) -> None:
        text = self.src[start.pos : self.pos]
        self.tokens.append(Token(type_, text, start.line, start.col, count))

    def count_run(self, syllable: str) -> int:
        n = 0
        while self.peek() == syllable:
            self.advance()
            n += 1
        return n

    def read_word(self) -> str:
        begin = self.pos
        while self.pos < len(self.src) and _is_hangul(self.src[self.pos]):
            self.advance()
        return self.src[begin : self.pos]

    # ── Scanning ─────────────────────────────────────────────

    def scan(self) -> list[Token]:
        while self.pos < len(self.src):
            c = self.src[self.pos]
            if c == "\r":
                self.advance()
                continue
            start = self.mark()
            if c in PUNCTUATION:
                self.advance()
                self.emit(PUNCTUATION[c], start)
                continue
            if c in KEYWORD_STARTS:
                self.scan_keyword(start)
                continue
            raise LexError("unexpected character " + repr(c), start.line, start.col)
        self.tokens.append(Token(TK_EOF, "", self.line, self.col))
        return self.tokens

    def scan_keyword(self, start: _Mark) -> None:
        c = self.peek()
        if c == SYL_VAR:
            if self.at(PROGRAM_START_WORD):
                for _ in PROGRAM_START_WORD:
                    self.advance()
                self.emit(TK_PROGRAM_START, start)
                return
            before = self.count_run(SYL_VAR)
            if self.peek() == SYL_ASSIGN:
                self.advance()
                after = self.count_run(SYL_VAR)
                self.emit(TK_ASSIGN, start, before + after)
            else:
                self.emit(TK_VAR, start, before)
            return
        if c == SYL_ASSIGN:
            self.advance()
            self.emit(TK_ASSIGN, start, self.count_run(SYL_VAR))
            return
        if c == PROGRAM_END_LEAD:
            self.advance()
            if self.peek() == " " and self.scan_program_end(start):
                return
            self.reset(start)
        for spelling, type_ in KEYWORDS.items():
            if self.at(spelling):
                for _ in spelling:
                    self.advance()
                self.emit(type_, start)
                return
        self.scan_generic(start)

    def scan_program_end(self, start: _Mark) -> bool:
        """Try to read the rest of `이 사람이름이냐ㅋㅋ` after the lead 이.

        Rewinds to just after 이 when the phrase is not there.
        """
        after_lead = self.mark()
        self.advance()
        word = self.read_word()
        if PROGRAM_END_PHRASE in word:
            self.count_run(SYL_KEK)
            self.emit(TK_PROGRAM_END, start)
            return True
        self.reset(after_lead)
        return False

    def scan_generic(self, start: _Mark) -> None:
        word = self.read_word()
        if PROGRAM_END_PHRASE in word:
            self.emit(TK_PROGRAM_END, start)
            return
        if word in KEYWORDS:
            self.emit(KEYWORDS[word], start)
            return
        raise LexError("unknown keyword '" + word + "'", start.line, start.col)


def tokenize(source: str) -> list[Token]:
    """Tokenize Umjunsik source into a flat list ending with TK_EOF."""
    tokens = _Scanner(source).scan()
    logger.debug("tokenized %d characters into %d tokens", len(source), len(tokens))
    return tokens
