"""Allow-path glob compiler.

Globs are tokenized into literal, ``*``, ``**`` and ``?`` tokens and then
compiled into an anchored regular expression, one token at a time:

* ``*`` matches any run of characters within one path segment,
* ``**`` matches across segments, including zero segments (``**/x`` matches
  ``x``; ``src/**`` matches ``src`` and everything below it),
* ``?`` matches exactly one character other than ``/``.

Paths are always compared in POSIX form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


class TokenKind(str, Enum):
    LITERAL = "literal"
    STAR = "star"
    DOUBLESTAR = "doublestar"
    QUESTION = "question"


@dataclass(frozen=True)
class GlobToken:
    kind: TokenKind
    text: str = ""


def tokenize_glob(pattern: str) -> list[GlobToken]:
    """Split *pattern* into glob tokens; adjacent literal characters are merged."""
    tokens: list[GlobToken] = []
    literal: list[str] = []

    def flush() -> None:
        if literal:
            tokens.append(GlobToken(TokenKind.LITERAL, "".join(literal)))
            literal.clear()

    i = 0
    pattern = pattern.replace("\\", "/")
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            flush()
            if pattern.startswith("**", i):
                tokens.append(GlobToken(TokenKind.DOUBLESTAR))
                i += 2
                # ``***`` and longer collapse into a single ``**``.
                while i < len(pattern) and pattern[i] == "*":
                    i += 1
                continue
            tokens.append(GlobToken(TokenKind.STAR))
        elif ch == "?":
            flush()
            tokens.append(GlobToken(TokenKind.QUESTION))
        else:
            literal.append(ch)
        i += 1
    flush()
    return tokens


def _compile_tokens(tokens: list[GlobToken]) -> str:
    parts: list[str] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None

        if token.kind is TokenKind.LITERAL:
            text = token.text
            if (
                nxt is not None
                and nxt.kind is TokenKind.DOUBLESTAR
                and text.endswith("/")
                and i + 2 == len(tokens)
            ):
                # Trailing ``dir/**`` also matches ``dir`` itself.
                parts.append(re.escape(text[:-1]) + "(?:/.*)?")
                i += 2
                continue
            parts.append(re.escape(text))
        elif token.kind is TokenKind.STAR:
            parts.append("[^/]*")
        elif token.kind is TokenKind.QUESTION:
            parts.append("[^/]")
        elif token.kind is TokenKind.DOUBLESTAR:
            if nxt is not None and nxt.kind is TokenKind.LITERAL and nxt.text.startswith("/"):
                # ``**/`` spans zero or more whole segments.
                parts.append("(?:.*/)?")
                rest = nxt.text[1:]
                if rest:
                    parts.append(re.escape(rest))
                i += 2
                continue
            parts.append(".*")
        i += 1
    return "".join(parts)


@dataclass(frozen=True)
class GlobMatcher:
    """A compiled allow-path glob."""

    pattern: str
    tokens: tuple[GlobToken, ...] = field(repr=False)
    regex: re.Pattern[str] = field(repr=False)

    def matches(self, path: str) -> bool:
        """Return ``True`` if the relative POSIX *path* matches this glob."""
        return self.regex.fullmatch(path.replace("\\", "/")) is not None


def compile_glob(pattern: str) -> GlobMatcher:
    """Tokenize and compile *pattern* into a :class:`GlobMatcher`."""
    tokens = tokenize_glob(pattern)
    regex = re.compile(_compile_tokens(tokens))
    return GlobMatcher(pattern=pattern, tokens=tuple(tokens), regex=regex)


def compile_globs(patterns: list[str] | None) -> list[GlobMatcher]:
    """Compile every pattern in *patterns* (``None`` yields an empty list)."""
    return [compile_glob(p) for p in patterns or []]
