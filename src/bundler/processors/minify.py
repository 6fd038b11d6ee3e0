"""
=============================================================================
MINIFIERS
=============================================================================

JavaScript and CSS minification as chain steps, backed by rjsmin and
rcssmin.

Neither library validates its input; fed a broken file they happily emit
broken output. Serving that would push the failure into every browser, so
each minifier first runs a lightweight structural scan and fails the
compile with a SYNTAX_ERROR instead.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT THE SCAN CATCHES                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   function f() { return [1, 2;        unclosed '[' / '{'            │
    │   var s = "abc                        unterminated string           │
    │   /* license                          unterminated comment          │
    │   if (x)) {}                          unexpected ')'                │
    │   var r = /ab[c/;                     unterminated regex (JS)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

It is not a parser. Grammar errors that keep brackets balanced
("var = ;") pass through untouched.

=============================================================================
"""

from dataclasses import dataclass

import rcssmin
import rjsmin

from ..errors import ProcessingError, ProcessingErrorKind
from .base import Processor, ProcessingContext


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class CodeSettings:
    """JavaScript minifier settings."""
    keep_bang_comments: bool = False    # Keep /*! license */ comments
    validate: bool = True               # Run the structural scan first

    def key(self) -> str:
        return f"keep_bang_comments={self.keep_bang_comments};validate={self.validate}"


@dataclass(frozen=True)
class CssSettings:
    """CSS minifier settings."""
    keep_bang_comments: bool = False
    validate: bool = True

    def key(self) -> str:
        return f"keep_bang_comments={self.keep_bang_comments};validate={self.validate}"


# =============================================================================
# PROCESSORS
# =============================================================================

class JavaScriptMinifier(Processor):
    """Minifies JavaScript with rjsmin."""

    def __init__(self, settings: CodeSettings | None = None):
        self.settings = settings or CodeSettings()

    def process(self, text: str, context: ProcessingContext) -> str:
        if self.settings.validate:
            try:
                check_javascript(text)
            except ProcessingError as e:
                e.step = self.name
                raise
        return rjsmin.jsmin(text, keep_bang_comments=self.settings.keep_bang_comments)

    def settings_key(self) -> str:
        return self.settings.key()


class CssMinifier(Processor):
    """Minifies CSS with rcssmin."""

    def __init__(self, settings: CssSettings | None = None):
        self.settings = settings or CssSettings()

    def process(self, text: str, context: ProcessingContext) -> str:
        if self.settings.validate:
            try:
                check_css(text)
            except ProcessingError as e:
                e.step = self.name
                raise
        return rcssmin.cssmin(text, keep_bang_comments=self.settings.keep_bang_comments)

    def settings_key(self) -> str:
        return self.settings.key()


# =============================================================================
# STRUCTURAL SCANS
# =============================================================================

_CLOSERS = {")": "(", "]": "[", "}": "{"}

# After one of these a '/' starts a regex literal rather than a division.
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = {
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await",
}


def _syntax_error(message: str, line: int) -> ProcessingError:
    return ProcessingError(message, kind=ProcessingErrorKind.SYNTAX_ERROR, line=line)


def _skip_block_comment(text: str, i: int, line: int) -> tuple[int, int]:
    end = text.find("*/", i + 2)
    if end == -1:
        raise _syntax_error("Unterminated comment", line)
    return end + 2, line + text.count("\n", i, end)


def _skip_string(text: str, i: int, line: int, multiline: bool = False) -> tuple[int, int]:
    quote = text[i]
    start_line = line
    i += 1
    while i < len(text):
        c = text[i]
        if c == "\\":
            if i + 1 < len(text) and text[i + 1] == "\n":
                line += 1
            i += 2
            continue
        if c == quote:
            return i + 1, line
        if c == "\n":
            if not multiline:
                raise _syntax_error("Unterminated string literal", start_line)
            line += 1
        i += 1
    raise _syntax_error("Unterminated string literal", start_line)


def _skip_regex(text: str, i: int, line: int) -> int:
    in_class = False
    i += 1
    while i < len(text):
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == "\n":
            break
        if c == "[":
            in_class = True
        elif c == "]":
            in_class = False
        elif c == "/" and not in_class:
            i += 1
            while i < len(text) and (text[i].isalnum() or text[i] == "_"):
                i += 1
            return i
        i += 1
    raise _syntax_error("Unterminated regular expression", line)


def _check_brackets(stack: list, c: str, line: int) -> None:
    if c in "([{":
        stack.append((c, line))
    elif c in _CLOSERS:
        if not stack or stack[-1][0] != _CLOSERS[c]:
            raise _syntax_error(f"Unexpected '{c}'", line)
        stack.pop()


def _check_unclosed(stack: list) -> None:
    if stack:
        opener, opened_at = stack[-1]
        raise _syntax_error(f"Unclosed '{opener}'", opened_at)


def check_javascript(text: str) -> None:
    """
    Structural scan of JavaScript source.

    Raises:
        ProcessingError: kind=SYNTAX_ERROR with the offending line.
    """
    stack: list = []
    line = 1
    prev = ""       # last significant character ("a" for identifiers/values)
    word = ""       # last identifier, for keyword-before-regex detection
    i, n = 0, len(text)

    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if c == "\n":
            line += 1
            i += 1
            continue
        if c.isspace():
            i += 1
            continue

        if c == "/" and nxt == "/":
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if c == "/" and nxt == "*":
            i, line = _skip_block_comment(text, i, line)
            continue

        if c in "'\"":
            i, line = _skip_string(text, i, line)
            prev, word = "a", ""
            continue
        if c == "`":
            i, line = _skip_string(text, i, line, multiline=True)
            prev, word = "a", ""
            continue

        if c == "/" and (prev == "" or prev in _REGEX_PRECEDERS or word in _REGEX_KEYWORDS):
            i = _skip_regex(text, i, line)
            prev, word = "a", ""
            continue

        if c.isalnum() or c in "_$":
            start = i
            while i < n and (text[i].isalnum() or text[i] in "_$"):
                i += 1
            word = text[start:i]
            prev = "a"
            continue

        _check_brackets(stack, c, line)
        prev, word = c, ""
        i += 1

    _check_unclosed(stack)


def check_css(text: str) -> None:
    """
    Structural scan of a stylesheet.

    Raises:
        ProcessingError: kind=SYNTAX_ERROR with the offending line.
    """
    stack: list = []
    line = 1
    i, n = 0, len(text)

    while i < n:
        c = text[i]
        if c == "\n":
            line += 1
            i += 1
            continue
        if c == "/" and i + 1 < n and text[i + 1] == "*":
            i, line = _skip_block_comment(text, i, line)
            continue
        if c in "'\"":
            i, line = _skip_string(text, i, line)
            continue
        if c == "\\":
            i += 2
            continue
        _check_brackets(stack, c, line)
        i += 1

    _check_unclosed(stack)
