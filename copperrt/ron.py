"""Reading and writing RON (Rusty Object Notation) text.

``loads`` maps RON onto plain Python values:

* integers and floats become ``int`` and ``float``; ``inf`` and ``NaN`` are floats
* strings and characters become ``str``
* ``true``/``false`` become ``bool``
* ``None`` becomes ``None`` and ``Some(x)`` becomes ``x``
* ``[...]`` becomes a ``list`` and ``{k: v}`` a ``dict``
* structs ``(a: 1)`` and ``Name(a: 1)`` become a ``dict`` keyed by field name
* tuples ``(a, b)`` become a ``tuple``; the unit value ``()`` is the empty tuple
* a bare identifier ``Name`` becomes the string ``"Name"`` and an enum
  variant ``Name(x)`` becomes ``{"Name": x}`` (``{"Name": (x, y)}`` for more)

``dumps`` writes dicts as RON maps and dataclass instances as structs. A
dataclass field may carry ``metadata={"ron": "other_name"}`` to be written
under another name, and ``metadata={"skip_none": True}`` to be left out
when its value is ``None``.
"""

from __future__ import annotations

import dataclasses
import math
import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional

__all__ = ["RonError", "loads", "dumps"]

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_RADIX = re.compile(r"([+-]?)0([xbo])([0-9A-Fa-f_]+)")
_DECIMAL = re.compile(
    r"[+-]?(?:inf|NaN|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?)"
)
_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "/": "/",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "b": "\b",
    "f": "\f",
}
_RADIX_BASES = {"x": 16, "b": 2, "o": 8}


class RonError(ValueError):
    """Raised when RON text cannot be parsed."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        location = f"{line}:{column}: " if line is not None else ""
        super().__init__(f"{location}{message}")
        self.line = line
        self.column = column


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def fail(self, message: str) -> None:
        line = self.text.count("\n", 0, self.pos) + 1
        column = self.pos - (self.text.rfind("\n", 0, self.pos) + 1) + 1
        raise RonError(message, line, column)

    def skip_ws(self) -> None:
        text, n = self.text, len(self.text)
        while self.pos < n:
            if text[self.pos].isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                newline = text.find("\n", self.pos)
                self.pos = n if newline < 0 else newline + 1
            elif text.startswith("/*", self.pos):
                depth = 1
                self.pos += 2
                while depth:
                    if self.pos >= n:
                        self.fail("unterminated block comment")
                    if text.startswith("/*", self.pos):
                        depth += 1
                        self.pos += 2
                    elif text.startswith("*/", self.pos):
                        depth -= 1
                        self.pos += 2
                    else:
                        self.pos += 1
            else:
                break

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            self.fail(f"expected {char!r}")
        self.pos += 1

    def document(self) -> Any:
        self.skip_ws()
        while self.text.startswith("#!", self.pos):
            end = self.text.find("]", self.pos)
            if end < 0:
                self.fail("unterminated attribute")
            self.pos = end + 1
            self.skip_ws()
        value = self.value()
        self.skip_ws()
        if self.pos != len(self.text):
            self.fail("trailing characters after value")
        return value

    def value(self) -> Any:
        char = self.peek()
        if not char:
            self.fail("unexpected end of input")
        if char == "[":
            return self.list_()
        if char == "{":
            return self.map_()
        if char == "(":
            return self.paren(None)
        if char == '"':
            return self.quoted('"')
        if char == "'":
            return self.char_()
        if char == "r" and self.text[self.pos + 1:self.pos + 2] in ('"', "#"):
            return self.raw_string()
        if char in "+-.0123456789":
            return self.number()
        match = _IDENT.match(self.text, self.pos)
        if match:
            return self.identifier(match)
        self.fail(f"unexpected character {char!r}")

    def identifier(self, match: re.Match) -> Any:
        name = match.group(0)
        if name in ("inf", "NaN"):
            return self.number()
        self.pos = match.end()
        if name == "true":
            return True
        if name == "false":
            return False
        if name == "None":
            return None
        if name == "Some":
            self.expect("(")
            inner = self.value()
            if self.peek() == ",":
                self.pos += 1
            self.expect(")")
            return inner
        if self.peek() == "(":
            return self.paren(name)
        return name

    def items(self, close: str, parse_item: Callable[[], None]) -> None:
        while True:
            if self.peek() == close:
                self.pos += 1
                return
            parse_item()
            char = self.peek()
            if char == ",":
                self.pos += 1
            elif char == close:
                self.pos += 1
                return
            else:
                self.fail(f"expected ',' or {close!r}")

    def list_(self) -> list:
        self.pos += 1
        result: list = []
        self.items("]", lambda: result.append(self.value()))
        return result

    def map_(self) -> dict:
        self.pos += 1
        result: dict = {}

        def entry() -> None:
            key = self.value()
            self.expect(":")
            value = self.value()
            try:
                result[key] = value
            except TypeError:
                self.fail("map key is not hashable")

        self.items("}", entry)
        return result

    def looks_like_struct(self) -> bool:
        match = _IDENT.match(self.text, self.pos)
        if not match:
            return False
        saved = self.pos
        self.pos = match.end()
        self.skip_ws()
        found = self.text.startswith(":", self.pos) and not self.text.startswith("::", self.pos)
        self.pos = saved
        return found

    def paren(self, name: Optional[str]) -> Any:
        self.pos += 1
        if self.peek() == ")":
            self.pos += 1
            return () if name is None else name
        if self.looks_like_struct():
            fields: dict = {}

            def field() -> None:
                self.skip_ws()
                match = _IDENT.match(self.text, self.pos)
                if not match:
                    self.fail("expected a field name")
                key = match.group(0)
                self.pos = match.end()
                self.expect(":")
                if key in fields:
                    self.fail(f"duplicate field {key!r}")
                fields[key] = self.value()

            self.items(")", field)
            return fields
        elements: list = []
        self.items(")", lambda: elements.append(self.value()))
        if name is None:
            return tuple(elements)
        if len(elements) == 1:
            return {name: elements[0]}
        return {name: tuple(elements)}

    def quoted(self, quote: str) -> str:
        text, n = self.text, len(self.text)
        self.pos += 1
        out: list[str] = []
        while True:
            if self.pos >= n:
                self.fail("unterminated string")
            char = text[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(out)
            if char != "\\":
                out.append(char)
                self.pos += 1
                continue
            self.pos += 1
            if self.pos >= n:
                self.fail("unterminated escape")
            escape = text[self.pos]
            self.pos += 1
            if escape in _ESCAPES:
                out.append(_ESCAPES[escape])
            elif escape == "u":
                out.append(self.unicode_escape())
            elif escape == "x":
                out.append(self.hex_char(text[self.pos:self.pos + 2]))
                self.pos += 2
            else:
                self.fail(f"invalid escape \\{escape}")

    def unicode_escape(self) -> str:
        if self.text.startswith("{", self.pos):
            end = self.text.find("}", self.pos)
            if end < 0:
                self.fail("unterminated unicode escape")
            digits = self.text[self.pos + 1:end]
            self.pos = end + 1
        else:
            digits = self.text[self.pos:self.pos + 4]
            self.pos += 4
        return self.hex_char(digits)

    def hex_char(self, digits: str) -> str:
        try:
            return chr(int(digits, 16))
        except ValueError:
            self.fail(f"invalid escape digits {digits!r}")

    def char_(self) -> str:
        value = self.quoted("'")
        if len(value) != 1:
            self.fail("a char literal must hold exactly one character")
        return value

    def raw_string(self) -> str:
        self.pos += 1
        hashes = 0
        while self.text.startswith("#", self.pos):
            hashes += 1
            self.pos += 1
        if not self.text.startswith('"', self.pos):
            self.fail("expected '\"' in raw string")
        self.pos += 1
        terminator = '"' + "#" * hashes
        end = self.text.find(terminator, self.pos)
        if end < 0:
            self.fail("unterminated raw string")
        value = self.text[self.pos:end]
        self.pos = end + len(terminator)
        return value

    def number(self) -> Any:
        match = _RADIX.match(self.text, self.pos)
        if match:
            sign, radix, digits = match.groups()
            try:
                value = int(digits.replace("_", ""), _RADIX_BASES[radix])
            except ValueError:
                self.fail(f"invalid number {match.group(0)!r}")
            self.pos = match.end()
            result: Any = -value if sign == "-" else value
        else:
            match = _DECIMAL.match(self.text, self.pos)
            if not match:
                self.fail("invalid number")
            cleaned = match.group(0).replace("_", "")
            self.pos = match.end()
            if "inf" in cleaned or "NaN" in cleaned or any(c in cleaned for c in ".eE"):
                result = float(cleaned)
            else:
                result = int(cleaned)
        if self.pos < len(self.text) and (self.text[self.pos].isalnum() or self.text[self.pos] == "_"):
            self.fail("invalid number")
        return result


def loads(text: str) -> Any:
    """Parse RON text into Python values."""
    return _Parser(text).document()


def _quote(text: str) -> str:
    out = ['"']
    for char in text:
        if char in '"\\':
            out.append("\\" + char)
        elif char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\t":
            out.append("\\t")
        elif ord(char) < 0x20 or char == "\x7f":
            out.append(f"\\u{{{ord(char):x}}}")
        else:
            out.append(char)
    out.append('"')
    return "".join(out)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = repr(value)
    if not any(c in text for c in ".eE"):
        text += ".0"
    return text


class _Writer:
    def __init__(self, indent: Optional[int]) -> None:
        self.pad = None if indent is None else " " * indent

    def block(self, open_: str, close: str, items: list[str], level: int) -> str:
        if not items:
            return open_ + close
        if self.pad is None:
            return open_ + ", ".join(items) + close
        inner = self.pad * (level + 1)
        body = "".join(f"{inner}{item},\n" for item in items)
        return f"{open_}\n{body}{self.pad * level}{close}"

    def render(self, value: Any, level: int) -> str:
        if value is None:
            return "None"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return _format_float(value)
        if isinstance(value, str):
            return _quote(value)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            fields = []
            for spec in dataclasses.fields(value):
                item = getattr(value, spec.name)
                if item is None and spec.metadata.get("skip_none"):
                    continue
                name = spec.metadata.get("ron", spec.name)
                fields.append(f"{name}: {self.render(item, level + 1)}")
            return self.block("(", ")", fields, level)
        if isinstance(value, Mapping):
            entries = [
                f"{self.render(k, level + 1)}: {self.render(v, level + 1)}"
                for k, v in value.items()
            ]
            return self.block("{", "}", entries, level)
        if isinstance(value, tuple):
            return self.block("(", ")", [self.render(v, level + 1) for v in value], level)
        if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
            return self.block("[", "]", [self.render(v, level + 1) for v in value], level)
        raise TypeError(f"cannot write {type(value).__name__} as RON")


def dumps(value: Any, indent: Optional[int] = 4) -> str:
    """Write value as RON; pretty-printed unless indent is None."""
    return _Writer(indent).render(value, 0)