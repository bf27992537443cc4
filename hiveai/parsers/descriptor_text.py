"""Tokenizer and recursive-descent parser for agent descriptor files.

Only the subset of YAML that agent descriptors need is understood:

* ``key: value`` mappings nested by indentation,
* sequences introduced by ``- ``, including items that are inline mappings
  (``- name: x`` with further keys aligned under ``name``),
* scalars: ``true``/``false``, ``null``/``~``, integers, decimals, quoted
  strings and flat ``[a, b]`` lists; anything else is a plain string.

Comment lines and blank lines are ignored. Indentation must be spaces; a line
belongs to a block while its indent is at least the block's indent.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, NoReturn, Optional, Tuple

from hiveai.core.errors import ParseError

_PAIR_SEPARATOR = re.compile(r":(?:\s|$)")
_INT = re.compile(r"^-?\d+$")
_FLOAT = re.compile(r"^-?\d+\.\d+$")


class LineKind(Enum):
    ENTRY = "entry"
    ITEM = "item"


@dataclass(frozen=True)
class Line:
    """One significant source line."""

    number: int
    indent: int
    kind: LineKind
    text: str
    key: Optional[str] = None
    # Column where the content after "- " starts; aligned keys of an inline
    # mapping item sit at this column.
    content_column: int = 0


def split_pair(text: str) -> Optional[Tuple[str, str]]:
    """Split ``key: value`` at the first colon followed by whitespace or end of line."""
    if text[:1] in ("'", '"'):
        return None
    match = _PAIR_SEPARATOR.search(text)
    if match is None:
        return None
    key = text[: match.start()].strip()
    if not key:
        return None
    return key, text[match.end():].strip()


def tokenize(text: str, source: Optional[str] = None) -> Iterator[Line]:
    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        body = raw.rstrip()
        content = body.lstrip()
        leading = body[: len(body) - len(content)]
        if "\t" in leading:
            raise ParseError("tabs are not allowed in indentation", number, source)
        indent = len(leading)

        if content == "-" or content.startswith("- "):
            after_dash = content[1:]
            value = after_dash.strip()
            gap = len(after_dash) - len(after_dash.lstrip())
            yield Line(number, indent, LineKind.ITEM, value, content_column=indent + 1 + gap)
            continue

        pair = split_pair(content)
        if pair is None:
            raise ParseError(f"expected 'key: value', got {content!r}", number, source)
        key, value = pair
        yield Line(number, indent, LineKind.ENTRY, value, key=key)


def parse_scalar(text: str, line: int = 0, source: Optional[str] = None) -> Any:
    if text in ("true", "false"):
        return text == "true"
    if text in ("null", "~"):
        return None
    if _INT.match(text):
        return int(text)
    if _FLOAT.match(text):
        return float(text)
    if text[:1] in ("'", '"'):
        quote = text[0]
        if len(text) < 2 or not text.endswith(quote):
            raise ParseError("unterminated quoted string", line, source)
        inner = text[1:-1]
        if quote == '"':
            return inner.replace('\\"', '"').replace("\\n", "\n").replace("\\\\", "\\")
        return inner.replace("''", "'")
    if text.startswith("[") and text.endswith("]"):
        return [parse_scalar(part, line, source) for part in _split_flow(text[1:-1], line, source)]
    return text


def _split_flow(inner: str, line: int, source: Optional[str]) -> List[str]:
    if not inner.strip():
        return []
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    for char in inner:
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == ",":
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    if quote:
        raise ParseError("unterminated quoted string", line, source)
    parts.append("".join(current).strip())
    return parts


class DescriptorParser:
    """Recursive-descent parser over the token stream of one file."""

    def __init__(self, text: str, source: Optional[str] = None) -> None:
        self._source = source
        self._lines: List[Line] = list(tokenize(text, source))
        self._pos = 0

    def parse(self) -> Any:
        first = self._peek()
        if first is None:
            return {}
        value = self._parse_block(first.indent)
        leftover = self._peek()
        if leftover is not None:
            self._fail("unexpected indentation", leftover)
        return value

    def _peek(self) -> Optional[Line]:
        return self._lines[self._pos] if self._pos < len(self._lines) else None

    def _advance(self) -> Line:
        line = self._lines[self._pos]
        self._pos += 1
        return line

    def _fail(self, message: str, line: Line) -> NoReturn:
        raise ParseError(message, line.number, self._source)

    def _parse_block(self, indent: int) -> Any:
        line = self._peek()
        if line is not None and line.kind is LineKind.ITEM:
            return self._parse_sequence(indent)
        return self._parse_mapping(indent)

    def _parse_mapping(self, indent: int) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        while True:
            line = self._peek()
            if line is None or line.indent < indent:
                return result
            if line.indent > indent:
                self._fail("unexpected indentation", line)
            if line.kind is LineKind.ITEM:
                self._fail("sequence item where a mapping key was expected", line)
            self._advance()
            if line.key in result:
                self._fail(f"duplicate key {line.key!r}", line)
            result[line.key] = self._parse_entry_value(line, indent)

    def _parse_entry_value(self, line: Line, indent: int) -> Any:
        if line.text:
            return parse_scalar(line.text, line.number, self._source)
        following = self._peek()
        if following is None:
            return None
        if following.indent > indent:
            return self._parse_block(following.indent)
        if following.indent == indent and following.kind is LineKind.ITEM:
            return self._parse_sequence(indent)
        return None

    def _parse_sequence(self, indent: int) -> List[Any]:
        items: List[Any] = []
        while True:
            line = self._peek()
            if line is None or line.indent < indent:
                return items
            if line.indent > indent:
                self._fail("unexpected indentation", line)
            if line.kind is not LineKind.ITEM:
                return items
            self._advance()
            items.append(self._parse_item(line))

    def _parse_item(self, line: Line) -> Any:
        if not line.text:
            following = self._peek()
            if following is not None and following.indent > line.indent:
                return self._parse_block(following.indent)
            return None

        pair = split_pair(line.text)
        if pair is None:
            return parse_scalar(line.text, line.number, self._source)

        key, value = pair
        column = line.content_column
        item: Dict[str, Any] = {}
        if value:
            item[key] = parse_scalar(value, line.number, self._source)
        else:
            following = self._peek()
            if following is not None and following.indent > column:
                item[key] = self._parse_block(following.indent)
            elif following is not None and following.indent == column and following.kind is LineKind.ITEM:
                item[key] = self._parse_sequence(column)
            else:
                item[key] = None

        following = self._peek()
        if following is not None and following.indent == column and following.kind is LineKind.ENTRY:
            for extra_key, extra_value in self._parse_mapping(column).items():
                if extra_key in item:
                    raise ParseError(f"duplicate key {extra_key!r}", following.number, self._source)
                item[extra_key] = extra_value
        return item


def parse_descriptor_text(text: str, source: Optional[str] = None) -> Any:
    """Parse descriptor text into plain dicts, lists and scalars."""
    return DescriptorParser(text, source).parse()
