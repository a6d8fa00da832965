""" Stylesheet parser

Turns stylesheet text into the node tree the macro engine walks:

<comment/>
<at-rule params/>; | <at-rule params> { ... }
<selector> {
    <property>: <value> [!important];
    $<variable>: <value> [!default];
}

Selectors and properties may carry `#{$name}` interpolation, so `#{` opens
an interpolation span rather than a block.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from macrocss.macrocss_nodes import AtRule, Comment, Container, Declaration, Root, Rule

RETURNS = re.compile("\r\n|\f|\r")
IMPORTANT = re.compile(r'\s*!\s*important\s*$', re.IGNORECASE)


class ParseError(Exception):
    def __init__(self, reason: str, line: Optional[int] = None, col: Optional[int] = None):
        self.reason = reason
        self.line = line
        self.col = col
        location = f" (line {line}, col {col})" if line is not None else ""
        super().__init__(f"{reason}{location}")


def _find_top_level(text: str, char: str) -> int:
    """Index of the first `char` outside quotes, parentheses and #{...}."""
    depth = 0
    quote = ''
    escaped = False
    i = 0
    while i < len(text):
        letter = text[i]
        if escaped:
            escaped = False
        elif letter == '\\':
            escaped = True
        elif quote:
            if letter == quote:
                quote = ''
        elif letter in '"\'':
            quote = letter
        elif letter == '#' and text[i + 1:i + 2] == '{':
            close = text.find('}', i)
            if close < 0:
                return -1
            i = close
        elif letter == '(':
            depth += 1
        elif letter == ')':
            depth = max(0, depth - 1)
        elif depth == 0 and letter == char:
            return i
        i += 1
    return -1


class Parser:
    def __init__(self, source: str) -> None:
        self.source: str = RETURNS.sub("\n", source)
        self.index = 0
        self.line = 1
        self.col = 1

    def peek(self, amount: int = 1) -> str | None:
        """The code point `amount` places ahead, or None past the end."""
        at = self.index + amount - 1
        if at < len(self.source):
            return self.source[at]
        return None

    def next(self) -> str | None:
        if self.index >= len(self.source):
            return None
        current = self.source[self.index]
        self.index += 1
        if current == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return current

    def location(self) -> Dict[str, Any]:
        return {'line': self.line, 'col': self.col}

    def error(self, reason: str, location: Optional[Dict[str, Any]] = None) -> ParseError:
        location = location or self.location()
        return ParseError(reason, location['line'], location['col'])

    def skip_whitespace(self) -> None:
        while (peek := self.peek()) is not None and peek in " \t\n":
            self.next()

    def parse(self) -> Root:
        root = Root(source=self.location())
        self.consume_contents(root, top_level=True)
        return root

    def consume_contents(self, container: Container, top_level: bool = False) -> None:
        while True:
            self.skip_whitespace()
            current = self.peek()
            if current is None:
                if not top_level:
                    raise self.error("Unclosed block", container.source)
                return
            elif current == "}":
                if top_level:
                    raise self.error("Unexpected }")
                self.next()
                return
            elif current == ";":
                self.next()
            elif current == "/" and self.peek(2) == "*":
                container.append(self.consume_comment())
            elif current == "@":
                container.append(self.consume_at_rule())
            else:
                container.append(self.consume_rule_or_declaration())

    def consume_comment(self) -> Comment:
        location = self.location()
        self.next()
        self.next()
        text = ''
        while not (self.peek() == "*" and self.peek(2) == "/"):
            if self.peek() is None:
                raise self.error("Unclosed comment", location)
            text += self.next()
        self.next()
        self.next()
        return Comment(text.strip(), source=location)

    def consume_prelude(self) -> tuple[str, str | None]:
        """Reads up to a top-level `;`, `{` or `}` without consuming it."""
        text = ''
        depth = 0
        quote = ''
        start = self.location()
        while True:
            current = self.peek()
            if current is None:
                if quote:
                    raise self.error("Unclosed string", start)
                if depth:
                    raise self.error("Unclosed bracket", start)
                return text, None
            if quote:
                text += self.next()
                if current == "\\" and self.peek() is not None:
                    text += self.next()
                elif current == quote:
                    quote = ''
            elif current == "\\":
                text += self.next()
                if self.peek() is not None:
                    text += self.next()
            elif current in "\"'":
                quote = current
                text += self.next()
            elif current == "#" and self.peek(2) == "{":
                text += self.consume_interpolation()
            elif current == "(":
                depth += 1
                text += self.next()
            elif current == ")":
                depth = max(0, depth - 1)
                text += self.next()
            elif depth == 0 and current in ";{}":
                return text, current
            else:
                text += self.next()

    def consume_interpolation(self) -> str:
        location = self.location()
        text = self.next() + self.next()
        nested = 1
        while nested:
            current = self.next()
            if current is None:
                raise self.error("Unclosed interpolation", location)
            if current == "{":
                nested += 1
            elif current == "}":
                nested -= 1
            text += current
        return text

    def consume_at_rule(self) -> AtRule:
        location = self.location()
        self.next()
        name = ''
        while (peek := self.peek()) is not None and (peek.isalnum() or peek in "-_"):
            name += self.next()
        if not name:
            raise self.error("At-rule without name", location)

        params, stop = self.consume_prelude()
        params = params.strip()
        if stop == "{":
            self.next()
            at_rule = AtRule(name, params, source=location)
            self.consume_contents(at_rule)
            return at_rule
        if stop == ";":
            self.next()
        return AtRule(name, params, source=location, block=False)

    def consume_rule_or_declaration(self) -> Rule | Declaration:
        location = self.location()
        text, stop = self.consume_prelude()
        if stop == "{":
            self.next()
            rule = Rule(text.strip(), source=location)
            self.consume_contents(rule)
            return rule
        if stop == ";":
            self.next()

        colon = _find_top_level(text, ":")
        if colon < 0:
            raise self.error(f"Unknown word {text.strip()!r}", location)
        prop = text[:colon].strip()
        value = text[colon + 1:].strip()
        if not prop:
            raise self.error("Declaration without property", location)

        important = False
        if IMPORTANT.search(value):
            value = IMPORTANT.sub('', value)
            important = True
        return Declaration(prop, value, important, source=location)


def parse(source: str) -> Root:
    """Parses a whole stylesheet."""
    return Parser(source).parse()
