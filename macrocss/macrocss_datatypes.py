"""
Defines the core data types for the macrocss engine.

This module provides the runtime value types (scalars and arrays), the
`Unresolved` lookup result, the per-node `Scope` record, and the helpers
that read and write variables through the node tree.
"""

import re
import weakref
from typing import List, Dict, Any, Optional, Union
import collections.abc


class ComparisonError(TypeError):
    """Raised when an `@if` comparison cannot be evaluated."""
    pass


# =================================================================
# Values
# =================================================================

class Scalar:
    """A single value. The text may look numeric; it is kept as written."""
    def __init__(self, text: Any):
        self.text = text if isinstance(text, str) else str(text)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Scalar({self.text!r})"

    def __eq__(self, other):
        return isinstance(other, Scalar) and self.text == other.text

    def __hash__(self):
        return hash(self.text)


class Array(collections.abc.Sequence):
    """An ordered sequence of values built from a `(a, b), c` literal."""
    def __init__(self, items: Optional[List['Value']] = None):
        self.items = list(items or [])

    def __getitem__(self, index):
        return self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    def __str__(self) -> str:
        # Inverse of parse_array_literal: nested arrays keep their parentheses.
        # A one-item array renders as its item, so re-parsing with `first`
        # yields the item one level flatter.
        parts = []
        for item in self.items:
            if isinstance(item, Array):
                parts.append(f"({item})")
            else:
                parts.append(str(item))
        return ", ".join(parts)

    def __repr__(self) -> str:
        return f"Array({self.items!r})"

    def __eq__(self, other):
        return isinstance(other, Array) and self.items == other.items

    def __hash__(self):
        return hash(tuple(self.items))


Value = Union[Scalar, Array]


class _UnresolvedType:
    """Result of a lookup that found no binding anywhere up the chain."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Unresolved"

# Singleton instance
Unresolved = _UnresolvedType()


# =================================================================
# Lists and literals
# =================================================================

def _split(string: str, separators: str, keep_last: bool) -> List[str]:
    """Splits on separators that are outside quotes and parentheses."""
    result: List[str] = []
    current = ''
    depth = 0
    quote = ''
    escaped = False
    for letter in string:
        split = False
        if escaped:
            escaped = False
        elif letter == '\\':
            escaped = True
        elif quote:
            if letter == quote:
                quote = ''
        elif letter in '"\'':
            quote = letter
        elif letter == '(':
            depth += 1
        elif letter == ')':
            if depth > 0:
                depth -= 1
        elif depth == 0 and letter in separators:
            split = True

        if split:
            if current != '':
                result.append(current.strip())
            current = ''
        else:
            current += letter

    if keep_last or current != '':
        result.append(current.strip())
    return result


def split_comma(string: str) -> List[str]:
    """'a, (b, c), d' => ['a', '(b, c)', 'd']"""
    if string.strip() == '':
        return []
    return _split(string, ',', True)


def split_space(string: str) -> List[str]:
    """'$i from 1 to 3' => ['$i', 'from', '1', 'to', '3']"""
    return [part for part in _split(string, ' \n\t', False) if part != '']


def _wrapped_in_parens(segment: str) -> bool:
    """True when the first '(' closes on the very last character."""
    if len(segment) < 2 or segment[0] != '(' or segment[-1] != ')':
        return False
    depth = 0
    quote = ''
    escaped = False
    for i, letter in enumerate(segment):
        if escaped:
            escaped = False
        elif letter == '\\':
            escaped = True
        elif quote:
            if letter == quote:
                quote = ''
        elif letter in '"\'':
            quote = letter
        elif letter == '(':
            depth += 1
        elif letter == ')':
            depth -= 1
            if depth == 0:
                return i == len(segment) - 1
    return False


def parse_array_literal(raw: Any, first: bool = False) -> Value:
    """'(hello), (goodbye)' => Array([Array([hello]), Array([goodbye])])

    With `first`, a literal holding a single segment collapses to that
    segment's own value instead of a one-element array. Blank text is
    always the empty array.
    """
    items: List[Value] = []
    for segment in split_comma(str(raw)):
        if _wrapped_in_parens(segment):
            items.append(parse_array_literal(segment[1:-1]))
        else:
            items.append(Scalar(segment))

    if first and len(items) == 1:
        return items[0]
    return Array(items)


# =================================================================
# Numbers and comparison
# =================================================================

NUMBER = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


def to_number_if_valid(string: Any) -> Union[int, float, str]:
    """'4' => 4, '1.5' => 1.5, '4px' => '4px'"""
    if isinstance(string, (int, float)) and not isinstance(string, bool):
        return string
    text = str(string).strip()
    if not NUMBER.match(text):
        return string
    if '.' in text or 'e' in text or 'E' in text:
        return float(text)
    return int(text)


def format_number(number: Union[int, float]) -> str:
    """Renders 2.0 as '2' and 0.5 as '0.5'."""
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return repr(number) if isinstance(number, float) else str(number)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compare(left: Any, operator: str, right: Any) -> bool:
    """Evaluates `left operator right` on coerced operands.

    Equality is strict: a number never equals a string. Ordering is only
    defined between two numbers and raises ComparisonError otherwise.
    """
    match operator:
        case '==':
            if _is_number(left) != _is_number(right):
                return False
            return left == right
        case '!=':
            if _is_number(left) != _is_number(right):
                return True
            return left != right
        case '<' | '<=' | '>' | '>=':
            if not (_is_number(left) and _is_number(right)):
                raise ComparisonError(
                    f"Cannot order non-numeric operands {left!r} {operator} {right!r}"
                )
            if operator == '<':
                return left < right
            if operator == '<=':
                return left <= right
            if operator == '>':
                return left > right
            return left >= right
        case _:
            raise ComparisonError(f"Unknown comparison operator {operator!r}")


# =================================================================
# Scope
# =================================================================

class Scope:
    """The variable bindings owned by one node of the tree.

    A scope does not own its parent: `parent` is found by walking the owner
    node's ancestors up to the nearest one that has a scope of its own.
    """
    def __init__(self, owner: Any = None, bindings: Optional[Dict[str, Value]] = None):
        self.bindings: Dict[str, Value] = dict(bindings or {})
        self._owner = weakref.ref(owner) if owner is not None else None

    @property
    def owner(self) -> Any:
        return self._owner() if self._owner is not None else None

    @property
    def parent(self) -> Optional['Scope']:
        """Returns the scope of the nearest ancestor node that has one."""
        node = self.owner
        node = node.parent if node is not None else None
        while node is not None:
            if node.scope is not None:
                return node.scope
            node = node.parent
        return None

    def find_owner(self, key: str) -> Optional['Scope']:
        """Finds the Scope in the lookup chain (self → parent) that binds key."""
        scope: Optional[Scope] = self
        while scope is not None:
            if key in scope.bindings:
                return scope
            scope = scope.parent
        return None

    def __setitem__(self, key: str, value: Value):
        if not isinstance(key, str):
            raise TypeError(f"Scope key must be a str, not {type(key)}")
        self.bindings[key] = value

    def get(self, key: str, default: Any = Unresolved) -> Any:
        owner = self.find_owner(key)
        if owner is None:
            return default
        return owner.bindings[key]

    def copy(self, owner: Any = None) -> 'Scope':
        """A private snapshot of this scope's own bindings for a new owner."""
        return Scope(owner, self.bindings)

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        return f"<Scope bindings=[{keys}]>"


IS_DEFAULT_VALUE = re.compile(r'\s+!default$')


def get_variable(node: Any, name: str) -> Any:
    """$NAME => VALUE, or Unresolved when no ancestor binds it."""
    while node is not None and node.scope is None:
        node = node.parent
    if node is None:
        return Unresolved
    return node.scope.get(name)


def _scope_of(node: Any) -> Scope:
    if node.scope is None:
        node.scope = Scope(node)
    return node.scope


def bind_variable(node: Any, name: str, value: Value) -> None:
    """Stores an already-built value on the node's own scope."""
    _scope_of(node)[name] = value


def set_variable(node: Any, name: str, raw: Any) -> None:
    """node.scope[NAME] => parsed VALUE, honouring a trailing `!default`."""
    raw = raw if isinstance(raw, str) else str(raw)
    if IS_DEFAULT_VALUE.search(raw):
        if get_variable(node, name) is not Unresolved:
            return
        raw = IS_DEFAULT_VALUE.sub('', raw)
    bind_variable(node, name, parse_array_literal(raw, first=True))
