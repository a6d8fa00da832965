"""
The tree walker and the `@for`, `@each` and `@if`/`@else` evaluators.

The walk visits a container's children in document order with an explicit
cursor. Handlers may remove the current node and splice replacement nodes in
its place; they return how many nodes they spliced so the cursor can step
past them. Siblings visited afterwards see any variables the replacements
declared.
"""

import math
import os
import re
import sys
from typing import Any, Optional

from macrocss.macrocss_datatypes import (
    ComparisonError, Array, Scalar,
    bind_variable, compare, format_number, parse_array_literal,
    set_variable, split_space, to_number_if_valid,
)
from macrocss.macrocss_interpolate import interpolate
from macrocss.macrocss_nodes import AtRule, Container, Declaration, Node, Rule

IS_VARIABLE_DECLARATION = re.compile(r'^\$[A-Za-z_][\w-]*$')
IS_KEYFRAMES_AT_RULE = re.compile(r'^(-(moz|o|webkit)-)?keyframes$')


class Evaluator:
    """Expands variables and control constructs in a tree, in place."""

    def __init__(self, result: Any = None, warn_of_unresolved: bool = True,
                 warn_of_malformed: bool = True):
        self.result = result
        self.warn_of_unresolved = warn_of_unresolved
        self.warn_of_malformed = warn_of_malformed

    def _dbg(self, *parts):
        if os.environ.get("MACROCSS_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    def _interpolate(self, scope_node: Node, text: Any, location: Node) -> Any:
        return interpolate(scope_node, text, self.result, location, self.warn_of_unresolved)

    def _malformed(self, node: AtRule, detail: Optional[str] = None):
        if self.warn_of_malformed and self.result is not None:
            text = detail or f'Malformed @{node.name} parameters "{node.params}"'
            self.result.warn(text, node=node)

    # --- Walking ---

    def walk(self, container: Container) -> None:
        """Processes every child of container, depth first."""
        nodes = container.nodes
        if nodes is None:
            return
        i = 0
        while i < len(container.nodes):
            node = container.nodes[i]
            spliced = self._visit(node, container)

            if node.parent is not container:
                # Removed or replaced: skip whatever was spliced at the cursor.
                i += spliced
                continue

            if isinstance(node, Container) and node.nodes:
                self.walk(node)
            i = container.index(node) + 1

    def _visit(self, node: Node, parent: Container) -> int:
        match node:
            case Declaration():
                self._visit_declaration(node, parent)
                return 0
            case Rule():
                node.selector = self._interpolate(parent, node.selector, node)
                return 0
            case AtRule():
                return self._visit_at_rule(node, parent)
            case _:
                return 0

    def _visit_declaration(self, node: Declaration, parent: Container) -> None:
        if IS_VARIABLE_DECLARATION.match(node.prop):
            # $NAME: VALUE
            node.value = self._interpolate(parent, node.value, node)
            set_variable(parent, node.prop[1:], node.value)
            self._dbg("set", node.prop, "=", repr(node.value))
            node.remove()
        else:
            node.prop = self._interpolate(parent, node.prop, node)
            node.value = self._interpolate(parent, node.value, node)

    def _visit_at_rule(self, node: AtRule, parent: Container) -> int:
        match node.name:
            case 'for':
                return self.eval_for(node, parent)
            case 'each':
                return self.eval_each(node, parent)
            case 'if':
                return self.eval_if(node, parent)
            case 'media':
                node.params = self._interpolate(parent, node.params, node)
            case name if IS_KEYFRAMES_AT_RULE.match(name):
                node.params = self._interpolate(parent, node.params, node)
            case _:
                # Unknown at-rules (including a stray @else) pass through untouched.
                pass
        return 0

    # --- Loops ---

    def _expand_iteration(self, node: AtRule, parent: Container) -> int:
        """Walks a clone of node and splices its children before node."""
        clone = node.clone(parent=parent)
        if clone.nodes:
            self.walk(clone)
        return parent.insert_before(node, list(clone.nodes or []))

    def _bound(self, node: AtRule, raw: Optional[str]) -> Any:
        if raw is None:
            return None
        value = to_number_if_valid(self._interpolate(node, raw, node))
        if isinstance(value, str) or not math.isfinite(value):
            return None
        return value

    def eval_for(self, node: AtRule, parent: Container) -> int:
        """@for $NAME from START to END [by STEP]"""
        params = split_space(node.params)
        spliced = 0

        name = params[0][1:] if params and params[0].startswith('$') else None
        start = self._bound(node, params[2] if len(params) > 2 else None)
        end = self._bound(node, params[4] if len(params) > 4 else None)
        step = self._bound(node, params[6] if len(params) > 6 else None)

        if name is None or start is None or end is None:
            self._malformed(node)
        else:
            if not step:
                step = 1
            direction = 1 if start <= end else -1
            step = abs(step) * direction
            self._dbg("for", name, "from", start, "to", end, "by", step)

            current = start
            while current * direction <= end * direction:
                bind_variable(node, name, Scalar(format_number(current)))
                spliced += self._expand_iteration(node, parent)
                current += step

        node.remove()
        return spliced

    def eval_each(self, node: AtRule, parent: Container) -> int:
        """@each $NAME [$INDEX] in ARRAY"""
        head, sep, expression = node.params.partition(' in ')
        args = head.split()
        spliced = 0

        name = args[0][1:] if args and args[0].startswith('$') else None
        index_name = args[1][1:] if len(args) > 1 and args[1].startswith('$') else None

        if not sep or name is None:
            self._malformed(node)
        else:
            values = parse_array_literal(self._interpolate(node, expression, node), first=True)
            items = list(values) if isinstance(values, Array) else [values]
            self._dbg("each", name, "over", len(items), "items")

            for i, item in enumerate(items):
                bind_variable(node, name, item)
                if index_name:
                    bind_variable(node, index_name, Scalar(str(i)))
                spliced += self._expand_iteration(node, parent)

        node.remove()
        return spliced

    # --- Conditionals ---

    def _condition(self, node: AtRule) -> bool:
        params = split_space(node.params)
        if len(params) != 3:
            self._malformed(node)
            return False
        left = to_number_if_valid(self._interpolate(node, params[0], node))
        right = to_number_if_valid(self._interpolate(node, params[2], node))
        try:
            return compare(left, params[1], right)
        except ComparisonError as e:
            self._malformed(node, f"@if {node.params}: {e}")
            return False

    def eval_if(self, node: AtRule, parent: Container) -> int:
        """@if LEFT OPERATOR RIGHT { ... } [@else { ... }]"""
        holds = self._condition(node)
        following = node.next()
        has_else = isinstance(following, AtRule) and following.name == 'else'
        self._dbg("if", node.params, "->", holds)
        spliced = 0

        if holds:
            self.walk(node)
            spliced = parent.insert_before(node, list(node.nodes or []))
            if has_else:
                following.remove()
        elif has_else:
            self.walk(following)
            spliced = parent.insert_before(node, list(following.nodes or []))
            following.remove()

        node.remove()
        return spliced
