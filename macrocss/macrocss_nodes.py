"""
The stylesheet syntax tree consumed by the macro engine.

Nodes carry their text fields, an ordered child list for containers, a
parent back-reference, and an optional `scope` that the engine creates
lazily when a variable is first written at that node.
"""

from typing import List, Dict, Any, Optional, Iterable


class Node:
    """Base class for every element of the tree."""
    type = 'node'

    def __init__(self, source: Optional[Dict[str, Any]] = None):
        self.parent: Optional['Container'] = None
        self.scope = None
        # {'line': ..., 'col': ...} when produced by the parser.
        self.source = source

    def remove(self) -> 'Node':
        """Detaches this node from its parent. parent is None afterwards."""
        if self.parent is not None:
            self.parent.remove_child(self)
        self.parent = None
        return self

    def next(self) -> Optional['Node']:
        """The following sibling, or None."""
        if self.parent is None:
            return None
        i = self.parent.index(self)
        if i + 1 < len(self.parent.nodes):
            return self.parent.nodes[i + 1]
        return None

    def _clone_fields(self) -> Dict[str, Any]:
        return {}

    def clone(self, **overrides) -> 'Node':
        """Deep copy of this node and its children, detached from any parent.

        Scopes are copied, never shared. `overrides` are set as attributes on
        the copy; `scope` is re-owned by the copy.
        """
        cloned = type(self)(**self._clone_fields())
        cloned.source = self.source
        if self.scope is not None:
            cloned.scope = self.scope.copy(cloned)
        for key, value in overrides.items():
            if key == 'scope' and value is not None:
                value = value.copy(cloned)
            setattr(cloned, key, value)
        return cloned

    @property
    def line(self) -> Optional[int]:
        return (self.source or {}).get('line')

    @property
    def col(self) -> Optional[int]:
        return (self.source or {}).get('col')


class Container(Node):
    """A node with an ordered, mutable list of children."""
    type = 'container'

    def __init__(self, nodes: Optional[Iterable[Node]] = None, source: Optional[Dict[str, Any]] = None):
        super().__init__(source)
        self.nodes: Optional[List[Node]] = []
        for node in nodes or []:
            self.append(node)

    def __iter__(self):
        return iter(list(self.nodes or []))

    def __len__(self) -> int:
        return len(self.nodes or [])

    def index(self, child: Node) -> int:
        """Position of child by identity, -1 when absent."""
        for i, node in enumerate(self.nodes or []):
            if node is child:
                return i
        return -1

    def _adopt(self, node: Node) -> Node:
        if node.parent is not None and node.parent is not self:
            node.parent.remove_child(node)
        elif node.parent is self:
            self.remove_child(node)
        node.parent = self
        return node

    def append(self, *nodes: Node) -> 'Container':
        if self.nodes is None:
            self.nodes = []
        for node in nodes:
            self.nodes.append(self._adopt(node))
        return self

    def insert_before(self, existing: Node, nodes: Iterable[Node]) -> int:
        """Moves `nodes` into this container just before `existing`.

        Returns the number of nodes inserted.
        """
        moving = list(nodes)
        for node in moving:
            self._adopt(node)
        at = self.index(existing)
        if at < 0:
            raise ValueError("insert_before: reference node is not a child of this container")
        self.nodes[at:at] = moving
        return len(moving)

    def remove_child(self, child: Node) -> None:
        i = self.index(child)
        if i >= 0:
            del self.nodes[i]
            child.parent = None

    def _clone_fields(self) -> Dict[str, Any]:
        return {}

    def clone(self, **overrides) -> 'Container':
        cloned = super().clone(**overrides)
        if 'nodes' not in overrides:
            if self.nodes is None:
                cloned.nodes = None
            else:
                cloned.nodes = []
                cloned.append(*(node.clone() for node in self.nodes))
        return cloned


class Root(Container):
    """The document."""
    type = 'root'


class Rule(Container):
    """`selector { ... }`"""
    type = 'rule'

    def __init__(self, selector: str = '', nodes: Optional[Iterable[Node]] = None, source: Optional[Dict[str, Any]] = None):
        super().__init__(nodes, source)
        self.selector = selector

    def _clone_fields(self) -> Dict[str, Any]:
        return {'selector': self.selector}

    def __repr__(self) -> str:
        return f"Rule({self.selector!r}, nodes={len(self)})"


class AtRule(Container):
    """`@name params;` or `@name params { ... }`

    A statement at-rule has `nodes` set to None.
    """
    type = 'atrule'

    def __init__(self, name: str = '', params: str = '', nodes: Optional[Iterable[Node]] = None,
                 source: Optional[Dict[str, Any]] = None, block: bool = True):
        super().__init__(nodes, source)
        self.name = name
        self.params = params
        if not block and not self.nodes:
            self.nodes = None

    def _clone_fields(self) -> Dict[str, Any]:
        return {'name': self.name, 'params': self.params, 'block': self.nodes is not None}

    def __repr__(self) -> str:
        block = "None" if self.nodes is None else "{...}"
        return f"AtRule({self.name!r}, params={self.params!r}, block={block})"


class Declaration(Node):
    """`prop: value` with an optional `!important` flag."""
    type = 'decl'

    def __init__(self, prop: str = '', value: str = '', important: bool = False, source: Optional[Dict[str, Any]] = None):
        super().__init__(source)
        self.prop = prop
        self.value = value
        self.important = important

    def _clone_fields(self) -> Dict[str, Any]:
        return {'prop': self.prop, 'value': self.value, 'important': self.important}

    def __repr__(self) -> str:
        return f"Decl({'!, ' if self.important else ''}{self.prop!r}, {self.value!r})"


class Comment(Node):
    """`/* text */`"""
    type = 'comment'

    def __init__(self, text: str = '', source: Optional[Dict[str, Any]] = None):
        super().__init__(source)
        self.text = text

    def _clone_fields(self) -> Dict[str, Any]:
        return {'text': self.text}

    def __repr__(self) -> str:
        return f"Comment({self.text!r})"
