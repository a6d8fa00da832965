"""
A printer for macrocss syntax trees.
"""

from macrocss.macrocss_nodes import AtRule, Comment, Declaration, Root, Rule


class Printer:
    """Formats trees back into stylesheet text, one node per line."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        for klass, handler in self._handlers.items():
            if isinstance(obj, klass):
                return handler
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            Root: self._pformat_root,
            Rule: self._pformat_rule,
            AtRule: self._pformat_at_rule,
            Declaration: self._pformat_declaration,
            Comment: self._pformat_comment,
        }

    def _indent(self, level):
        return self._indent_char * level

    def _pformat_children(self, nodes, level):
        return "\n".join(self.pformat(node, level) for node in nodes or [])

    def _pformat_block(self, head, nodes, level):
        if not nodes:
            return f"{self._indent(level)}{head} {{}}"
        body = self._pformat_children(nodes, level + 1)
        return f"{self._indent(level)}{head} {{\n{body}\n{self._indent(level)}}}"

    def _pformat_root(self, obj, level):
        text = self._pformat_children(obj.nodes, level)
        return text + "\n" if text else ""

    def _pformat_rule(self, obj, level):
        return self._pformat_block(obj.selector, obj.nodes, level)

    def _pformat_at_rule(self, obj, level):
        head = f"@{obj.name} {obj.params}" if obj.params else f"@{obj.name}"
        if obj.nodes is None:
            return f"{self._indent(level)}{head};"
        return self._pformat_block(head, obj.nodes, level)

    def _pformat_declaration(self, obj, level):
        important = " !important" if obj.important else ""
        return f"{self._indent(level)}{obj.prop}: {obj.value}{important};"

    def _pformat_comment(self, obj, level):
        return f"{self._indent(level)}/* {obj.text} */"
