"""
Variable interpolation inside arbitrary text.

Recognises `#{$name}`, `$(name)` and `$name`. A reference preceded by a
backslash is left alone. Unresolved references stay in the text verbatim.
"""

import re
from typing import Any, List, Optional

from macrocss.macrocss_datatypes import Unresolved, get_variable

# Matches #{$name}, $(name) or $name, but not \$name (escaped)
VARIABLES_IN_STRING = re.compile(
    r"(?<!\\)"
    r"(?:"
    r"#\{\$([A-Za-z_][\w-]*)\}"   # #{$name} -> group 1
    r"|"
    r"\$\(([A-Za-z_][\w-]*)\)"    # $(name)  -> group 2
    r"|"
    r"\$([A-Za-z_][\w-]*)"        # $name    -> group 3
    r")"
)


def _name_of(match: re.Match) -> str:
    return match.group(1) or match.group(2) or match.group(3)


def find_references(text: str) -> List[str]:
    """Names referenced in text, in order of appearance."""
    return [_name_of(m) for m in VARIABLES_IN_STRING.finditer(text or '')]


def interpolate(scope_node: Any, text: Any, result: Any = None,
                location: Any = None, warn: bool = True) -> Any:
    """'Hello $name' => 'Hello VALUE'

    Lookups start at scope_node. Each unresolved reference is reported once
    through result.warn when warn is set, anchored at location (or
    scope_node when no finer node is given).
    """
    if not isinstance(text, str) or '$' not in text:
        return text

    def replacer(match: re.Match) -> str:
        name = _name_of(match)
        value = get_variable(scope_node, name)
        if value is Unresolved:
            if warn and result is not None:
                result.warn(
                    f'Could not resolve variable "${name}" within "{text}"',
                    node=location if location is not None else scope_node,
                    variable=name,
                )
            return match.group(0)
        return str(value)

    return VARIABLES_IN_STRING.sub(replacer, text)
