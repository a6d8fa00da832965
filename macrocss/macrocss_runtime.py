"""
Runs the macro engine: options, the diagnostics sink, and the processor
that parses, transforms and prints a stylesheet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from macrocss.macrocss_datatypes import set_variable
from macrocss.macrocss_interpreter import Evaluator
from macrocss.macrocss_nodes import Root
from macrocss.macrocss_parser import ParseError, parse
from macrocss.macrocss_printer import Printer
from macrocss.macrocss_serialize import FORMATS_BY_SUFFIX, deserialize

PLUGIN_NAME = "macrocss"


# ===================================================================
# 1. Options
# ===================================================================

_OPTION_ALIASES = {
    "warn_of_unresolved": "warn_of_unresolved",
    "warnOfUnresolved": "warn_of_unresolved",
    "warn_of_malformed": "warn_of_malformed",
    "warnOfMalformed": "warn_of_malformed",
    "variables": "variables",
}


@dataclass
class Options:
    """Engine configuration. Every `variables` entry is installed into the
    root scope before the walk begins."""
    warn_of_unresolved: bool = True
    warn_of_malformed: bool = True
    variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Optional[Dict[str, Any]]) -> 'Options':
        kwargs: Dict[str, Any] = {}
        for key, value in (mapping or {}).items():
            name = _OPTION_ALIASES.get(key)
            if name is None:
                raise ValueError(f"Unknown option: {key!r}")
            kwargs[name] = value
        variables = kwargs.get("variables") or {}
        if not isinstance(variables, dict):
            raise ValueError("Option 'variables' must be a mapping of name to value")
        kwargs["variables"] = {str(k): _stringify(v) for k, v in variables.items()}
        for flag in ("warn_of_unresolved", "warn_of_malformed"):
            if flag in kwargs:
                kwargs[flag] = bool(kwargs[flag])
        return cls(**kwargs)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(f"({_stringify(v)})" if isinstance(v, (list, tuple)) else _stringify(v) for v in value)
    return str(value)


def load_options(path: str | Path) -> Options:
    """Reads options from a .yaml/.yml, .json or .toml file. Other suffixes
    are sniffed from the file contents."""
    p = Path(path)
    data = deserialize(p.read_bytes(), fmt=FORMATS_BY_SUFFIX.get(p.suffix.lower()))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file {p} must contain a mapping")
    return Options.from_mapping(data)


# ===================================================================
# 2. Diagnostics
# ===================================================================

@dataclass
class Diagnostic:
    """A non-fatal message anchored at a node."""
    text: str
    node: Any = None
    plugin: str = PLUGIN_NAME
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def line(self) -> Optional[int]:
        return getattr(self.node, "line", None)

    @property
    def col(self) -> Optional[int]:
        return getattr(self.node, "col", None)

    def __str__(self) -> str:
        if self.line is not None:
            col_info = f":{self.col}" if self.col is not None else ""
            return f"{self.plugin}: {self.line}{col_info}: {self.text}"
        return f"{self.plugin}: {self.text}"


class Result:
    """Collects the diagnostics emitted while transforming one tree."""

    def __init__(self, root: Optional[Root] = None):
        self.root = root
        self.messages: List[Diagnostic] = []

    def warn(self, text: str, node: Any = None, **extra) -> Diagnostic:
        diagnostic = Diagnostic(text, node, PLUGIN_NAME, extra)
        self.messages.append(diagnostic)
        return diagnostic

    def warnings(self) -> List[Diagnostic]:
        return list(self.messages)


# ===================================================================
# 3. Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of processing a stylesheet."""
    status: Literal['success', 'error']
    value: Optional[str] = None
    root: Optional[Root] = None
    error_message: Optional[str] = None
    error_token: Optional[Dict[str, Any]] = None
    warnings: List[Diagnostic] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token and self.error_token.get('line') is not None:
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            if not msg.startswith("Error on line "):
                col_info = f", col {col}" if col is not None else ""
                return f"Error on line {line}{col_info}: {msg}"
        return msg


class Processor:
    """Parses, transforms, and prints stylesheets."""

    def __init__(self, options: Optional[Options] = None, printer: Optional[Printer] = None):
        self.options = options or Options()
        self.printer = printer or Printer()

    def transform(self, root: Root, result: Optional[Result] = None) -> Result:
        """Expands the tree in place and returns the diagnostics sink."""
        result = result if result is not None else Result(root)
        for name, value in self.options.variables.items():
            set_variable(root, name, value)
        evaluator = Evaluator(
            result,
            warn_of_unresolved=self.options.warn_of_unresolved,
            warn_of_malformed=self.options.warn_of_malformed,
        )
        evaluator.walk(root)
        return result

    def process(self, source: str) -> ExecutionResult:
        """The main entry point: text in, text out."""
        try:
            root = parse(source)
        except ParseError as e:
            return ExecutionResult(
                status='error',
                error_message=f"ParseError: {e.reason}",
                error_token={'line': e.line, 'col': e.col},
            )
        result = self.transform(root)
        return ExecutionResult(
            status='success',
            value=self.printer.pformat(root),
            root=root,
            warnings=result.warnings(),
        )


def process(source: str, **options) -> ExecutionResult:
    """Processes source with options given as keyword arguments."""
    return Processor(Options.from_mapping(options)).process(source)
