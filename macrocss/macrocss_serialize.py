from __future__ import annotations

import json
import re
import tomllib
from typing import Any, Optional

import yaml


FORMATS_BY_SUFFIX = {
    '.json': 'json',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.toml': 'toml',
}

_TOML_LINE = re.compile(r'^(\[[A-Za-z_][\w.-]*\]|[A-Za-z_][\w.-]*\s*=)')


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode('utf-8', errors='replace')
    if isinstance(data, str):
        return data
    return str(data)


def detect_format(text: str) -> str:
    """
    Returns a canonical format name among: 'json', 'yaml', 'toml', sniffed
    from the first line that is neither blank nor a comment.
    """
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith('#'):
            continue
        if _TOML_LINE.match(s):
            return 'toml'
        if s.startswith('{') or s.startswith('['):
            return 'json'
        break
    # YAML is the loosest of the three; it also reads most simple
    # key/value files.
    return 'yaml'


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str, *, fmt: Optional[str] = None) -> Any:
    """
    Convert option file contents (bytes/string) to native Python structures.
    Supported fmt: 'json', 'yaml', 'toml'. If fmt is None the format is
    sniffed from the text. Raises ValueError when the text does not parse.
    """
    text = _norm_text(data)
    f = fmt or detect_format(text)
    try:
        if f == 'json':
            return json.loads(text)
        if f == 'yaml':
            return yaml.safe_load(text)
        if f == 'toml':
            return tomllib.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise ValueError(f"Could not parse {f} data: {e}") from e
    raise ValueError(f"Unsupported format: {f!r}")
