"""TOON encoder — Token-Oriented Object Notation for compact tool results.

TOON keeps JSON's data model but drops most of its punctuation:
objects become indented ``key: value`` lines, arrays of primitives are
written inline with their length (``tags[3]: a,b,c``), and arrays of
uniform flat objects become a table with a single field header
(``users[2]{id,name}:`` followed by one comma-separated row per item).
Anything else falls back to ``- item`` list entries.
"""

import math
import re
from decimal import Decimal
from typing import Any

_INDENT = "  "
_DELIMITER = ","
_SAFE_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
_NUMERIC_LIKE = re.compile(r"^-?\d+(?:\.\d+)?(?:e[+-]?\d+)?$", re.IGNORECASE)
_LEADING_ZERO = re.compile(r"^0\d+$")
_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def encode_toon(value: Any) -> str:
    """Encode a JSON-compatible value as TOON."""
    if isinstance(value, dict):
        return "\n".join(_encode_object(value, 0))
    if isinstance(value, list):
        return "\n".join(_encode_array(None, value, 0))
    return _encode_primitive(value)


# ── Primitives ──


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _encode_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        return "null"
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def _needs_quotes(text: str) -> bool:
    if not text or text != text.strip():
        return True
    if text in ("true", "false", "null"):
        return True
    if _NUMERIC_LIKE.match(text) or _LEADING_ZERO.match(text):
        return True
    if text.startswith("-"):
        return True
    return any(ch in text for ch in ':"\\[]{}' + _DELIMITER + "\n\r\t")


def _encode_string(text: str) -> str:
    if not _needs_quotes(text):
        return text
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in text) + '"'


def _encode_primitive(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _encode_number(value)
    return _encode_string(str(value))


def _encode_key(key: str) -> str:
    if _SAFE_KEY.match(key):
        return key
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in key) + '"'


# ── Structures ──


def _encode_object(obj: dict[str, Any], depth: int) -> list[str]:
    lines: list[str] = []
    prefix = _INDENT * depth
    for key, value in obj.items():
        encoded_key = _encode_key(str(key))
        if isinstance(value, dict):
            lines.append(f"{prefix}{encoded_key}:")
            lines.extend(_encode_object(value, depth + 1))
        elif isinstance(value, list):
            lines.extend(_encode_array(encoded_key, value, depth))
        else:
            lines.append(f"{prefix}{encoded_key}: {_encode_primitive(value)}")
    return lines


def _tabular_fields(items: list[Any]) -> list[str] | None:
    """Shared field list if every item is a non-empty flat object with the same keys."""
    if not items or not all(isinstance(item, dict) and item for item in items):
        return None
    fields = list(items[0].keys())
    for item in items:
        if list(item.keys()) != fields or not all(_is_primitive(v) for v in item.values()):
            return None
    return fields


def _encode_array(key: str | None, items: list[Any], depth: int) -> list[str]:
    prefix = _INDENT * depth
    label = key or ""
    header = f"{label}[{len(items)}]"

    if not items:
        return [f"{prefix}{header}:"]

    if all(_is_primitive(item) for item in items):
        row = _DELIMITER.join(_encode_primitive(item) for item in items)
        return [f"{prefix}{header}: {row}"]

    fields = _tabular_fields(items)
    if fields is not None:
        field_list = _DELIMITER.join(_encode_key(str(f)) for f in fields)
        lines = [f"{prefix}{header}{{{field_list}}}:"]
        row_prefix = _INDENT * (depth + 1)
        for item in items:
            lines.append(
                row_prefix + _DELIMITER.join(_encode_primitive(item[f]) for f in fields)
            )
        return lines

    lines = [f"{prefix}{header}:"]
    for item in items:
        lines.extend(_encode_list_item(item, depth + 1))
    return lines


def _encode_list_item(item: Any, depth: int) -> list[str]:
    prefix = _INDENT * depth
    if _is_primitive(item):
        return [f"{prefix}- {_encode_primitive(item)}"]
    if isinstance(item, list):
        nested = _encode_array(None, item, depth)
        return [f"{prefix}- {nested[0].lstrip()}"] + nested[1:]
    if not item:
        return [f"{prefix}-"]
    # First field shares the dash line; the rest align one level deeper.
    field_lines = _encode_object(item, depth + 1)
    return [f"{prefix}- {field_lines[0].lstrip()}"] + field_lines[1:]
