"""Render context values for Stheno.

A render context is a tree built from a closed set of value kinds: None,
booleans, numbers, strings, dates, lists and string-keyed maps. Everything
the renderer does with a value (path lookup, truthiness, output) dispatches
on that set, so records and arbitrary objects are folded into it once at the
boundary by ``to_context_value``.

Key functions:
- to_context_value: Coerce arbitrary Python data into context values.
- resolve_path: Walk a dotted path through maps (and list indices).
- is_truthy: Conditional truthiness.
- stringify: Text output of a value.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Set
from datetime import date, datetime
from typing import Any, Union

ContextValue = Union[
    None, bool, int, float, str, date, datetime, list["ContextValue"], dict[str, "ContextValue"]
]

_SCALARS = (str, bool, int, float, date)


def to_context_value(value: Any) -> ContextValue:
    """Coerce a Python value into the closed context value model.

    Mappings become dicts with string keys, other iterables (lists, tuples,
    sets) become lists, objects exposing ``to_context()`` and dataclass
    instances become maps. Anything else is rendered to its string form.

    Args:
        value: Value to coerce.

    Returns:
        An equivalent context value.
    """
    if value is None or isinstance(value, _SCALARS):
        return value
    if isinstance(value, Mapping):
        return {str(k): to_context_value(v) for k, v in value.items()}
    if isinstance(value, Set):
        return [to_context_value(v) for v in sorted(value, key=str)]
    if isinstance(value, (list, tuple)):
        return [to_context_value(v) for v in value]
    to_context = getattr(value, "to_context", None)
    if callable(to_context):
        return to_context_value(to_context())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_context_value(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    return str(value)


def resolve_path(path: str, context: Mapping[str, Any]) -> ContextValue:
    """Resolve a dotted path against a context.

    Each segment looks up a key in the current map. A numeric segment
    indexes into a list. Any miss yields None.

    Args:
        path: Dotted path such as ``page.author.name``.
        context: Context to resolve against.

    Returns:
        The value found, or None.
    """
    current: Any = context
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def is_truthy(value: ContextValue) -> bool:
    """Return whether a value counts as true in a conditional.

    None, False, the empty string, numeric zero and empty collections are
    false; everything else, dates included, is true.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (str, list, dict)):
        return len(value) > 0
    if isinstance(value, (int, float)):
        return value != 0
    return True


def stringify(value: ContextValue) -> str:
    """Return the text a value renders as.

    None renders as the empty string and booleans as ``true``/``false``.
    """
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def merge_loop_context(
    outer: Mapping[str, Any], item: ContextValue
) -> dict[str, ContextValue]:
    """Build the context for one loop iteration.

    The result is the outer context, overlaid with the item's own fields when
    the item is a map, plus ``this`` bound to the raw item.

    Args:
        outer: Context of the enclosing scope.
        item: Current loop element.

    Returns:
        New context for the loop body.
    """
    scope = dict(outer)
    if isinstance(item, Mapping):
        scope.update(item)
    scope["this"] = item
    return scope
