from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from diforge.definitions import Statement
from diforge.exceptions import DIForgeParameterError

_PLACEHOLDER = re.compile(r"%([\w.-]*)%")
_SCALARS = (str, int, float, bool)


def expand(
    value: Any,
    parameters: Mapping[str, Any],
    *,
    recursive: bool = False,
    _expanding: tuple[str, ...] = (),
) -> Any:
    """Expand ``%name%`` placeholders in a value, recursively through containers.

    A placeholder spanning the whole string yields the raw parameter value of
    any type; inside a longer string the value must be a scalar. ``%%`` is a
    literal percent sign and ``%a.b%`` walks nested mappings. Values that are
    neither strings nor containers are returned untouched.

    Args:
        value: Value to expand: a string, list, tuple, dict or ``Statement``.
        parameters: Flat or nested parameter table.
        recursive: Whether parameter values are expanded themselves.
        _expanding: Parameter names on the current expansion path.

    """
    if isinstance(value, Statement):
        return Statement(
            expand(value.entity, parameters, recursive=recursive, _expanding=_expanding),
            expand(value.arguments, parameters, recursive=recursive, _expanding=_expanding),
            expand(value.keywords, parameters, recursive=recursive, _expanding=_expanding),
        )
    if isinstance(value, dict):
        return {
            key: expand(item, parameters, recursive=recursive, _expanding=_expanding)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return type(value)(
            expand(item, parameters, recursive=recursive, _expanding=_expanding)
            for item in value
        )
    if not isinstance(value, str):
        return value

    parts = _PLACEHOLDER.split(value)
    result = ""
    for position, part in enumerate(parts):
        if position % 2 == 0:
            result += part
            continue
        if not part:
            result += "%"
            continue
        if part in _expanding:
            msg = (
                "Circular reference detected for variables: "
                f"{', '.join((*_expanding, part))}."
            )
            raise DIForgeParameterError(msg)

        resolved = _lookup(parameters, part)
        if recursive:
            resolved = expand(
                resolved,
                parameters,
                recursive=True,
                _expanding=(*_expanding, part),
            )
        if len(part) + 2 == len(value):
            return resolved
        if not isinstance(resolved, _SCALARS):
            msg = f"Unable to concatenate non-scalar parameter '{part}' into '{value}'."
            raise DIForgeParameterError(msg)
        result += str(resolved)
    return result


def _lookup(parameters: Mapping[str, Any], path: str) -> Any:
    current: Any = parameters
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            msg = f"Missing parameter '{path}'."
            raise DIForgeParameterError(msg)
        current = current[key]
    return current
