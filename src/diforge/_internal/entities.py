from __future__ import annotations

import inspect
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from diforge.definitions import (
    NEGATION,
    PROPERTY_MARKER,
    Code,
    ServiceDefinition,
    Statement,
)
from diforge.exceptions import DIForgeInvalidStatementError, DIForgeMissingServiceError

_REFERENCE = re.compile(r"^@[\w.]+$")


@dataclass(frozen=True, slots=True)
class TypeName:
    """Construct the named class."""

    name: str


@dataclass(frozen=True, slots=True)
class ServiceRef:
    """Get or create a service by name (``@name``)."""

    name: str


@dataclass(frozen=True, slots=True)
class TypeRef:
    """Get the single autowired service of a type (``@package.Class``)."""

    type_name: str


@dataclass(frozen=True, slots=True)
class FreeFunction:
    """Call a module-level function (``("", "package.func")``)."""

    name: str


@dataclass(frozen=True, slots=True)
class MemberAccess:
    """Call a method or assign a property on a service or a class."""

    receiver: str
    member: str

    @property
    def is_property(self) -> bool:
        return self.member.startswith(PROPERTY_MARKER)

    @property
    def attribute(self) -> str:
        return self.member.removeprefix(PROPERTY_MARKER)


@dataclass(frozen=True, slots=True)
class RawCode:
    """Call a raw source fragment."""

    code: str


@dataclass(frozen=True, slots=True)
class Negation:
    """Negate the single argument."""


ParsedEntity: TypeAlias = (
    TypeName | ServiceRef | TypeRef | FreeFunction | MemberAccess | RawCode | Negation
)


def reference_name(value: Any) -> str | None:
    """Return the name behind an ``@reference`` string, or ``None`` for other values."""
    if isinstance(value, str) and _REFERENCE.match(value):
        return value[1:]
    return None


def is_type_reference(name: str) -> bool:
    """Return whether a reference name denotes a type rather than a service."""
    return "." in name


def parse_entity(entity: Any) -> ParsedEntity:
    """Classify a normalized statement entity.

    Args:
        entity: Entity of a statement after placeholder expansion.

    """
    if isinstance(entity, Code):
        return RawCode(entity.code)
    if entity == NEGATION:
        return Negation()
    if isinstance(entity, str):
        if "::" in entity:
            receiver, member = entity.split("::", 1)
            return _member_or_function(receiver, member)
        name = reference_name(entity)
        if name is None:
            return TypeName(entity.lstrip("."))
        if is_type_reference(name):
            return TypeRef(name.lstrip("."))
        return ServiceRef(name)
    if (
        isinstance(entity, tuple | list)
        and len(entity) == 2  # noqa: PLR2004
        and all(isinstance(part, str) for part in entity)
    ):
        return _member_or_function(entity[0], entity[1])

    msg = f"Expected class, method or property, {entity!r} given."
    raise DIForgeInvalidStatementError(msg)


def normalize_entity(entity: Any, names: Mapping[int, str]) -> Any:
    """Replace Python objects in an entity by their string forms.

    Service definitions become ``@name`` references, classes become dotted
    names, functions become ``("", "module.func")`` pairs and
    ``"Class::member"`` strings are split into pairs.

    Args:
        entity: Entity as given by the user.
        names: Registered service names keyed by ``id()`` of their definitions.

    """
    if isinstance(entity, ServiceDefinition):
        return f"@{_definition_name(entity, names)}"
    if isinstance(entity, type):
        return _dotted_name(entity)
    if inspect.isfunction(entity) or inspect.isbuiltin(entity):
        return ("", _dotted_name(entity))
    if isinstance(entity, str) and "::" in entity:
        receiver, member = entity.split("::", 1)
        return (receiver, member)
    if isinstance(entity, tuple | list) and len(entity) == 2:  # noqa: PLR2004
        receiver, member = entity
        return (normalize_entity(receiver, names), member)
    return entity


def normalize_value(value: Any, names: Mapping[int, str]) -> Any:
    """Normalize entities and definition objects anywhere inside a value.

    Args:
        value: Statement, argument or nested container of arguments.
        names: Registered service names keyed by ``id()`` of their definitions.

    """
    if isinstance(value, Statement):
        return Statement(
            normalize_entity(value.entity, names),
            [normalize_value(item, names) for item in value.arguments],
            {key: normalize_value(item, names) for key, item in value.keywords.items()},
        )
    if isinstance(value, ServiceDefinition):
        return f"@{_definition_name(value, names)}"
    if isinstance(value, dict):
        return {key: normalize_value(item, names) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return type(value)(normalize_value(item, names) for item in value)
    return value


def _member_or_function(receiver: str, member: str) -> FreeFunction | MemberAccess:
    if receiver == "":
        return FreeFunction(member)
    return MemberAccess(receiver, member)


def _definition_name(definition: ServiceDefinition, names: Mapping[int, str]) -> str:
    name = names.get(id(definition))
    if name is None:
        msg = "Service definition used in a statement is not registered in this builder."
        raise DIForgeMissingServiceError(msg)
    return name


def _dotted_name(value: Any) -> str:
    module_name = getattr(value, "__module__", None)
    if module_name in (None, "builtins"):
        return value.__qualname__
    return f"{module_name}.{value.__qualname__}"
