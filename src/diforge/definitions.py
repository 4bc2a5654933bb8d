from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final, TypeAlias

from typing_extensions import Self


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final[Any] = _Missing()
"""Marks a declared service parameter without a default value."""

SELF_REFERENCE: Final[str] = "self"
"""Reserved service name that refers to the service being generated."""

CONTAINER_REFERENCE: Final[str] = "container"
"""Reserved service name of the generated container itself."""

NEGATION: Final[str] = "not"
"""Entity token that negates its single argument."""

PROPERTY_MARKER: Final[str] = "$"
"""Prefix that marks a member as a property instead of a method."""

Entity: TypeAlias = Any
"""A type name, a ``@reference``, a ``(receiver, member)`` pair, ``Code`` or ``"not"``."""


@dataclass(frozen=True, slots=True)
class Code:
    """Raw Python source fragment emitted verbatim by the statement compiler."""

    code: str

    def __str__(self) -> str:
        return self.code


@dataclass(slots=True)
class Statement:
    """Describe a call: what to construct or invoke and with which arguments.

    Arguments may be literals, ``@service`` references, ``Code`` fragments or
    nested statements, arbitrarily nested inside lists, tuples and dicts.
    """

    entity: Entity
    arguments: list[Any] = field(default_factory=list)
    keywords: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class ServiceDefinition:
    """Declarative description of one named service.

    Instances are created by ``ContainerBuilder.add_definition`` and configured
    through the fluent setters, each of which returns the definition.

    Examples:
        >>> builder.add_definition("mailer").set_class(
        ...     "app.mail.Mailer",
        ... ).add_setup("set_logger").add_tag("console")

    """

    class_name: str | None = None
    """Concrete class of the service; resolved from the factory when omitted."""
    factory: Statement | None = None
    """How the service is constructed."""
    setup: list[Statement] = field(default_factory=list)
    """Statements run after construction, in order."""
    parameters: dict[str, Any] = field(default_factory=dict)
    """Declared factory-method parameters: ``"name"`` or ``"Type name"`` to default."""
    tags: dict[str, Any] = field(default_factory=dict)
    """Tag name to arbitrary tag value."""
    shared: bool = True
    """Whether the container builds the service once and reuses it."""
    autowired: bool = True
    """Whether the service is a candidate for type-based autowiring."""
    internal: bool = False
    """Whether the generated factory method is non-public."""

    def set_class(
        self,
        class_name: str | type[Any],
        arguments: Iterable[Any] | None = None,
    ) -> Self:
        self.class_name = dotted_type_name(class_name)
        if arguments is not None:
            self.set_factory(self.class_name, arguments)
        return self

    def set_factory(
        self,
        entity: Entity,
        arguments: Iterable[Any] | None = None,
        keywords: Mapping[str, Any] | None = None,
    ) -> Self:
        self.factory = Statement(entity, list(arguments or ()), dict(keywords or {}))
        return self

    def set_arguments(self, *arguments: Any, **keywords: Any) -> Self:
        """Set constructor arguments, creating the factory from the class when needed."""
        if self.factory is None:
            self.factory = Statement(self.class_name)
        self.factory.arguments = list(arguments)
        self.factory.keywords = dict(keywords)
        return self

    def add_setup(self, entity: Entity, *arguments: Any, **keywords: Any) -> Self:
        self.setup.append(Statement(entity, list(arguments), dict(keywords)))
        return self

    def set_parameters(self, parameters: Iterable[str] | Mapping[str, Any]) -> Self:
        if isinstance(parameters, Mapping):
            self.parameters = dict(parameters)
        else:
            self.parameters = dict.fromkeys(parameters, MISSING)
        return self

    def add_tag(self, tag: str, value: Any = True) -> Self:
        self.tags[tag] = value
        return self

    def set_shared(self, shared: bool) -> Self:
        self.shared = shared
        return self

    def set_autowired(self, autowired: bool) -> Self:
        self.autowired = autowired
        return self

    def set_internal(self, internal: bool) -> Self:
        self.internal = internal
        return self


def parse_parameter_declaration(declaration: str) -> tuple[str | None, str]:
    """Split a ``"Type name"`` declaration into ``(type_name, name)``.

    Args:
        declaration: Parameter declaration, either ``"name"`` or ``"Type name"``.

    """
    parts = declaration.split()
    if len(parts) > 1:
        return parts[0], parts[-1]
    return None, declaration.strip()


def dotted_type_name(value: str | type[Any]) -> str:
    """Return the dotted name of a class; strings are returned unchanged."""
    if isinstance(value, type):
        if value.__module__ == "builtins":
            return value.__qualname__
        return f"{value.__module__}.{value.__qualname__}"
    return value
