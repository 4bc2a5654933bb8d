from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar, Final

from diforge.definitions import dotted_type_name
from diforge.exceptions import DIForgeCircularReferenceError, DIForgeMissingServiceError

SERVICE_FACTORY_PREFIX: Final[str] = "_create_service_"
"""Prefix of the generated factory methods of shared services."""


def sanitize_name(name: str) -> str:
    """Return the method-name form of a service name (``a.b`` becomes ``a__b``)."""
    return name.replace(".", "__")


def factory_method_name(name: str, *, shared: bool = True, internal: bool = False) -> str:
    """Return the name of the generated method that creates a service.

    Args:
        name: Service name.
        shared: Whether the service is created once and cached.
        internal: Whether a transient service's method is non-public.

    """
    sanitized = sanitize_name(name)
    if shared:
        return f"{SERVICE_FACTORY_PREFIX}{sanitized}"
    if internal:
        return f"_create_{sanitized}"
    return f"create_{sanitized}"


class BaseContainer:
    """Runtime base class of generated containers.

    Generated subclasses define one ``_create_service_<name>`` method per
    shared service plus the ``classes`` type table and ``meta`` tag table.

    Examples:
        >>> container = Container()
        >>> mailer = container.get_service("mailer")
        >>> container.get_by_type("app.mail.Mailer") is mailer
        True

    """

    classes: ClassVar[Mapping[str, str | None]] = {}
    """Lower-cased type name to its single service, ``None`` when ambiguous."""
    meta: ClassVar[Mapping[str, Mapping[str, Any]]] = {}
    """Service name to its metadata, e.g. ``{"tags": {...}}``."""

    def __init__(self, parameters: Mapping[str, Any] | None = None) -> None:
        self.parameters: dict[str, Any] = dict(parameters or {})
        self._services: dict[str, Any] = {}
        self._creating: dict[str, None] = {}

    def add_service(self, name: str, service: Any) -> None:
        """Register an already created shared service instance."""
        self._services[name] = service

    def get_service(self, name: str) -> Any:
        """Return a shared service, creating it on first access.

        Args:
            name: Service name.

        Raises:
            DIForgeMissingServiceError: The container has no such service.
            DIForgeCircularReferenceError: Creating the service requires itself.

        """
        if name in self._services:
            return self._services[name]

        factory = getattr(self, factory_method_name(name), None)
        if factory is None:
            msg = f"Service '{name}' not found."
            raise DIForgeMissingServiceError(msg)
        if name in self._creating:
            creating = list(self._creating)
            raise DIForgeCircularReferenceError(creating[creating.index(name) :])

        self._creating[name] = None
        try:
            service = factory()
        finally:
            del self._creating[name]
        self._services[name] = service
        return service

    def has_service(self, name: str) -> bool:
        return name in self._services or hasattr(self, factory_method_name(name))

    def is_created(self, name: str) -> bool:
        return name in self._services

    def get_by_type(self, type_name: str | type[Any], *, need: bool = True) -> Any:
        """Return the single autowired service of a type.

        Args:
            type_name: Class object or dotted class name, in any letter case.
            need: Whether a missing service raises instead of returning ``None``.

        Raises:
            DIForgeMissingServiceError: No unique service of the type exists and ``need`` is set.

        """
        type_name = dotted_type_name(type_name)
        key = type_name.lstrip(".").lower()
        name = self.classes.get(key)
        if name is not None:
            return self.get_service(name)
        if not need:
            return None
        if key in self.classes:
            msg = f"Multiple services of type {type_name} found."
        else:
            msg = f"Service of type {type_name} not found."
        raise DIForgeMissingServiceError(msg)

    def find_by_tag(self, tag: str) -> dict[str, Any]:
        """Return service names carrying a tag mapped to the tag values."""
        return {
            name: meta["tags"][tag]
            for name, meta in self.meta.items()
            if tag in meta.get("tags", {})
        }
