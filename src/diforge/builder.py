from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from diforge._internal.emitter.renderer import ContainerEmitter
from diforge._internal.parameters import expand
from diforge._internal.resolution import ClassResolver, DependencySet, Resolution
from diforge.definitions import CONTAINER_REFERENCE, ServiceDefinition, dotted_type_name
from diforge.exceptions import DIForgeDuplicateServiceError, DIForgeMissingServiceError
from diforge.oracle import ReflectionTypeOracle, TypeOracle
from diforge.settings import BuilderSettings

logger = logging.getLogger(__name__)


class ContainerBuilder:
    """Collect service definitions and compile them into a container class.

    Definitions are registered by name and configured through the fluent
    ``ServiceDefinition`` setters. ``resolve_class_list`` resolves classes and
    builds the autowiring index, ``emit`` renders the Python module of the
    container.

    Examples:
        >>> builder = ContainerBuilder(parameters={"dsn": "sqlite://"})
        >>> builder.add_definition("logger").set_class("app.log.Logger")
        >>> builder.add_definition("db").set_class("app.db.Database", ["%dsn%"])
        >>> source = builder.emit()

    """

    def __init__(
        self,
        *,
        oracle: TypeOracle | None = None,
        settings: BuilderSettings | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> None:
        self.parameters: dict[str, Any] = dict(parameters or {})
        self._oracle = oracle if oracle is not None else ReflectionTypeOracle()
        self._settings = settings if settings is not None else BuilderSettings()
        self._definitions: dict[str, ServiceDefinition] = {}
        self._dependencies = DependencySet()
        self._resolution: Resolution | None = None

    @property
    def resolution(self) -> Resolution | None:
        """Outcome of the last ``resolve_class_list`` call, if still current."""
        return self._resolution

    def add_definition(
        self,
        name: str,
        definition: ServiceDefinition | None = None,
    ) -> ServiceDefinition:
        """Register a new service definition.

        Args:
            name: Unique service name.
            definition: Definition to register; a blank one is created when omitted.

        Raises:
            DIForgeDuplicateServiceError: A service of the same name is already registered.

        """
        if name in self._definitions:
            msg = f"Service '{name}' has already been added."
            raise DIForgeDuplicateServiceError(msg)
        self._resolution = None
        definition = definition if definition is not None else ServiceDefinition()
        self._definitions[name] = definition
        return definition

    def remove_definition(self, name: str) -> None:
        self._resolution = None
        self._definitions.pop(name, None)

    def get_definition(self, name: str) -> ServiceDefinition:
        if name not in self._definitions:
            msg = f"Service '{name}' not found."
            raise DIForgeMissingServiceError(msg)
        return self._definitions[name]

    def has_definition(self, name: str) -> bool:
        return name in self._definitions

    def get_definitions(self) -> Mapping[str, ServiceDefinition]:
        return MappingProxyType(self._definitions)

    def find_by_tag(self, tag: str) -> dict[str, Any]:
        """Return names of services carrying a tag mapped to the tag values."""
        return {
            name: definition.tags[tag]
            for name, definition in self._definitions.items()
            if tag in definition.tags
        }

    def get_by_type(self, type_name: str | type[Any]) -> str | None:
        """Return the single autowired service of a type, or ``None``.

        Classes are resolved first when no current resolution exists.

        Args:
            type_name: Class object or dotted class name, in any letter case.

        Raises:
            DIForgeAmbiguousTypeError: More than one autowired service has the type.

        """
        resolution = self._resolution or self.resolve_class_list()
        return resolution.index.get_by_type(dotted_type_name(type_name))

    def resolve_class_list(self) -> Resolution:
        """Resolve the class of every definition and rebuild the autowiring index.

        Resets the dependency set before collecting the files of indexed types.

        Raises:
            DIForgeCircularReferenceError: Definitions reference each other in a cycle.
            DIForgeUnresolvableClassError: A definition has neither class nor factory.
            DIForgeClassNotFoundError: A resolved class does not exist.

        """
        self._resolution = ClassResolver(
            definitions=self._definitions,
            parameters=self.parameters,
            oracle=self._oracle,
            dependencies=self._dependencies,
        ).resolve()
        return self._resolution

    def emit(self, base_class: str | type[Any] | None = None) -> str:
        """Return the Python source of the container module.

        The reserved ``container`` service is redefined as the base class, so the
        container autowires as itself.

        Args:
            base_class: Class the generated container extends; defaults to
                ``BuilderSettings.base_class``.

        Raises:
            DIForgeServiceCreationError: Code for a service cannot be generated.

        """
        base_class = dotted_type_name(base_class or self._settings.base_class)
        self._definitions.pop(CONTAINER_REFERENCE, None)
        self.add_definition(CONTAINER_REFERENCE).set_class(base_class)

        resolution = self.resolve_class_list()
        logger.debug("Emitting container for %d services", len(resolution.definitions))
        return ContainerEmitter(
            resolution=resolution,
            oracle=self._oracle,
            dependencies=self._dependencies,
            settings=self._settings,
        ).emit(base_class)

    def get_dependencies(self) -> tuple[str, ...]:
        """Return files whose changes can affect the generated code."""
        return tuple(self._dependencies)

    def expand(self, value: Any) -> Any:
        """Expand ``%name%`` placeholders in a value using the builder parameters."""
        return expand(value, self.parameters, recursive=True)
