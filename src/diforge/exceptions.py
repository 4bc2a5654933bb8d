from __future__ import annotations

from collections.abc import Sequence


class DIForgeError(Exception):
    """Represent a base class for all diforge-specific failures.

    Catch this type when you want to handle any diforge error path without
    matching each concrete exception class individually.
    """


class DIForgeInvalidStateError(DIForgeError):
    """Signal an operation that conflicts with the current builder state.

    Raised for registry misuse such as registering a name twice, and for
    resolved classes that do not exist.
    """


class DIForgeDuplicateServiceError(DIForgeInvalidStateError):
    """Signal that a service name is already registered.

    Raised by ``ContainerBuilder.add_definition``. Remove the existing
    definition first or pick another name.
    """


class DIForgeClassNotFoundError(DIForgeInvalidStateError):
    """Signal that a resolved class name does not denote an existing type.

    Typical fixes include correcting the dotted path passed to
    ``ServiceDefinition.set_class`` or the return annotation of a factory.
    """


class DIForgeMissingServiceError(DIForgeError):
    """Signal a lookup of a service name that is not registered.

    Raised by ``ContainerBuilder.get_definition`` and by the runtime
    ``BaseContainer.get_service``.
    """


class DIForgeCircularReferenceError(DIForgeError):
    """Signal a cycle in alias or factory-receiver chains.

    The ``services`` attribute holds the service names that form the cycle in
    the order they were entered. Break the cycle by giving one of the services
    an explicit class.
    """

    def __init__(self, services: Sequence[str]) -> None:
        self.services = tuple(services)
        super().__init__(
            f"Circular reference detected for services: {', '.join(self.services)}.",
        )


class DIForgeParameterError(DIForgeError):
    """Signal a failure while expanding ``%parameter%`` placeholders.

    Common triggers are references to undefined parameters, parameters that
    reference each other in a cycle, and concatenation of non-scalar values
    into a longer string.
    """


class DIForgeServiceCreationError(DIForgeError):
    """Signal that code for a service cannot be generated.

    This is the base of every compile-time creation failure. The container
    emitter also raises it directly to wrap any failure with the offending
    service name, available as ``service_name``; the original error is chained
    as ``__cause__``.
    """

    def __init__(self, message: str, *, service_name: str | None = None) -> None:
        self.service_name = service_name
        super().__init__(message)


class DIForgeAmbiguousTypeError(DIForgeServiceCreationError):
    """Signal that autowiring found more than one service for a type.

    Typical fixes include passing the argument explicitly or disabling
    autowiring for all but one candidate with ``set_autowired(False)``.
    """

    def __init__(self, type_name: str, candidates: Sequence[str]) -> None:
        self.type_name = type_name
        self.candidates = tuple(candidates)
        super().__init__(
            f"Multiple services of type {type_name} found: {', '.join(self.candidates)}",
        )


class DIForgeMissingDependencyError(DIForgeServiceCreationError):
    """Signal that autowiring found no service for a required parameter type."""

    def __init__(self, type_name: str, callee: str) -> None:
        self.type_name = type_name
        super().__init__(
            f"No service of type {type_name} found. Make sure the type hint in {callee} "
            "is written correctly and service of this type is registered.",
        )


class DIForgeUnresolvableClassError(DIForgeServiceCreationError):
    """Signal that a definition has no usable class.

    Raised when a definition has neither class nor factory, or when a factory
    receiver is a cross-type reference whose class cannot be determined.
    """


class DIForgeInvalidStatementError(DIForgeServiceCreationError):
    """Signal a statement entity of an unsupported shape."""


class DIForgeUncallableError(DIForgeServiceCreationError):
    """Signal a factory or setup target that cannot be invoked.

    Common triggers are missing methods, private (underscore) methods and
    abstract methods.
    """


class DIForgeSharedServiceArgumentsError(DIForgeServiceCreationError):
    """Signal arguments passed to a reference to a shared service.

    Shared services are built once by the container; only transient services
    accept call arguments.
    """


class DIForgeArgumentsError(DIForgeServiceCreationError):
    """Signal arguments that cannot be matched to the target signature."""


class DIForgeUnexpectedValueError(DIForgeError):
    """Signal a factory result that is not an instance of the declared class.

    Raised at runtime by generated containers.
    """
