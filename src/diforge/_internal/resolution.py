from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from diforge._internal.entities import (
    FreeFunction,
    MemberAccess,
    ServiceRef,
    TypeName,
    TypeRef,
    is_type_reference,
    normalize_entity,
    normalize_value,
    parse_entity,
    reference_name,
)
from diforge._internal.parameters import expand
from diforge.definitions import ServiceDefinition, Statement
from diforge.exceptions import (
    DIForgeAmbiguousTypeError,
    DIForgeCircularReferenceError,
    DIForgeClassNotFoundError,
    DIForgeMissingServiceError,
    DIForgeUncallableError,
    DIForgeUnresolvableClassError,
)
from diforge.oracle import CallableInfo, TypeOracle

logger = logging.getLogger(__name__)


class DependencySet:
    """Ordered set of files whose contents can affect generated code."""

    def __init__(self) -> None:
        self._files: dict[str, None] = {}

    def add(self, path: str | None) -> None:
        if path:
            self._files[path] = None

    def clear(self) -> None:
        self._files.clear()

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files


class AutowiringIndex:
    """Map lower-cased type names to the autowired services of that type.

    The index is immutable: every resolution pass builds a new one.
    """

    def __init__(self, entries: Mapping[str, Sequence[str]] | None = None) -> None:
        self._entries: Mapping[str, tuple[str, ...]] = MappingProxyType(
            {self.key(type_name): tuple(names) for type_name, names in (entries or {}).items()},
        )

    @staticmethod
    def key(type_name: str) -> str:
        return type_name.lstrip(".").lower()

    def candidates(self, type_name: str) -> tuple[str, ...]:
        return self._entries.get(self.key(type_name), ())

    def get_by_type(self, type_name: str) -> str | None:
        """Return the single service of a type, or ``None`` when there is none.

        Args:
            type_name: Class or ABC name, in any letter case.

        Raises:
            DIForgeAmbiguousTypeError: More than one autowired service has the type.

        """
        candidates = self.candidates(type_name)
        if not candidates:
            return None
        if len(candidates) > 1:
            raise DIForgeAmbiguousTypeError(type_name, candidates)
        return candidates[0]

    def items(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        return iter(self._entries.items())

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.key(type_name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True, slots=True)
class ResolvedDefinition:
    """Read-only view of a definition after class resolution."""

    name: str
    class_name: str | None
    factory: Statement
    setup: tuple[Statement, ...] = ()
    parameters: Mapping[str, Any] = field(default_factory=dict)
    tags: Mapping[str, Any] = field(default_factory=dict)
    shared: bool = True
    autowired: bool = True
    internal: bool = False


@dataclass(frozen=True, slots=True)
class Resolution:
    """Frozen outcome of ``ContainerBuilder.resolve_class_list``."""

    definitions: Mapping[str, ResolvedDefinition]
    index: AutowiringIndex
    parameters: Mapping[str, Any]

    def get(self, name: str) -> ResolvedDefinition:
        definition = self.definitions.get(name)
        if definition is None:
            msg = f"Service '{name}' not found."
            raise DIForgeMissingServiceError(msg)
        return definition


@dataclass(slots=True)
class _WorkingDefinition:
    source: ServiceDefinition
    class_name: str | None
    factory: Statement
    setup: tuple[Statement, ...]
    autowired: bool


class ClassResolver:
    """Resolve the class of every definition and build the autowiring index."""

    def __init__(
        self,
        *,
        definitions: Mapping[str, ServiceDefinition],
        parameters: Mapping[str, Any],
        oracle: TypeOracle,
        dependencies: DependencySet,
    ) -> None:
        self._definitions = definitions
        self._parameters = parameters
        self._oracle = oracle
        self._dependencies = dependencies
        self._work: dict[str, _WorkingDefinition] = {}

    def resolve(self) -> Resolution:
        """Resolve all classes and return the frozen resolution."""
        names = {id(definition): name for name, definition in self._definitions.items()}
        self._work = {
            name: self._complete(name, definition, names)
            for name, definition in self._definitions.items()
        }
        for name in self._work:
            self._resolve_class(name, ())

        resolved, entries, indexed_types = self._freeze()
        self._dependencies.clear()
        for type_name in indexed_types.values():
            self._dependencies.add(self._oracle.declaring_file(type_name))

        index = AutowiringIndex(entries)
        logger.debug(
            "Resolved %d service definitions, autowiring index has %d types",
            len(resolved),
            len(index),
        )
        return Resolution(
            definitions=MappingProxyType(resolved),
            index=index,
            parameters=MappingProxyType(dict(self._parameters)),
        )

    def _complete(
        self,
        name: str,
        definition: ServiceDefinition,
        names: Mapping[int, str],
    ) -> _WorkingDefinition:
        class_name = definition.class_name
        if class_name:
            class_name = str(expand(class_name, self._parameters, recursive=True))
        factory = normalize_value(definition.factory, names) if definition.factory else None

        if factory is None:
            if not class_name:
                msg = f"Class and factory are missing in service '{name}' definition."
                raise DIForgeUnresolvableClassError(msg, service_name=name)
            factory = Statement(class_name)

        return _WorkingDefinition(
            source=definition,
            class_name=class_name or None,
            factory=factory,
            setup=tuple(normalize_value(statement, names) for statement in definition.setup),
            autowired=definition.autowired,
        )

    def _resolve_class(self, name: str, stack: tuple[str, ...]) -> str | None:
        if name in stack:
            raise DIForgeCircularReferenceError(stack[stack.index(name) :])

        work = self._work[name]
        if work.class_name:
            return work.class_name

        stack = (*stack, name)
        entity = parse_entity(
            normalize_entity(expand(work.factory.entity, self._parameters, recursive=True), {}),
        )

        if isinstance(entity, MemberAccess):
            callee = self._factory_callee(name, entity, stack)
            if callee is None:
                return None
            work.class_name = self._return_type(callee)
        elif isinstance(entity, FreeFunction):
            callee = self._oracle.function(entity.name)
            self._check_callable(callee, entity.name)
            work.class_name = self._return_type(callee)
        elif isinstance(entity, ServiceRef):
            target = self._service(entity.name)
            if self._work[target].source.shared:
                work.autowired = False
            work.class_name = self._resolve_class(target, stack)
        elif isinstance(entity, TypeRef):
            work.autowired = False
            work.class_name = entity.type_name
        elif isinstance(entity, TypeName):
            work.class_name = entity.name

        logger.debug("Service '%s' resolved to class %s", name, work.class_name or "object")
        return work.class_name

    def _factory_callee(
        self,
        name: str,
        entity: MemberAccess,
        stack: tuple[str, ...],
    ) -> CallableInfo | None:
        receiver = entity.receiver
        reference = reference_name(receiver)
        if reference is not None:
            if is_type_reference(reference):
                msg = f"Unable resolve class name for service '{name}'."
                raise DIForgeUnresolvableClassError(msg, service_name=name)
            receiver_class = self._resolve_class(self._service(reference), stack)
            if not receiver_class:
                return None
            receiver = receiver_class

        callee = None
        if not entity.is_property and self._oracle.exists(receiver):
            callee = self._oracle.method(receiver, entity.member)
        self._check_callable(callee, f"{receiver}::{entity.member}")
        return callee

    def _check_callable(self, callee: CallableInfo | None, target: str) -> None:
        if callee is None or not callee.is_public or callee.is_abstract:
            msg = f"Factory '{target}' is not callable."
            raise DIForgeUncallableError(msg)

    def _return_type(self, callee: CallableInfo | None) -> str | None:
        if callee is None or not callee.return_type:
            return None
        return_type = callee.return_type
        if not self._oracle.exists(return_type) and callee.scope:
            return_type = f"{callee.scope}.{return_type}"
        return return_type

    def _service(self, name: str) -> str:
        if name not in self._work:
            msg = f"Reference to missing service '{name}'."
            raise DIForgeMissingServiceError(msg)
        return name

    def _freeze(
        self,
    ) -> tuple[dict[str, ResolvedDefinition], dict[str, list[str]], dict[str, str]]:
        resolved: dict[str, ResolvedDefinition] = {}
        entries: dict[str, list[str]] = {}
        indexed_types: dict[str, str] = {}

        for name, work in self._work.items():
            class_name = work.class_name
            if class_name:
                if not self._oracle.exists(class_name):
                    msg = f"Class {class_name} has not been found."
                    raise DIForgeClassNotFoundError(msg)
                class_name = self._oracle.canonical_name(class_name)
                if work.autowired:
                    for type_name in (*self._oracle.ancestors(class_name), class_name):
                        key = AutowiringIndex.key(type_name)
                        entries.setdefault(key, []).append(name)
                        indexed_types.setdefault(key, type_name)

            source = work.source
            resolved[name] = ResolvedDefinition(
                name=name,
                class_name=class_name,
                factory=work.factory,
                setup=work.setup,
                parameters=MappingProxyType(dict(source.parameters)),
                tags=MappingProxyType(dict(source.tags)),
                shared=source.shared,
                autowired=work.autowired,
                internal=source.internal,
            )
        return resolved, entries, indexed_types
