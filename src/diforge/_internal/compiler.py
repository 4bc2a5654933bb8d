from __future__ import annotations

import keyword
from collections.abc import Mapping, Sequence
from inspect import Parameter
from typing import Any, Final

from diforge._internal.binder import ArgumentBinder, BoundArgument
from diforge._internal.entities import (
    FreeFunction,
    MemberAccess,
    Negation,
    RawCode,
    ServiceRef,
    TypeName,
    TypeRef,
    is_type_reference,
    parse_entity,
    reference_name,
)
from diforge._internal.resolution import DependencySet, Resolution, ResolvedDefinition
from diforge.container import factory_method_name
from diforge.definitions import (
    CONTAINER_REFERENCE,
    MISSING,
    SELF_REFERENCE,
    Code,
    Statement,
    parse_parameter_declaration,
)
from diforge.exceptions import (
    DIForgeArgumentsError,
    DIForgeClassNotFoundError,
    DIForgeInvalidStatementError,
    DIForgeMissingServiceError,
    DIForgeSharedServiceArgumentsError,
)
from diforge.oracle import CallableInfo, ParameterInfo, TypeOracle

LOCAL_SERVICE: Final[str] = "service"
"""Name of the local variable holding the service inside its factory method."""


class StatementCompiler:
    """Compile statements into Python expressions for the generated container.

    Every module referenced by the emitted expressions is collected in
    ``modules`` so the emitter can import it.
    """

    def __init__(
        self,
        *,
        resolution: Resolution,
        binder: ArgumentBinder,
        oracle: TypeOracle,
        dependencies: DependencySet,
    ) -> None:
        self._resolution = resolution
        self._binder = binder
        self._oracle = oracle
        self._dependencies = dependencies
        self._modules: dict[str, None] = {}

    @property
    def modules(self) -> tuple[str, ...]:
        return tuple(self._modules)

    def compile(self, statement: Statement, self_name: str | None = None) -> str:
        """Return the Python expression for a statement.

        Args:
            statement: Statement with placeholders already expanded.
            self_name: Service being generated; ``@self`` refers to it and
                references to it compile to the local ``service`` variable.

        """
        entity = parse_entity(statement.entity)
        arguments = statement.arguments
        keywords = statement.keywords

        if isinstance(entity, RawCode):
            call_arguments = self._format_arguments(_plain(arguments, keywords), self_name)
            return f"({entity.code})({call_arguments})"

        if isinstance(entity, ServiceRef | TypeRef):
            service = self.service_name(statement.entity, self_name)
            return self._compile_service_call(service, arguments, keywords, self_name)

        if isinstance(entity, Negation):
            if len(arguments) != 1 or keywords:
                msg = "Operator 'not' expects exactly one argument."
                raise DIForgeInvalidStatementError(msg)
            return f"(not {self.format_value(arguments[0], self_name)})"

        if isinstance(entity, TypeName):
            return self._compile_instantiation(entity.name, arguments, keywords, self_name)

        if isinstance(entity, FreeFunction):
            call_arguments = self._format_arguments(_plain(arguments, keywords), self_name)
            return f"{self.symbol_expression(entity.name)}({call_arguments})"

        return self._compile_member(entity, arguments, keywords, self_name)

    def format_value(self, value: Any, self_name: str | None = None) -> str:
        """Return the Python expression of an argument value.

        Args:
            value: Literal, reference, ``Code``, statement or container of those.
            self_name: Service being generated, see ``compile``.

        """
        if isinstance(value, Statement):
            return self.compile(value, self_name)
        if isinstance(value, Code):
            return value.code
        if reference_name(value) == CONTAINER_REFERENCE:
            return "self"

        service = self.service_name(value, self_name)
        if service is not None:
            if service == self_name:
                return LOCAL_SERVICE
            return self.compile(Statement(f"@{service}"), self_name)

        if isinstance(value, list):
            return f"[{', '.join(self.format_value(item, self_name) for item in value)}]"
        if isinstance(value, tuple):
            items = [self.format_value(item, self_name) for item in value]
            return f"({items[0]},)" if len(items) == 1 else f"({', '.join(items)})"
        if isinstance(value, dict):
            pairs = ", ".join(
                f"{_format_key(key)}: {self.format_value(item, self_name)}"
                for key, item in value.items()
            )
            return f"{{{pairs}}}"
        return repr(value)

    def service_name(self, value: Any, self_name: str | None = None) -> str | None:
        """Return the service a reference points to, or ``None`` for non-references.

        Args:
            value: Candidate ``@name``, ``@self`` or ``@package.Class`` reference.
            self_name: Service ``@self`` stands for.

        Raises:
            DIForgeMissingServiceError: The reference points to no service.

        """
        name = reference_name(value)
        if name is None:
            return None
        if name == SELF_REFERENCE and self_name is not None:
            name = self_name

        if is_type_reference(name):
            type_name = name.lstrip(".")
            service = self._resolution.index.get_by_type(type_name)
            if service is None:
                msg = f"Reference to missing service of type {type_name}."
                raise DIForgeMissingServiceError(msg)
            return service

        if name not in self._resolution.definitions:
            msg = f"Reference to missing service '{name}'."
            raise DIForgeMissingServiceError(msg)
        return name

    def service_signature(self, definition: ResolvedDefinition) -> CallableInfo:
        """Describe the factory method generated for a transient service.

        Args:
            definition: Service whose declared ``parameters`` form the signature.

        """
        parameters = []
        for declaration, default in definition.parameters.items():
            type_name, name = parse_parameter_declaration(declaration)
            is_class = bool(
                type_name
                and self._oracle.exists(type_name)
                and self._oracle.module_name(type_name) is not None,
            )
            parameters.append(
                ParameterInfo(
                    name=name,
                    kind=Parameter.POSITIONAL_OR_KEYWORD,
                    type_name=type_name,
                    is_class=is_class,
                    has_default=default is not MISSING,
                    default=None if default is MISSING else default,
                ),
            )
        return CallableInfo(
            name=f"{factory_method_name(definition.name, shared=definition.shared)}()",
            parameters=tuple(parameters),
        )

    def type_expression(self, type_name: str) -> str:
        """Return the importable expression of a class and record its module."""
        if not self._oracle.exists(type_name):
            msg = f"Class {type_name} has not been found."
            raise DIForgeClassNotFoundError(msg)
        canonical = self._oracle.canonical_name(type_name)
        module_name = self._oracle.module_name(canonical)
        if module_name:
            self._modules[module_name] = None
        return canonical

    def symbol_expression(self, path: str) -> str:
        """Return the expression of a module-level function and record its module."""
        path = path.lstrip(".")
        module_name = self._oracle.module_name(path)
        if module_name is None and "." in path:
            module_name = path.rpartition(".")[0]
        if module_name:
            self._modules[module_name] = None
        return path

    def _compile_service_call(
        self,
        service: str,
        arguments: Sequence[Any],
        keywords: Mapping[str, Any],
        self_name: str | None,
    ) -> str:
        definition = self._resolution.get(service)
        if definition.shared:
            if arguments or keywords:
                msg = f"Unable to call service '{service}'."
                raise DIForgeSharedServiceArgumentsError(msg)
            if service == self_name:
                return LOCAL_SERVICE
            return f"self.get_service({service!r})"

        bound = self._binder.bind(self.service_signature(definition), arguments, keywords)
        method = factory_method_name(service, shared=False, internal=definition.internal)
        return f"self.{method}({self._format_arguments(bound, self_name)})"

    def _compile_instantiation(
        self,
        type_name: str,
        arguments: Sequence[Any],
        keywords: Mapping[str, Any],
        self_name: str | None,
    ) -> str:
        expression = self.type_expression(type_name)
        constructor = self._oracle.constructor(type_name)
        if constructor is not None:
            self._dependencies.add(constructor.declaring_file)
            bound = self._binder.bind(constructor, arguments, keywords)
        elif arguments or keywords:
            msg = f"Unable to pass arguments, class {type_name} has no constructor."
            raise DIForgeArgumentsError(msg)
        else:
            bound = []
        return f"{expression}({self._format_arguments(bound, self_name)})"

    def _compile_member(
        self,
        entity: MemberAccess,
        arguments: Sequence[Any],
        keywords: Mapping[str, Any],
        self_name: str | None,
    ) -> str:
        if not entity.attribute.isidentifier() or keyword.iskeyword(entity.attribute):
            msg = f"Expected class, method or property, {entity.receiver}::{entity.member} given."
            raise DIForgeInvalidStatementError(msg)

        service = self.service_name(entity.receiver, self_name)
        if entity.is_property:
            if len(arguments) != 1 or keywords:
                msg = f"Property '{entity.attribute}' expects exactly one value."
                raise DIForgeInvalidStatementError(msg)
            if service is not None:
                target = self.format_value(entity.receiver, self_name)
            else:
                target = self.type_expression(entity.receiver)
            return f"{target}.{entity.attribute} = {self.format_value(arguments[0], self_name)}"

        if service is not None:
            class_name = self._resolution.get(service).class_name
            if class_name:
                bound = self._binder.autowire_method(class_name, entity.member, arguments, keywords)
            else:
                bound = _plain(arguments, keywords)
            receiver = self.format_value(entity.receiver, self_name)
            return f"{receiver}.{entity.member}({self._format_arguments(bound, self_name)})"

        receiver = self.type_expression(entity.receiver)
        bound = self._binder.autowire_method(
            entity.receiver,
            entity.member,
            arguments,
            keywords,
            static=True,
        )
        return f"{receiver}.{entity.member}({self._format_arguments(bound, self_name)})"

    def _format_arguments(self, bound: Sequence[BoundArgument], self_name: str | None) -> str:
        return ", ".join(
            self.format_value(argument.value, self_name)
            if argument.keyword is None
            else f"{argument.keyword}={self.format_value(argument.value, self_name)}"
            for argument in bound
        )


def _plain(arguments: Sequence[Any], keywords: Mapping[str, Any]) -> list[BoundArgument]:
    return [
        *(BoundArgument(value) for value in arguments),
        *(BoundArgument(value, name) for name, value in keywords.items()),
    ]


def _format_key(key: Any) -> str:
    return key.code if isinstance(key, Code) else repr(key)
