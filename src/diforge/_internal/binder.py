from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from inspect import Parameter
from typing import Any, Final

from diforge._internal.resolution import AutowiringIndex, DependencySet
from diforge.exceptions import (
    DIForgeArgumentsError,
    DIForgeMissingDependencyError,
    DIForgeUncallableError,
)
from diforge.oracle import CallableInfo, ParameterInfo, TypeOracle

_SKIP: Final[Any] = object()


@dataclass(frozen=True, slots=True)
class BoundArgument:
    """One argument of a call, passed positionally or by keyword."""

    value: Any
    keyword: str | None = None


class ArgumentBinder:
    """Match supplied arguments to a signature and autowire the rest by type."""

    def __init__(
        self,
        *,
        index: AutowiringIndex,
        oracle: TypeOracle,
        dependencies: DependencySet,
    ) -> None:
        self._index = index
        self._oracle = oracle
        self._dependencies = dependencies

    def bind(
        self,
        callee: CallableInfo | None,
        arguments: Sequence[Any] = (),
        keywords: Mapping[str, Any] | None = None,
    ) -> list[BoundArgument]:
        """Return the arguments for a call to ``callee``.

        Supplied positional arguments fill positional parameters in order and
        keywords fill parameters by name. Every other parameter is autowired
        when its type is a class, or left to its default. Autowired values are
        ``@service`` references.

        Args:
            callee: Target signature, or ``None`` when it cannot be reflected.
            arguments: Supplied positional arguments.
            keywords: Supplied keyword arguments.

        Raises:
            DIForgeAmbiguousTypeError: A parameter type matches several services.
            DIForgeMissingDependencyError: A required class parameter matches no service.
            DIForgeArgumentsError: Arguments cannot be matched to the signature.

        """
        positional = list(arguments)
        named = dict(keywords or {})
        if callee is None or callee.parameters is None:
            if named:
                target = callee.name if callee is not None else "an unreflectable callable"
                msg = f"Unable to pass specified arguments to {target}."
                raise DIForgeArgumentsError(msg)
            return [BoundArgument(value) for value in positional]

        bound: list[BoundArgument] = []
        pending_defaults: list[Any] = []
        position = 0
        for parameter in callee.parameters:
            kind = parameter.kind
            if kind is Parameter.VAR_POSITIONAL:
                bound.extend(BoundArgument(value) for value in positional[position:])
                position = len(positional)
                continue
            if kind is Parameter.VAR_KEYWORD:
                bound.extend(BoundArgument(value, name) for name, value in named.items())
                named.clear()
                continue
            if kind is not Parameter.KEYWORD_ONLY and position < len(positional):
                bound.append(BoundArgument(positional[position]))
                position += 1
                continue

            if parameter.name in named:
                value = named.pop(parameter.name)
            else:
                value = self._autowire(parameter, callee)
                if value is _SKIP:
                    if kind is Parameter.POSITIONAL_ONLY:
                        pending_defaults.append(parameter.default)
                    continue

            if kind is Parameter.POSITIONAL_ONLY:
                bound.extend(BoundArgument(default) for default in pending_defaults)
                pending_defaults.clear()
                bound.append(BoundArgument(value))
            else:
                bound.append(BoundArgument(value, parameter.name))

        if position < len(positional) or named:
            msg = f"Unable to pass specified arguments to {callee.name}."
            raise DIForgeArgumentsError(msg)
        return bound

    def autowire_method(
        self,
        type_name: str,
        method: str,
        arguments: Sequence[Any] = (),
        keywords: Mapping[str, Any] | None = None,
        *,
        static: bool = False,
    ) -> list[BoundArgument]:
        """Bind arguments of a method call on an instance or, when ``static``, on the class.

        A method the oracle cannot find accepts positional arguments verbatim.

        Args:
            type_name: Class declaring the method.
            method: Method name.
            arguments: Supplied positional arguments.
            keywords: Supplied keyword arguments.
            static: Whether the method is called on the class itself.

        """
        callee = self._oracle.method(type_name, method)
        if callee is None:
            if keywords:
                msg = f"Unable to pass specified arguments to {type_name}.{method}()."
                raise DIForgeArgumentsError(msg)
            return [BoundArgument(value) for value in arguments]

        if not callee.is_public or callee.is_abstract or (static and not callee.is_static):
            msg = f"{callee.name} is not callable."
            raise DIForgeUncallableError(msg)
        self._dependencies.add(callee.declaring_file)
        return self.bind(callee, arguments, keywords)

    def _autowire(self, parameter: ParameterInfo, callee: CallableInfo) -> Any:
        if parameter.is_class and parameter.type_name:
            self._dependencies.add(self._oracle.declaring_file(parameter.type_name))
            service = self._index.get_by_type(parameter.type_name)
            if service is not None:
                return f"@{service}"
            if parameter.has_default:
                return _SKIP
            if parameter.allows_none:
                return None
            raise DIForgeMissingDependencyError(parameter.type_name, callee.name)

        if parameter.has_default:
            return _SKIP
        msg = (
            f"Parameter '{parameter.name}' in {callee.name} has no class type hint, "
            "so its value must be specified."
        )
        raise DIForgeArgumentsError(msg)
