from __future__ import annotations

import abc
import builtins
import importlib
import inspect
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass
from inspect import Parameter
from typing import Annotated, Any, Protocol, Union, get_args, get_origin, get_type_hints

from diforge.exceptions import DIForgeClassNotFoundError

_NOT_FOUND: Any = object()
_NONE_NAMES = {"None", "NoneType"}
_MARKER_BASES: tuple[Any, ...] = (object, abc.ABC, typing.Generic, typing.Protocol)


@dataclass(frozen=True, slots=True)
class ParameterInfo:
    """Declared parameter of a constructor, method or function."""

    name: str
    kind: Any = Parameter.POSITIONAL_OR_KEYWORD
    """An ``inspect.Parameter`` kind."""
    type_name: str | None = None
    """Canonical name of the declared type, if any."""
    is_class: bool = False
    """Whether the declared type is a class eligible for autowiring."""
    has_default: bool = False
    default: Any = None
    allows_none: bool = False
    """Whether the annotation admits ``None`` (``X | None``)."""

    @property
    def is_variadic(self) -> bool:
        return self.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class CallableInfo:
    """Reflected metadata of a callable target."""

    name: str
    """Display name used in error messages."""
    parameters: tuple[ParameterInfo, ...] | None = ()
    """Declared parameters without ``self``/``cls``; ``None`` when not reflectable."""
    return_type: str | None = None
    """Declared return type exactly as annotated, if any."""
    scope: str | None = None
    """Module that declares the callable."""
    declaring_file: str | None = None
    is_public: bool = True
    is_abstract: bool = False
    is_static: bool = False


class TypeOracle(Protocol):
    """Answer type and signature questions about names used in definitions.

    Type names are dotted paths (``package.module.Class``); builtins may be
    named bare (``dict``).
    """

    def exists(self, type_name: str) -> bool: ...

    def canonical_name(self, type_name: str) -> str: ...

    def ancestors(self, type_name: str) -> tuple[str, ...]: ...

    def supports_instance_checks(self, type_name: str) -> bool: ...

    def declaring_file(self, name: str) -> str | None: ...

    def module_name(self, name: str) -> str | None: ...

    def constructor(self, type_name: str) -> CallableInfo | None: ...

    def method(self, type_name: str, name: str) -> CallableInfo | None: ...

    def function(self, path: str) -> CallableInfo | None: ...


class ReflectionTypeOracle:
    """Type oracle backed by importing and inspecting the named objects."""

    def __init__(self) -> None:
        self._objects: dict[str, Any] = {}

    def exists(self, type_name: str) -> bool:
        return _is_runtime_class(self._locate(type_name))

    def canonical_name(self, type_name: str) -> str:
        return _format_symbol(self._class(type_name))

    def ancestors(self, type_name: str) -> tuple[str, ...]:
        """Return parent classes and implemented ABCs, nearest first.

        ``object`` and marker bases such as ``abc.ABC`` and ``typing.Protocol``
        are left out.

        Args:
            type_name: Dotted name of the class to inspect.

        """
        cls = self._class(type_name)
        return tuple(
            _format_symbol(base) for base in cls.__mro__[1:] if base not in _MARKER_BASES
        )

    def supports_instance_checks(self, type_name: str) -> bool:
        """Return whether ``isinstance`` accepts the class.

        Protocols qualify only when decorated with ``@runtime_checkable``.
        """
        cls = self._class(type_name)
        if not getattr(cls, "_is_protocol", False):
            return True
        return bool(getattr(cls, "_is_runtime_protocol", False))

    def declaring_file(self, name: str) -> str | None:
        target = self._locate(name)
        if target is _NOT_FOUND:
            return None
        return _source_file(target)

    def module_name(self, name: str) -> str | None:
        target = self._locate(name)
        if target is _NOT_FOUND:
            return None
        module_name = getattr(target, "__module__", None)
        if not isinstance(module_name, str) or module_name == "builtins":
            return None
        return module_name

    def constructor(self, type_name: str) -> CallableInfo | None:
        cls = self._class(type_name)
        if cls.__init__ is not object.__init__:
            initializer: Callable[..., Any] = cls.__init__
        elif cls.__new__ is not object.__new__:
            initializer = cls.__new__
        else:
            return None

        return self._callable_info(
            initializer,
            name=f"{_format_symbol(cls)}.{initializer.__name__}()",
            skip_first=True,
        )

    def method(self, type_name: str, name: str) -> CallableInfo | None:
        cls = self._class(type_name)
        attribute = inspect.getattr_static(cls, name, _NOT_FOUND)
        display = f"{_format_symbol(cls)}.{name}()"
        if isinstance(attribute, staticmethod):
            return self._callable_info(
                attribute.__func__,
                name=display,
                skip_first=False,
                is_static=True,
            )
        if isinstance(attribute, classmethod):
            return self._callable_info(
                attribute.__func__,
                name=display,
                skip_first=True,
                is_static=True,
            )
        if inspect.isfunction(attribute) or inspect.ismethoddescriptor(attribute):
            return self._callable_info(attribute, name=display, skip_first=True)
        return None

    def function(self, path: str) -> CallableInfo | None:
        target = self._locate(path)
        if target is _NOT_FOUND or isinstance(target, type) or not callable(target):
            return None
        return self._callable_info(target, name=f"{path}()", skip_first=False, is_static=True)

    def _class(self, type_name: str) -> type[Any]:
        target = self._locate(type_name)
        if not _is_runtime_class(target):
            msg = f"Class {type_name} has not been found."
            raise DIForgeClassNotFoundError(msg)
        return target

    def _locate(self, path: str) -> Any:
        cached = self._objects.get(path, _NOT_FOUND)
        if cached is not _NOT_FOUND:
            return cached

        target = self._import_path(path)
        if target is not _NOT_FOUND:
            self._objects[path] = target
        return target

    def _import_path(self, path: str) -> Any:
        parts = path.lstrip(".").split(".")
        if not all(part.isidentifier() for part in parts):
            return _NOT_FOUND
        if len(parts) == 1:
            return getattr(builtins, parts[0], _NOT_FOUND)

        for index in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:index])
            try:
                target: Any = importlib.import_module(module_name)
            except ModuleNotFoundError as error:
                if error.name is not None and (
                    module_name == error.name or module_name.startswith(f"{error.name}.")
                ):
                    continue
                raise
            for attribute in parts[index:]:
                target = getattr(target, attribute, _NOT_FOUND)
                if target is _NOT_FOUND:
                    break
            return target
        return _NOT_FOUND

    def _callable_info(
        self,
        target: Callable[..., Any],
        *,
        name: str,
        skip_first: bool,
        is_static: bool = False,
    ) -> CallableInfo:
        unwrapped = inspect.unwrap(target)
        scope = getattr(unwrapped, "__module__", None)
        member_name = getattr(unwrapped, "__name__", "")
        is_public = not member_name.startswith("_") or (
            member_name.startswith("__") and member_name.endswith("__")
        )
        is_abstract = bool(getattr(target, "__isabstractmethod__", False))
        declaring_file = _source_file(unwrapped)

        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError):
            return CallableInfo(
                name=name,
                parameters=None,
                scope=scope,
                declaring_file=declaring_file,
                is_public=is_public,
                is_abstract=is_abstract,
                is_static=is_static,
            )

        annotations = self._annotations(target)
        parameters = list(signature.parameters.values())
        if skip_first and parameters and parameters[0].kind in (
            Parameter.POSITIONAL_ONLY,
            Parameter.POSITIONAL_OR_KEYWORD,
        ):
            parameters = parameters[1:]

        return_type, _is_class, _allows_none = _describe_annotation(
            annotations.get("return", signature.return_annotation),
        )
        return CallableInfo(
            name=name,
            parameters=tuple(
                self._parameter_info(parameter, annotations) for parameter in parameters
            ),
            return_type=return_type,
            scope=scope,
            declaring_file=declaring_file,
            is_public=is_public,
            is_abstract=is_abstract,
            is_static=is_static,
        )

    def _parameter_info(
        self,
        parameter: Parameter,
        annotations: dict[str, Any],
    ) -> ParameterInfo:
        type_name, is_class, allows_none = _describe_annotation(
            annotations.get(parameter.name, parameter.annotation),
        )
        has_default = parameter.default is not Parameter.empty
        return ParameterInfo(
            name=parameter.name,
            kind=parameter.kind,
            type_name=type_name,
            is_class=is_class,
            has_default=has_default,
            default=parameter.default if has_default else None,
            allows_none=allows_none,
        )

    def _annotations(self, target: Callable[..., Any]) -> dict[str, Any]:
        try:
            return get_type_hints(target)
        except (AttributeError, NameError, TypeError):
            # Unresolvable forward references: keep the raw strings.
            return dict(getattr(target, "__annotations__", None) or {})


def _describe_annotation(annotation: Any) -> tuple[str | None, bool, bool]:
    """Return ``(type_name, is_class, allows_none)`` for a parameter or return annotation."""
    if annotation is Parameter.empty or annotation is None or annotation is Any:
        return None, False, False
    if isinstance(annotation, str):
        return _describe_string_annotation(annotation)

    origin = get_origin(annotation)
    if origin is Annotated:
        return _describe_annotation(get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        members = get_args(annotation)
        non_none = [member for member in members if member is not type(None)]
        allows_none = len(non_none) < len(members)
        if len(non_none) == 1:
            type_name, is_class, _ = _describe_annotation(non_none[0])
            return type_name, is_class, allows_none
        return None, False, allows_none
    if _is_runtime_class(annotation):
        return _format_symbol(annotation), annotation.__module__ != "builtins", False
    return None, False, False


def _describe_string_annotation(annotation: str) -> tuple[str | None, bool, bool]:
    members = [member.strip().strip("'\"") for member in annotation.split("|")]
    non_none = [member for member in members if member not in _NONE_NAMES]
    allows_none = len(non_none) < len(members)
    if len(non_none) != 1 or not non_none[0]:
        return None, False, allows_none
    type_name = non_none[0]
    is_class = not _is_runtime_class(getattr(builtins, type_name, None))
    return type_name, is_class, allows_none


def _is_runtime_class(candidate: object) -> bool:
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def _format_symbol(value: type[Any]) -> str:
    if value.__module__ == "builtins":
        return value.__qualname__
    return f"{value.__module__}.{value.__qualname__}"


def _source_file(target: Any) -> str | None:
    try:
        return inspect.getsourcefile(target) or inspect.getfile(target)
    except TypeError:
        return None
