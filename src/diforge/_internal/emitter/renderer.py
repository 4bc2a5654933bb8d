from __future__ import annotations

import keyword
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from textwrap import indent
from typing import Any

from jinja2 import Environment, Template

from diforge._internal.binder import ArgumentBinder
from diforge._internal.compiler import LOCAL_SERVICE, StatementCompiler
from diforge._internal.emitter.templates import (
    CLASS_TEMPLATE,
    IMPORTS_TEMPLATE,
    INIT_METHOD_TEMPLATE,
    MODULE_TEMPLATE,
    SERVICE_METHOD_TEMPLATE,
)
from diforge._internal.parameters import expand
from diforge._internal.resolution import DependencySet, Resolution, ResolvedDefinition
from diforge.container import factory_method_name, sanitize_name
from diforge.definitions import (
    CONTAINER_REFERENCE,
    MISSING,
    Code,
    Statement,
    parse_parameter_declaration,
)
from diforge.exceptions import (
    DIForgeAmbiguousTypeError,
    DIForgeArgumentsError,
    DIForgeError,
    DIForgeInvalidStatementError,
    DIForgeServiceCreationError,
)
from diforge.oracle import TypeOracle
from diforge.settings import BuilderSettings

_INDENT = " " * 4
_GENERATOR_SOURCE = "diforge._internal.emitter.renderer.ContainerEmitter.emit"
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServiceMethodPlan:
    """Rendered pieces of one generated service factory method."""

    name: str
    method_name: str
    signature: str
    return_annotation: str
    body_lines: tuple[str, ...]
    type_checked: bool


class ContainerEmitter:
    """Render the Python module of a container class for a resolution."""

    def __init__(
        self,
        *,
        resolution: Resolution,
        oracle: TypeOracle,
        dependencies: DependencySet,
        settings: BuilderSettings,
    ) -> None:
        self._resolution = resolution
        self._oracle = oracle
        self._dependencies = dependencies
        self._settings = settings
        self._env = Environment(  # noqa: S701
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._module_template = self._template(MODULE_TEMPLATE)
        self._imports_template = self._template(IMPORTS_TEMPLATE)
        self._class_template = self._template(CLASS_TEMPLATE)
        self._init_method_template = self._template(INIT_METHOD_TEMPLATE)
        self._service_method_template = self._template(SERVICE_METHOD_TEMPLATE)

    def emit(self, base_class: str | None = None) -> str:
        """Render the container module.

        Args:
            base_class: Dotted name of the class the container extends; defaults to
                ``BuilderSettings.base_class``.

        Raises:
            DIForgeServiceCreationError: Code for a service cannot be generated. The
                original error is chained as ``__cause__``.

        """
        base_class = base_class or self._settings.base_class
        compiler = StatementCompiler(
            resolution=self._resolution,
            binder=ArgumentBinder(
                index=self._resolution.index,
                oracle=self._oracle,
                dependencies=self._dependencies,
            ),
            oracle=self._oracle,
            dependencies=self._dependencies,
        )
        base_expression = compiler.type_expression(base_class)

        plans: list[ServiceMethodPlan] = []
        for name, definition in self._resolution.definitions.items():
            try:
                plans.append(self._plan_service_method(compiler, name, definition))
            except DIForgeError as error:
                msg = f"Service '{name}': {error}"
                raise DIForgeServiceCreationError(msg, service_name=name) from error

        self._log_summary(plans=plans, base_class=base_expression)
        class_block = self._render_class(plans=plans, base_class=base_expression)
        return self._module_template.render(
            module_docstring_block=self._render_module_docstring(
                plans=plans,
                base_class=base_expression,
            ),
            imports_block=self._render_imports(compiler=compiler, plans=plans),
            class_block=class_block,
        )

    def _plan_service_method(
        self,
        compiler: StatementCompiler,
        name: str,
        definition: ResolvedDefinition,
    ) -> ServiceMethodPlan:
        sanitized = sanitize_name(name)
        if not sanitized.isidentifier():
            msg = "Name contains invalid characters."
            raise DIForgeInvalidStatementError(msg)

        method_name = factory_method_name(
            name,
            shared=definition.shared,
            internal=definition.internal,
        )
        return_annotation = (
            compiler.type_expression(definition.class_name) if definition.class_name else "object"
        )
        if name == CONTAINER_REFERENCE:
            return ServiceMethodPlan(
                name=name,
                method_name=method_name,
                signature="self",
                return_annotation=return_annotation,
                body_lines=("return self",),
                type_checked=False,
            )

        signature, local_parameters = self._render_signature(compiler, definition)
        parameters = {**self._expanded_parameters(), **local_parameters}

        factory = expand(definition.factory, parameters, recursive=True)
        body_lines = [f"{LOCAL_SERVICE} = {compiler.compile(factory)}"]

        type_checked = bool(
            self._settings.type_checks
            and definition.class_name
            and definition.class_name != factory.entity
            and self._oracle.supports_instance_checks(definition.class_name),
        )
        if type_checked:
            message = (
                f"Unable to create service '{name}', value returned by factory is not "
                f"{definition.class_name} type."
            )
            body_lines.extend(
                [
                    f"if not isinstance({LOCAL_SERVICE}, {return_annotation}):",
                    f"{_INDENT}msg = {message!r}",
                    f"{_INDENT}raise DIForgeUnexpectedValueError(msg)",
                ],
            )

        for setup in definition.setup:
            statement = expand(setup, parameters, recursive=True)
            entity = statement.entity
            if isinstance(entity, str) and not any(marker in entity for marker in ":@"):
                statement = Statement((f"@{name}", entity), statement.arguments, statement.keywords)
            body_lines.append(compiler.compile(statement, name))

        body_lines.append(f"return {LOCAL_SERVICE}")
        return ServiceMethodPlan(
            name=name,
            method_name=method_name,
            signature=signature,
            return_annotation=return_annotation,
            body_lines=tuple(body_lines),
            type_checked=type_checked,
        )

    def _render_signature(
        self,
        compiler: StatementCompiler,
        definition: ResolvedDefinition,
    ) -> tuple[str, dict[str, Code]]:
        rendered = ["self"]
        local_parameters: dict[str, Code] = {}
        seen_default = False
        declared = expand(dict(definition.parameters), self._expanded_parameters())
        for declaration, default in declared.items():
            type_name, parameter_name = parse_parameter_declaration(declaration)
            if (
                not parameter_name.isidentifier()
                or keyword.iskeyword(parameter_name)
                or parameter_name == "self"
            ):
                msg = f"Parameter name '{parameter_name}' is reserved or not a valid identifier."
                raise DIForgeInvalidStatementError(msg)

            annotation = None
            if type_name:
                annotation = (
                    compiler.type_expression(type_name)
                    if self._oracle.exists(type_name)
                    else type_name
                )

            if default is MISSING:
                if seen_default:
                    msg = (
                        f"Parameter '{parameter_name}' without a default follows "
                        "a parameter with a default."
                    )
                    raise DIForgeArgumentsError(msg)
                rendered.append(
                    f"{parameter_name}: {annotation}" if annotation else parameter_name,
                )
            else:
                seen_default = True
                rendered.append(
                    f"{parameter_name}: {annotation} = {default!r}"
                    if annotation
                    else f"{parameter_name}={default!r}",
                )
            local_parameters[parameter_name] = Code(parameter_name)
        return ", ".join(rendered), local_parameters

    def _render_imports(
        self,
        *,
        compiler: StatementCompiler,
        plans: list[ServiceMethodPlan],
    ) -> str:
        return self._imports_template.render(
            module_names=sorted(compiler.modules),
            uses_type_checks=any(plan.type_checked for plan in plans),
        ).strip()

    def _render_module_docstring(
        self,
        *,
        plans: list[ServiceMethodPlan],
        base_class: str,
    ) -> str:
        shared_count = sum(
            1 for plan in plans if self._resolution.definitions[plan.name].shared
        )
        lines = [
            "Generated DI container module.",
            "",
            f"Generated by: {_GENERATOR_SOURCE}",
            f"diforge version used for generation: {self._resolve_diforge_version()}",
            "",
            "Generation configuration:",
            f"- container class: {self._settings.class_name}",
            f"- base class: {base_class}",
            f"- service count: {len(plans)}",
            f"- shared service count: {shared_count}",
            f"- autowired type count: {len(self._resolution.index)}",
            f"- type checks enabled: {self._settings.type_checks}",
            "",
            "Examples:",
            f">>> container = {self._settings.class_name}()",
            '>>> service = container.get_service("name")',
        ]
        return self._docstring_block(lines=lines, depth=0)

    def _render_class(self, *, plans: list[ServiceMethodPlan], base_class: str) -> str:
        return self._class_template.render(
            class_name=self._settings.class_name,
            base_class=base_class,
            class_docstring_block=self._render_class_docstring(plans=plans),
            tables_block=self._indent_block(self._render_tables()),
            init_method_block=self._indent_block(self._render_init_method()),
            method_blocks=[
                self._indent_block(self._render_service_method(plan)) for plan in plans
            ],
        )

    def _render_class_docstring(self, *, plans: list[ServiceMethodPlan]) -> str:
        lines = ["Dependency injection container.", "", "Services:"]
        for plan in plans:
            definition = self._resolution.definitions[plan.name]
            lifetime = "shared" if definition.shared else "transient"
            lines.append(f"- {plan.name}: {plan.return_annotation} ({lifetime})")
        return self._docstring_block(lines=lines, depth=1)

    def _render_tables(self) -> str:
        lines = ["classes = {"]
        for key, candidates in sorted(self._resolution.index.items()):
            if len(candidates) == 1:
                lines.append(f"{_INDENT}{key!r}: {candidates[0]!r},")
            else:
                lines.append(
                    f"{_INDENT}{key!r}: None,  # {DIForgeAmbiguousTypeError(key, candidates)}",
                )
        lines.append("}")

        lines.append("meta = {")
        parameters = self._expanded_parameters()
        for name, definition in self._resolution.definitions.items():
            if definition.tags:
                tags = expand(dict(definition.tags), parameters)
                lines.append(f"{_INDENT}{name!r}: {{'tags': {tags!r}}},")
        lines.append("}")
        return self._join_lines(lines)

    def _render_init_method(self) -> str:
        return self._init_method_template.render(
            parameters_literal=repr(self._expanded_parameters()),
        )

    def _render_service_method(self, plan: ServiceMethodPlan) -> str:
        docstring = f"Create the {plan.name!r} service."
        return self._service_method_template.render(
            method_name=plan.method_name,
            signature=plan.signature,
            return_annotation=plan.return_annotation,
            docstring_block=self._docstring_block(lines=[docstring], depth=1),
            body_block=self._join_lines(self._indent_lines(list(plan.body_lines), 1)),
        )

    def _log_summary(self, *, plans: list[ServiceMethodPlan], base_class: str) -> None:
        logger.info(
            (
                "Container codegen summary: class_name=%s base_class=%s service_count=%d "
                "shared_service_count=%d type_check_count=%d index_size=%d dependency_count=%d"
            ),
            self._settings.class_name,
            base_class,
            len(plans),
            sum(1 for plan in plans if self._resolution.definitions[plan.name].shared),
            sum(1 for plan in plans if plan.type_checked),
            len(self._resolution.index),
            len(self._dependencies),
        )

    def _expanded_parameters(self) -> Mapping[str, Any]:
        parameters = self._resolution.parameters
        return expand(dict(parameters), parameters, recursive=True)

    def _resolve_diforge_version(self) -> str:
        try:
            return version("diforge")
        except PackageNotFoundError:
            return "unknown"

    def _docstring_lines(self, lines: list[str]) -> list[str]:
        return ['"""', *[self._escape_docstring_line(line) for line in lines], '"""']

    def _escape_docstring_line(self, line: str) -> str:
        return line.replace("\\", "\\\\").replace('"""', r"\"\"\"")

    def _docstring_block(self, *, lines: list[str], depth: int) -> str:
        return self._join_lines(self._indent_lines(self._docstring_lines(lines), depth))

    def _template(self, text: str) -> Template:
        return self._env.from_string(text)

    def _indent_block(self, block: str) -> str:
        return indent(block, _INDENT)

    def _indent_lines(self, lines: list[str], depth: int) -> list[str]:
        prefix = _INDENT * depth
        return [f"{prefix}{line}" if line else "" for line in lines]

    def _join_lines(self, lines: list[str]) -> str:
        return "\n".join(lines)
