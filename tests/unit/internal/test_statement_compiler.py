from __future__ import annotations

import pytest

from diforge._internal.binder import ArgumentBinder
from diforge._internal.compiler import StatementCompiler
from diforge._internal.resolution import DependencySet
from diforge.builder import ContainerBuilder
from diforge.definitions import Code, Statement
from diforge.exceptions import (
    DIForgeArgumentsError,
    DIForgeInvalidStatementError,
    DIForgeMissingServiceError,
    DIForgeSharedServiceArgumentsError,
)
from diforge.oracle import ReflectionTypeOracle
from tests.fixtures import sample_app

APP = sample_app.__name__


@pytest.fixture()
def app_builder(builder: ContainerBuilder) -> ContainerBuilder:
    builder.add_definition("logger").set_class(sample_app.Logger)
    builder.add_definition("factory").set_class(sample_app.WidgetFactory)
    builder.add_definition("mailer").set_class(sample_app.Mailer)
    builder.add_definition("transport").set_class(sample_app.SmtpTransport, ["smtp.local"])
    builder.add_definition("widget").set_class(sample_app.Widget).set_shared(False).set_parameters(
        {"name": "default"},
    )
    builder.add_definition("hidden").set_class(sample_app.Plain).set_shared(False).set_internal(
        True,
    )
    builder.add_definition("service").set_class(sample_app.Service).set_shared(
        False,
    ).set_parameters([f"{APP}.Logger logger"])
    return builder


def _compiler(builder: ContainerBuilder, oracle: ReflectionTypeOracle) -> StatementCompiler:
    resolution = builder.resolve_class_list()
    dependencies = DependencySet()
    return StatementCompiler(
        resolution=resolution,
        binder=ArgumentBinder(index=resolution.index, oracle=oracle, dependencies=dependencies),
        oracle=oracle,
        dependencies=dependencies,
    )


def test_shared_reference_compiles_to_accessor(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement("@logger")) == "self.get_service('logger')"


def test_shared_reference_with_arguments_fails(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    with pytest.raises(DIForgeSharedServiceArgumentsError, match="Unable to call service"):
        compiler.compile(Statement("@logger", ["x"]))


def test_transient_reference_calls_factory_method(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement("@widget", ["w"])) == "self.create_widget('w')"
    assert compiler.compile(Statement("@widget")) == "self.create_widget()"
    assert compiler.compile(Statement("@hidden")) == "self._create_hidden()"


def test_transient_reference_autowires_declared_parameters(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert (
        compiler.compile(Statement("@service"))
        == "self.create_service(logger=self.get_service('logger'))"
    )


def test_negation_wraps_single_argument(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement("not", ["@logger"])) == "(not self.get_service('logger'))"
    with pytest.raises(DIForgeInvalidStatementError, match="exactly one argument"):
        compiler.compile(Statement("not", [True, False]))


def test_class_instantiation_autowires_constructor(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert (
        compiler.compile(Statement(f"{APP}.Service"))
        == f"{APP}.Service(logger=self.get_service('logger'))"
    )
    assert APP in compiler.modules


def test_class_without_constructor_rejects_arguments(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement(f"{APP}.Plain")) == f"{APP}.Plain()"
    with pytest.raises(DIForgeArgumentsError, match="has no constructor"):
        compiler.compile(Statement(f"{APP}.Plain", [1]))


def test_raw_code_is_called_with_arguments(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement(Code("lambda x: x"), [1])) == "(lambda x: x)(1)"


def test_free_function_is_called_without_autowiring(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert (
        compiler.compile(Statement(("", f"{APP}.make_widget"), ["w"]))
        == f"{APP}.make_widget('w')"
    )
    assert APP in compiler.modules


def test_static_and_service_method_calls(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement((f"{APP}.Widget", "create"))) == f"{APP}.Widget.create()"
    assert (
        compiler.compile(Statement(("@factory", "make"), ["w"]))
        == "self.get_service('factory').make('w')"
    )
    assert (
        compiler.compile(Statement(("@mailer", "set_logger")))
        == "self.get_service('mailer').set_logger(logger=self.get_service('logger'))"
    )


def test_property_assignment_on_service_and_class(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert (
        compiler.compile(Statement(("@mailer", "$level"), [3]))
        == "self.get_service('mailer').level = 3"
    )
    assert compiler.compile(Statement(("@mailer", "$level"), [3]), "mailer") == "service.level = 3"
    assert (
        compiler.compile(Statement((f"{APP}.Settings", "$debug"), [True]))
        == f"{APP}.Settings.debug = True"
    )
    with pytest.raises(DIForgeInvalidStatementError, match="expects exactly one value"):
        compiler.compile(Statement(("@mailer", "$level")))


def test_values_are_formatted_recursively(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.format_value("@container") == "self"
    assert compiler.format_value(Code("os.sep")) == "os.sep"
    assert compiler.format_value(("@logger",)) == "(self.get_service('logger'),)"
    assert (
        compiler.format_value(["@self", {"key": "@logger"}, "text"], "mailer")
        == "[service, {'key': self.get_service('logger')}, 'text']"
    )
    assert compiler.format_value(Statement(f"{APP}.Plain")) == f"{APP}.Plain()"


def test_type_reference_compiles_to_single_service(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert compiler.compile(Statement(f"@{APP}.Logger")) == "self.get_service('logger')"
    with pytest.raises(DIForgeMissingServiceError, match="missing service of type"):
        compiler.compile(Statement(f"@{APP}.Gadget"))


def test_missing_reference_fails(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    with pytest.raises(DIForgeMissingServiceError, match="Reference to missing service 'ghost'."):
        compiler.format_value("@ghost")


def test_invalid_entity_fails(app_builder: ContainerBuilder, oracle: ReflectionTypeOracle) -> None:
    compiler = _compiler(app_builder, oracle)

    with pytest.raises(DIForgeInvalidStatementError):
        compiler.compile(Statement(42))
    with pytest.raises(DIForgeInvalidStatementError):
        compiler.compile(Statement(("@mailer", "not")))


def test_dict_keys_are_literal_unless_code(
    app_builder: ContainerBuilder,
    oracle: ReflectionTypeOracle,
) -> None:
    compiler = _compiler(app_builder, oracle)

    assert (
        compiler.format_value({"@admin": "@logger", Code("KEY"): 1})
        == "{'@admin': self.get_service('logger'), KEY: 1}"
    )
