from __future__ import annotations

import pytest

from diforge._internal.parameters import expand
from diforge.definitions import Code, Statement
from diforge.exceptions import DIForgeParameterError


def test_whole_string_placeholder_returns_raw_value() -> None:
    parameters = {"hosts": ["a", "b"], "port": 25}

    assert expand("%hosts%", parameters) == ["a", "b"]
    assert expand("%port%", parameters) == 25


def test_placeholder_inside_string_is_concatenated() -> None:
    assert expand("smtp://%host%:%port%", {"host": "mail", "port": 25}) == "smtp://mail:25"


def test_double_percent_is_a_literal_percent_sign() -> None:
    assert expand("100%%", {}) == "100%"


def test_dotted_placeholder_walks_nested_mappings() -> None:
    parameters = {"database": {"primary": {"host": "db.local"}}}

    assert expand("%database.primary.host%", parameters) == "db.local"


def test_missing_parameter_raises() -> None:
    with pytest.raises(DIForgeParameterError, match="Missing parameter 'database.host'"):
        expand("%database.host%", {"database": {}})


def test_concatenating_non_scalar_value_raises() -> None:
    with pytest.raises(DIForgeParameterError, match="non-scalar parameter 'hosts'"):
        expand("hosts: %hosts%", {"hosts": ["a"]})


def test_containers_and_statements_are_expanded_recursively() -> None:
    parameters = {"name": "mailer", "level": 3}
    statement = Statement("%name%", ["%level%", {"key": ("%name%",)}], {"flag": "%level%"})

    expanded = expand(statement, parameters)

    assert expanded == Statement("mailer", [3, {"key": ("mailer",)}], {"flag": 3})
    assert statement.entity == "%name%"


def test_non_string_values_are_returned_untouched() -> None:
    code = Code("os.environ")

    assert expand(code, {}) is code
    assert expand(None, {}) is None
    assert expand(1.5, {}) == 1.5


def test_recursive_mode_expands_parameter_values() -> None:
    parameters = {"root": "/srv", "logs": "%root%/logs", "file": "%logs%/app.log"}

    assert expand("%file%", parameters) == "%logs%/app.log"
    assert expand("%file%", parameters, recursive=True) == "/srv/logs/app.log"


def test_recursive_mode_detects_parameter_cycles() -> None:
    parameters = {"a": "%b%", "b": "x%a%"}

    with pytest.raises(DIForgeParameterError, match="detected for variables: a, b, a"):
        expand("%a%", parameters, recursive=True)
