from __future__ import annotations

import pytest
from pydantic import ValidationError

from diforge import BuilderSettings, ContainerBuilder
from diforge.oracle import ReflectionTypeOracle


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DIFORGE_BASE_CLASS", "DIFORGE_CLASS_NAME", "DIFORGE_TYPE_CHECKS"):
        monkeypatch.delenv(name, raising=False)

    settings = BuilderSettings()

    assert settings.base_class == "diforge.container.BaseContainer"
    assert settings.class_name == "Container"
    assert settings.type_checks is True


def test_values_are_read_from_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIFORGE_CLASS_NAME", "AppContainer")
    monkeypatch.setenv("DIFORGE_TYPE_CHECKS", "0")

    settings = BuilderSettings()

    assert settings.class_name == "AppContainer"
    assert settings.type_checks is False


def test_explicit_values_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIFORGE_CLASS_NAME", "AppContainer")

    assert BuilderSettings(class_name="Services").class_name == "Services"


@pytest.mark.parametrize("class_name", ["", "app-container", "1Container"])
def test_invalid_class_name_is_rejected(class_name: str) -> None:
    with pytest.raises(ValidationError, match="is not a valid identifier"):
        BuilderSettings(class_name=class_name)


def test_builder_reads_environment_when_settings_are_omitted(
    monkeypatch: pytest.MonkeyPatch,
    oracle: ReflectionTypeOracle,
) -> None:
    monkeypatch.setenv("DIFORGE_CLASS_NAME", "EnvContainer")

    source = ContainerBuilder(oracle=oracle).emit()

    assert "class EnvContainer(diforge.container.BaseContainer):" in source
