"""Shared pytest fixtures for diforge tests."""

from __future__ import annotations

import types
from collections.abc import Callable
from typing import Any

import pytest

from diforge.builder import ContainerBuilder
from diforge.oracle import ReflectionTypeOracle
from diforge.settings import BuilderSettings


@pytest.fixture()
def oracle() -> ReflectionTypeOracle:
    """Reflection-backed type oracle."""
    return ReflectionTypeOracle()


@pytest.fixture()
def settings() -> BuilderSettings:
    """Builder settings with defaults, independent of the environment."""
    return BuilderSettings(
        base_class="diforge.container.BaseContainer",
        class_name="Container",
        type_checks=True,
    )


@pytest.fixture()
def builder(oracle: ReflectionTypeOracle, settings: BuilderSettings) -> ContainerBuilder:
    """Empty container builder."""
    return ContainerBuilder(oracle=oracle, settings=settings)


@pytest.fixture()
def load_container() -> Callable[..., type[Any]]:
    """Execute generated source in a fresh module and return the container class."""

    def load(source: str, class_name: str = "Container") -> type[Any]:
        module = types.ModuleType("diforge_generated_container")
        exec(compile(source, "<diforge-generated>", "exec"), module.__dict__)  # noqa: S102
        return getattr(module, class_name)

    return load
