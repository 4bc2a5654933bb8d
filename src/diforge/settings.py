from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BuilderSettings(BaseSettings):
    """Code generation options of ``ContainerBuilder``.

    Values are read from ``DIFORGE_*`` environment variables when not passed
    explicitly, e.g. ``DIFORGE_TYPE_CHECKS=0`` disables the emitted
    ``isinstance`` checks.
    """

    model_config = SettingsConfigDict(env_prefix="DIFORGE_", extra="ignore")

    base_class: str = Field(
        default="diforge.container.BaseContainer",
        description="Dotted name of the class the generated container extends.",
    )
    class_name: str = Field(
        default="Container",
        description="Name of the generated container class.",
    )
    type_checks: bool = Field(
        default=True,
        description="Emit a runtime type check when a factory result is not the declared class.",
    )

    @field_validator("class_name")
    @classmethod
    def _validate_class_name(cls, value: str) -> str:
        if not value.isidentifier():
            msg = f"Container class name '{value}' is not a valid identifier."
            raise ValueError(msg)
        return value
