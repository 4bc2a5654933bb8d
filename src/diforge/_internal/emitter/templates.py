from textwrap import dedent

MODULE_TEMPLATE = dedent(
    """
    {{ module_docstring_block }}

    {{ imports_block }}


    {{ class_block }}
    """,
).strip()

IMPORTS_TEMPLATE = dedent(
    """
    from __future__ import annotations

    {% for module_name in module_names %}
    import {{ module_name }}
    {% endfor %}
    from typing import Any
    {% if uses_type_checks %}

    from diforge.exceptions import DIForgeUnexpectedValueError
    {% endif %}
    """,
).strip()

CLASS_TEMPLATE = dedent(
    """
    class {{ class_name }}({{ base_class }}):
    {% if class_docstring_block %}
    {{ class_docstring_block }}

    {% endif %}
    {{ tables_block }}

    {{ init_method_block }}
    {% for method_block in method_blocks %}

    {{ method_block }}
    {% endfor %}
    """,
).strip()

INIT_METHOD_TEMPLATE = dedent(
    """
    def __init__(self, parameters: dict[str, Any] | None = None) -> None:
        super().__init__({**{{ parameters_literal }}, **(parameters or {})})
    """,
).strip()

SERVICE_METHOD_TEMPLATE = dedent(
    """
    def {{ method_name }}({{ signature }}) -> {{ return_annotation }}:
    {% if docstring_block %}
    {{ docstring_block }}
    {% endif %}
    {{ body_block }}
    """,
).strip()
