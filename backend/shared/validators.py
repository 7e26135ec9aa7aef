"""Settings helpers for list-valued environment variables."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

# Settings fields read through parse_string_list instead of pydantic-settings' JSON decoding.
STRING_LIST_FIELDS = frozenset({"cors_origins"})


def _parse_json_list(raw: str) -> list[str]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON array: {e}") from e
    if not isinstance(parsed, list) or any(not isinstance(item, str) for item in parsed):
        raise ValueError("JSON value must be an array of strings")
    return parsed


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a list of strings given as a list, a JSON array, or comma separated text.

    Blank comma separated items are dropped. Raises ValueError on malformed JSON
    and, unless allow_empty is set, on an empty result.
    """
    if isinstance(value, list):
        items = value
    elif value.strip().startswith("["):
        items = _parse_json_list(value.strip())
    else:
        items = [item.strip() for item in value.split(",") if item.strip()]

    if not items and not allow_empty:
        raise ValueError("String list value must not be empty")
    return items


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands string-list fields to their validators undecoded.

    pydantic-settings JSON-decodes list-typed env values before validators run,
    which rejects the comma separated form.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
