"""Pydantic-backed validator.

Validates the exported plain data of an entity against a Pydantic model
and reports messages per top-level field.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError


class PydanticValidator:
    """Validator delegating the rules to a Pydantic model.

    Args:
        model: Pydantic model class describing the valid shape.
    """

    def __init__(self, model: type[BaseModel]) -> None:
        self._model = model
        self._errors: dict[str, list[str]] = {}

    def validate(self, data: dict[str, Any], options: dict[str, Any] | None = None) -> bool:
        self._errors = {}
        try:
            self._model.model_validate(data, strict=(options or {}).get("strict"))
        except ValidationError as e:
            for error in e.errors():
                location = error.get("loc") or ("__root__",)
                self._errors.setdefault(str(location[0]), []).append(error["msg"])
            return False
        return True

    def errors(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}
