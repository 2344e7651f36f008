"""Shared base for models parsed from real-time store documents."""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Store documents use camelCase keys; malformed fields fall back to their defaults."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_on_malformed(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            field = cls.model_fields[info.field_name]
            if field.is_required():
                raise
            return field.get_default(call_default_factory=True)

    @classmethod
    def from_document(cls, data: Any, **overrides: Any):
        """Build a model from a raw store value; non-mapping values yield all defaults."""
        payload = dict(data) if isinstance(data, dict) else {}
        payload.update(overrides)
        return cls.model_validate(payload)
