"""Shared base for provider response schemas."""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound="ProviderSchema")


class ProviderSchema(BaseModel):
    """
    Tolerant view over one provider payload object.

    Unknown keys are ignored and null-valued keys are dropped before
    validation, so an ``AliasChoices`` list falls through to the next
    spelling when a provider sends ``null`` for the first one.

    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @classmethod
    def parse(cls: type[SchemaT], data: Any) -> SchemaT | None:
        """
        Validate ``data``, returning None instead of raising.

        A payload that does not fit the schema is logged at debug level so
        schema drift is visible without failing the whole response.

        """
        if not isinstance(data, dict):
            return None
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.debug("%s rejected payload: %s", cls.__name__, e)
            return None
