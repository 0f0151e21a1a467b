# ==============================================================================
# BASE SCHEMAS - Common Schema Patterns
# ==============================================================================
# Foundation schemas for API responses, pagination and error mapping
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from walletwise.core.exceptions import ValidationError

T = TypeVar("T")
SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Money goes out as a JSON number; values are already two-place decimals
MoneyField = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    JSON field names are camelCase; Python code and request bodies may
    also use the snake_case names. Unknown request fields are ignored.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )


class TimestampSchema(BaseSchema):
    """Schema with automatic timestamp fields."""

    created_at: Optional[datetime] = Field(
        None,
        description="Record creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="Last update timestamp"
    )


class PaginatedResponse(BaseSchema, Generic[T]):
    """
    Generic paginated response wrapper.

    Attributes:
        items: List of result items
        total: Total number of matching items
        page: Current page number (1-indexed)
        pages: Total number of pages
        limit: Items per page
    """

    items: List[T] = Field(
        default_factory=list,
        description="List of items"
    )
    total: int = Field(
        ...,
        ge=0,
        description="Total number of items"
    )
    page: int = Field(
        ...,
        ge=1,
        description="Current page number"
    )
    pages: int = Field(
        ...,
        ge=0,
        description="Total number of pages"
    )
    limit: int = Field(
        ...,
        ge=1,
        le=100,
        description="Items per page"
    )


class APIResponse(BaseModel, Generic[T]):
    """
    Standard API response wrapper.

    Attributes:
        success: Whether the request was successful
        message: Optional status message
        data: Response payload
        errors: Optional error details
    """

    success: bool = Field(
        True,
        description="Whether the request was successful"
    )
    message: Optional[str] = Field(
        None,
        description="Status message"
    )
    data: Optional[T] = Field(
        None,
        description="Response data"
    )
    errors: Optional[List[dict[str, Any]]] = Field(
        None,
        description="Error details if any"
    )

    @classmethod
    def ok(
        cls,
        data: T,
        message: Optional[str] = None,
    ) -> "APIResponse[T]":
        """Create a successful response."""
        return cls(success=True, data=data, message=message)


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str = Field(
        ...,
        description="Health status"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    database: str = Field(
        ...,
        description="Database connection status"
    )


# ==============================================================================
# VALIDATION ERROR MAPPING
# ==============================================================================

def _field_name(loc: Sequence[Any], skip: Sequence[str] = ("body", "query", "path", "header")) -> str:
    # Field validators report the attribute name, type errors the alias
    parts = [
        to_camel(str(part)) if "_" in str(part) else str(part)
        for part in loc
        if str(part) not in skip
    ]
    return ".".join(parts) or "__root__"


def collect_field_errors(errors: Sequence[Dict[str, Any]]) -> Dict[str, str]:
    """
    Flatten pydantic/FastAPI error entries into ``{field: message}``.

    Every offending field is listed; the first message per field wins.
    """
    result: Dict[str, str] = {}
    for error in errors:
        name = _field_name(error.get("loc", ()))
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        result.setdefault(name, message)
    return result


def parse_model(schema: Type[SchemaT], data: Any) -> SchemaT:
    """
    Validate ``data`` against ``schema``.

    Raises:
        ValidationError: Listing every invalid field
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            message="Validation error",
            errors=collect_field_errors(exc.errors()),
        )
