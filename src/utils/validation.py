"""
Validation Middleware

This module provides schema validation helpers that enforce:
1. Schema validation on all generator I/O
2. Flattened, human-readable error lists for corrective feedback
3. Excerpt truncation for diagnostics

Schemas are law. If data does not match, fail fast.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class SchemaValidationError(Exception):
    """Raised when schema validation fails."""

    def __init__(self, message: str, schema_name: str, errors: list[dict[str, Any]]) -> None:
        super().__init__(message)
        self.schema_name = schema_name
        self.errors = errors

    def messages(self) -> list[str]:
        """Flatten pydantic error dicts to 'loc: msg' strings."""
        return format_validation_errors(self.errors)


def validate_schema(schema_class: type[T], data: Any) -> T:
    """
    Validate data against a Pydantic schema.

    Args:
        schema_class: The Pydantic model class to validate against
        data: The data to validate

    Returns:
        Validated Pydantic model instance

    Raises:
        SchemaValidationError: If validation fails
    """
    try:
        return schema_class.model_validate(data)
    except ValidationError as e:
        logger.warning(
            f"Schema validation failed for {schema_class.__name__}: {e.error_count()} error(s)"
        )
        raise SchemaValidationError(
            message=f"Schema validation failed for {schema_class.__name__}",
            schema_name=schema_class.__name__,
            errors=e.errors(include_url=False, include_input=False),
        ) from e


def validate_output(schema_class: type[T]) -> Callable[[Callable[..., dict[str, Any]]], Callable[..., T]]:
    """
    Decorator that validates function output against a schema.

    Usage:
        @validate_output(ClarifyChips)
        def build_chips() -> dict:
            return {...}
    """
    def decorator(func: Callable[..., dict[str, Any]]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            result = func(*args, **kwargs)
            return validate_schema(schema_class, result)
        return wrapper
    return decorator


def format_validation_errors(errors: list[dict[str, Any]], limit: int = 12) -> list[str]:
    """Render pydantic error dicts as short 'a.b.0: message' lines."""
    lines: list[str] = []
    for error in errors[:limit]:
        loc = ".".join(str(part) for part in error.get("loc", ()))
        lines.append(f"{loc}: {error.get('msg', 'invalid')}" if loc else str(error.get("msg", "invalid")))
    if len(errors) > limit:
        lines.append(f"... {len(errors) - limit} more error(s)")
    return lines


def truncate_excerpt(text: str | None, limit: int) -> str:
    """Truncate generator output for diagnostics."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit - 1].rstrip() + "…"
