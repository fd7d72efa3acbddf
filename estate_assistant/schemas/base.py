"""
Shared schema building blocks.
"""

import re
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
UUID_REGEX = re.compile(UUID_PATTERN)

HTML_TAGS = re.compile(r"<[^>]*>")


def sanitize_string(value: Any) -> Any:
    """Strip HTML tags and surrounding whitespace from text input."""
    if not isinstance(value, str):
        return value
    return HTML_TAGS.sub("", value).strip()


def is_uuid(value: str) -> bool:
    return bool(UUID_REGEX.match(value or ""))


SanitizedStr = Annotated[str, BeforeValidator(sanitize_string)]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and serializes to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
