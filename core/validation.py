"""
Input Validation Utilities.

Every handler validates its inputs before touching storage. This module holds
those checks so the rules are the same across resources.

Key Components:
- `InputValidator`: static validators for identifiers, free-text content,
  titles/names and optional text fields.
- `PageRequest`: normalised pagination and sort parameters (page ≥ 1,
  1 ≤ limit ≤ max page size, sort direction `asc`/`desc`).
- `parse_page_request`: builds a `PageRequest` from raw query values, raising
  `ValidationError` (400) for anything malformed.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from core.config import get_settings
from core.exceptions import InvalidIdentifierError, ValidationError
from core.logging_config import get_logger

logger = get_logger(__name__)

SORT_DIRECTIONS = {
    "asc": "asc",
    "ascending": "asc",
    "1": "asc",
    "desc": "desc",
    "descending": "desc",
    "-1": "desc",
}


class InputValidator:
    """Input validation shared by all resources"""

    ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")

    @staticmethod
    def is_valid_id(value: Any) -> bool:
        return isinstance(value, str) and bool(InputValidator.ID_PATTERN.match(value))

    @staticmethod
    def validate_id(value: Any, field: str = "id") -> str:
        """Reject missing or malformed identifiers before any query"""
        if not InputValidator.is_valid_id(value):
            logger.debug(f"Rejected malformed identifier for {field}")
            raise InvalidIdentifierError(field, value)
        return value

    @staticmethod
    def validate_content(value: Optional[str], field: str = "content", max_length: int = 5000) -> str:
        """Require a non-blank string"""
        if value is None or not isinstance(value, str) or value.strip() == "":
            raise ValidationError(
                f"{field} is required",
                errors=[{"field": field, "reason": "must not be blank"}],
            )
        if len(value) > max_length:
            raise ValidationError(
                f"{field} must be no more than {max_length} characters",
                errors=[{"field": field, "reason": "too long"}],
            )
        return value

    @staticmethod
    def validate_optional_text(
        value: Optional[str], field: str, max_length: int = 5000
    ) -> Optional[str]:
        """None passes through; anything else must be non-blank"""
        if value is None:
            return None
        return InputValidator.validate_content(value, field, max_length)


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10
    sort_by: Optional[str] = None
    sort_type: str = "desc"

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _positive_int(value: Any, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field} must be an integer",
            errors=[{"field": field, "reason": "not an integer"}],
        )
    if number < 1:
        raise ValidationError(
            f"{field} must be at least 1",
            errors=[{"field": field, "reason": "must be >= 1"}],
        )
    return number


def parse_page_request(
    page: Any = None,
    limit: Any = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
) -> PageRequest:
    """Normalise raw pagination/sort query values"""
    settings = get_settings()

    page_number = 1 if page in (None, "") else _positive_int(page, "page")
    page_size = (
        settings.default_page_size
        if limit in (None, "")
        else _positive_int(limit, "limit")
    )
    if page_size > settings.max_page_size:
        raise ValidationError(
            f"limit must be no more than {settings.max_page_size}",
            errors=[{"field": "limit", "reason": "too large"}],
        )

    direction = "desc"
    if sort_type not in (None, ""):
        direction = SORT_DIRECTIONS.get(str(sort_type).lower())
        if direction is None:
            raise ValidationError(
                "sortType must be 'asc' or 'desc'",
                errors=[{"field": "sortType", "reason": "unknown direction"}],
            )

    return PageRequest(
        page=page_number,
        limit=page_size,
        sort_by=sort_by or None,
        sort_type=direction,
    )
