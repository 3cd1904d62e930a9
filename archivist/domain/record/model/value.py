import re
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Annotated

from pydantic import AwareDatetime, Field, model_validator
from typing_extensions import Self

from archivist.domain.shared.model.value import Identifier, ValueObject

TITLE_MAX_LENGTH = 255

_NON_ALNUM = re.compile(r"[\W_]+")

Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
"""Non-negative decimal with two fractional digits."""


class RecordId(Identifier):
    """Internal record identifier. Never handed to third parties."""


class ExternalRef(Identifier):
    """Public record identifier exposed to external systems in place of RecordId."""


class RecordStatus(StrEnum):
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Category(StrEnum):
    GENERAL = "general"
    FINANCE = "finance"
    ENGINEERING = "engineering"
    MARKETING = "marketing"
    SUPPORT = "support"


class IntRange(ValueObject):
    """Half-open integer interval [lower, upper). A missing bound is unbounded."""

    lower: int | None = None
    upper: int | None = None

    @model_validator(mode="after")
    def _ordered(self) -> Self:
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError("range lower bound must not exceed upper bound")
        return self

    def __contains__(self, value: int) -> bool:
        if self.lower is not None and value < self.lower:
            return False
        return self.upper is None or value < self.upper


class TimeRange(ValueObject):
    """Half-open timestamp interval [start, end). A missing bound is unbounded."""

    start: AwareDatetime | None = None
    end: AwareDatetime | None = None

    @model_validator(mode="after")
    def _ordered(self) -> Self:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("period start must not be after its end")
        return self

    def __contains__(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        return self.end is None or moment < self.end


def slugify(title: str) -> str:
    """Lower-case the title and collapse every non-alphanumeric run into '-'.

    Letters and digits of any script count as alphanumeric.

    >>> slugify("Hello, World!")
    'hello-world'
    """
    return _NON_ALNUM.sub("-", title.lower()).strip("-")
