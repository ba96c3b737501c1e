"""Shared pydantic base for persisted cmdprobe records."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time used for every record timestamp."""
    return datetime.now(UTC)


class RecordModel(BaseModel):
    """Immutable record serialized with camelCase keys.

    Attributes are snake_case in Python; ``model_dump(by_alias=True)`` and
    :meth:`to_document` produce the camelCase form used in persisted JSON and
    generated documentation.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
