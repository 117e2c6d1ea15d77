"""Pydantic models for HTML tag matching options and results."""

from __future__ import annotations

from typing import Literal

import pydantic

from scriptapi.utils import serialization

NamePositionType = Literal["contents", "attribute"]

AmbiguousNameResolution = Literal["replace", "addnumber"]


class NamePosition(pydantic.BaseModel):
    """Where the name of a matched tag is taken from.

    ``type`` is ``"contents"`` (the trimmed tag contents) or
    ``"attribute"`` (the value of the attribute called ``name``).
    ``regexp`` optionally narrows the raw name down to its first
    capturing group, or to the whole match when it has none.
    """

    type: NamePositionType = "contents"
    name: str = ""
    regexp: str = ""

    @pydantic.field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


class TagSearchOptions(pydantic.BaseModel):
    """Options accepted by the tag matching functions.

    Scripts pass these as a plain map with camelCase keys
    (``contentsRegExp``, ``noNesting``, ...); unknown keys are ignored.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    attributes: dict[str, str] = pydantic.Field(default_factory=dict)
    contents_reg_exp: str = ""
    position: int = pydantic.Field(default=0, ge=0)
    no_content: bool = False
    no_nesting: bool = False
    max_count: int = 0
    debug: bool = False
    name_position: NamePosition | None = None
    ambiguous_name_resolution: AmbiguousNameResolution = "replace"

    @pydantic.field_validator("attributes", mode="before")
    @classmethod
    def _stringify_attribute_patterns(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    @pydantic.field_validator("ambiguous_name_resolution", mode="before")
    @classmethod
    def _lower_resolution(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


class TagMatch(pydantic.BaseModel):
    """One top-level tag found in a document.

    ``position`` is the offset of the opening ``<``; ``end_position``
    the offset just after the matching closing tag (or after the
    opening tag for tags without content).
    """

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)

    found: bool = True
    contents: str = ""
    position: int = -1
    end_position: int = -1
    attributes: dict[str, str] = pydantic.Field(default_factory=dict)
    name: str | None = None

    @classmethod
    def not_found(cls) -> TagMatch:
        """Return the result used when no tag matched."""
        return cls(found=False)


class NamedTagMatches(pydantic.BaseModel):
    """Tags found by ``find_named_html_tags``, keyed by their derived name.

    ``names`` lists every key of ``tags`` in document order, so callers
    can check which expected columns are missing.
    """

    tags: dict[str, TagMatch] = pydantic.Field(default_factory=dict)
    names: list[str] = pydantic.Field(default_factory=list)

    def __getitem__(self, name: str) -> TagMatch:
        return self.tags[name]

    def __contains__(self, name: object) -> bool:
        return name in self.tags

    def __len__(self) -> int:
        return len(self.tags)

    def get(self, name: str) -> TagMatch | None:
        return self.tags.get(name)
