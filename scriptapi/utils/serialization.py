"""camelCase aliases for the models provider scripts see.

Scripts are written against camelCase option keys (``contentsRegExp``,
``noNesting``) and read camelCase result fields (``endPosition``).
The pydantic models keep snake_case attribute names and use
:func:`snake_to_camel` as their ``alias_generator``.
"""

from __future__ import annotations


def snake_to_camel(name: str) -> str:
    """Return the camelCase alias of a snake_case field name.

    ``"contents_reg_exp"`` becomes ``"contentsRegExp"``.  Only the first
    letter of each later word is raised, the rest is kept as written.
    """
    head, *words = name.split("_")
    return head + "".join(word[:1].upper() + word[1:] for word in words)
