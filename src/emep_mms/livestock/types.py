"""Animal type resolution.

Reference tables are keyed by a small set of livestock categories
("dairy_cattle", "cattle", "pigs", "sheep", "birds", ...). Users describe
their herd with more specific subtypes ("dairy_cattle_tied", "laying_hens")
which the conversion table maps back to a category.
"""

import logging
import warnings
from collections.abc import Iterator, Mapping
from typing import Any

from emep_mms.core.errors import InvalidAnimalType, ResolutionWarning

logger = logging.getLogger(__name__)

# Substring -> main category, checked in order
MAIN_TYPE_PATTERNS: list[tuple[tuple[str, ...], str]] = [
    (("cattle", "cow"), "cattle"),
    (("pig", "sow"), "pigs"),
    (("sheep",), "sheep"),
    (("goat",), "goats"),
    (("horse",), "horses"),
    (("hen", "broiler", "poultry", "chicken", "duck", "turkey"), "birds"),
]


def alternate_keys(name: str) -> list[str]:
    """Singular/plural variants of a table key.

    Some circulated tables use "sheeps" where others use "sheep".

    >>> alternate_keys("sheep")
    ['sheeps']
    >>> alternate_keys("sheeps")
    ['sheep']
    """
    if name.endswith("s"):
        return [name[:-1]]
    return [name + "s"]


def list_categories(conversions: Mapping[str, Any] | None) -> list[str]:
    """Category keys of a conversion table."""
    return list(conversions or {})


def subtypes_of(entry: Any) -> list[str]:
    """Subtype list of a conversion entry; a single name is a one-item list."""
    if entry is None:
        return []
    if isinstance(entry, str):
        return [entry]
    return [str(subtype) for subtype in entry]


def resolve_animal_type(
    animal_type: object,
    conversions: Mapping[str, Any] | None,
    strict: bool = False,
) -> str:
    """Map an animal subtype to its canonical category.

    Args:
        animal_type: Category or subtype name
        conversions: Category -> list of subtypes
        strict: Raise instead of warning when the type is unknown

    Returns:
        The category key, or ``animal_type`` unchanged when it cannot be
        resolved and ``strict`` is False

    Raises:
        InvalidAnimalType: If ``animal_type`` is not a non-empty string, or
            is unknown and ``strict`` is True
    """
    categories = list_categories(conversions)
    if not isinstance(animal_type, str) or not animal_type.strip():
        raise InvalidAnimalType(animal_type, categories)

    conversions = conversions or {}
    for candidate in [animal_type, *alternate_keys(animal_type)]:
        if candidate in conversions:
            return candidate
        for category, subtypes in conversions.items():
            if candidate in subtypes_of(subtypes):
                return category

    if strict:
        raise InvalidAnimalType(animal_type, categories)

    warnings.warn(
        f"Animal type {animal_type!r} not found in livestock conversions, using it as-is",
        ResolutionWarning,
        stacklevel=2,
    )
    return animal_type


def guess_main_animal_type(animal_type: str) -> str | None:
    """Guess a main category from substrings of an unmapped type name.

    >>> guess_main_animal_type("organic_dairy_cows")
    'cattle'
    """
    name = animal_type.lower()
    for patterns, category in MAIN_TYPE_PATTERNS:
        if any(pattern in name for pattern in patterns):
            return category
    return None


def animal_candidates(animal_type: str, category: str | None = None, heuristic: bool = False) -> Iterator[str]:
    """Table keys to try for an animal, most specific first.

    Order: exact type, its plural/singular variant, the category, the
    category's variant, then (optionally) the substring-guessed main type.
    """
    seen: set[str] = set()
    names = [animal_type]
    if category and category != animal_type:
        names.append(category)
    if heuristic:
        guessed = guess_main_animal_type(animal_type)
        if guessed:
            names.append(guessed)

    for name in names:
        for candidate in [name, *alternate_keys(name)]:
            if candidate not in seen:
                seen.add(candidate)
                yield candidate


def lookup_animal_entry(
    table: Mapping[str, Any] | None,
    animal_type: str,
    category: str | None = None,
    heuristic: bool = False,
) -> Any | None:
    """First table entry matching the animal (see ``animal_candidates``)."""
    if not table:
        return None
    for key in animal_candidates(animal_type, category, heuristic):
        if key in table:
            if key != animal_type:
                logger.debug("Using %r entry for animal type %r", key, animal_type)
            return table[key]
    return None
