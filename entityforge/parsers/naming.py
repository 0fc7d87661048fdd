"""
Naming conventions between SQL identifiers and the design model.

Tables are snake_case plurals (``user_profiles``), entities are singular
PascalCase (``UserProfile``), columns are snake_case and fields camelCase.
"""
import re
from typing import List

_WORD_SEPARATORS = re.compile(r'[_\s-]+')
_UPPER_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def _words(identifier: str) -> List[str]:
    # camelCase boundaries count as separators too
    identifier = _UPPER_BOUNDARY.sub(r"_\1", identifier)
    return [w for w in _WORD_SEPARATORS.split(identifier) if w]


def to_pascal_case(identifier: str) -> str:
    return "".join(w[0].upper() + w[1:].lower() for w in _words(identifier))


def to_camel_case(identifier: str) -> str:
    words = _words(identifier)
    if not words:
        return ""
    head = words[0].lower()
    return head + "".join(w[0].upper() + w[1:].lower() for w in words[1:])


def to_snake_case(identifier: str) -> str:
    return _UPPER_BOUNDARY.sub(r'_\1', identifier).lower()


def singularize(word: str) -> str:
    """Naive English singular: drop one trailing 's' unless the word ends in 'ss'."""
    if len(word) > 1 and word[-1] in 'sS' and word[-2:].lower() != 'ss':
        return word[:-1]
    return word


def table_to_entity_name(table_name: str) -> str:
    words = _words(table_name)
    if not words:
        return ""
    words[-1] = singularize(words[-1])
    return to_pascal_case("_".join(words))


def column_to_field_name(column_name: str) -> str:
    return to_camel_case(column_name)
