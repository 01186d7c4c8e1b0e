"""
Text and identifier normalization for client deduplication.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

_WHITESPACE_REGEX = re.compile(r"\s+")
_NON_DIGIT_REGEX = re.compile(r"\D")


@dataclass(frozen=True)
class NormalizedIdentity:
    """Comparable form of a client's identifying fields."""

    name_normalized: str
    city_normalized: str
    state: str
    document_normalized: str

    @property
    def has_document(self) -> bool:
        return bool(self.document_normalized)


def _strip_diacritics(token: str) -> str:
    decomposed = unicodedata.normalize("NFKD", token)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalize_text(value: object | None) -> str:
    """
    Normalize free text (client name, city) for identity comparison.

    - Trim surrounding whitespace and collapse internal runs to one space
    - Case-fold
    - Strip diacritics ("São Paulo" -> "sao paulo")

    Absent input yields an empty string.
    """

    if value is None:
        return ""
    # Case folding can reintroduce combining marks ("İ"), so strip on both sides
    token = _strip_diacritics(_strip_diacritics(str(value)).casefold())
    return _WHITESPACE_REGEX.sub(" ", token).strip()


def normalize_state(value: object | None) -> str:
    """Trim and upper-case an administrative subdivision code (no code list check)."""

    if value is None:
        return ""
    return str(value).strip().upper()


def normalize_document(value: object | None) -> str:
    """
    Keep only the digits of a government document number (CNPJ/CPF).

    An empty result means "no document provided".
    """

    if value is None:
        return ""
    return _NON_DIGIT_REGEX.sub("", str(value))


def normalize_identity(
    name: object | None = None,
    city: object | None = None,
    state: object | None = None,
    document: object | None = None,
) -> NormalizedIdentity:
    return NormalizedIdentity(
        name_normalized=normalize_text(name),
        city_normalized=normalize_text(city),
        state=normalize_state(state),
        document_normalized=normalize_document(document),
    )
