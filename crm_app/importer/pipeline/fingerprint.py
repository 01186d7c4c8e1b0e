"""
Deterministic identity keys derived from a normalized client identity.
"""

from __future__ import annotations

from .normalize import NormalizedIdentity

DOCUMENT_PREFIX = "doc:"


def document_fingerprint(identity: NormalizedIdentity) -> str | None:
    if not identity.document_normalized:
        return None
    return f"{DOCUMENT_PREFIX}{identity.document_normalized}"


def composite_fingerprint(identity: NormalizedIdentity) -> str:
    return f"n:{identity.name_normalized}|c:{identity.city_normalized}|s:{identity.state}"


def build_fingerprint(identity: NormalizedIdentity) -> str:
    """
    Return the single identity key for a candidate.

    The document key wins whenever a document is present; otherwise the
    name/city/state composite is used. Identities with every field empty all
    share ``n:|c:|s:`` and therefore collide with each other.
    """

    return document_fingerprint(identity) or composite_fingerprint(identity)
