"""Anonymization strategies for GDPR soft delete.

A strategy is a pure function `record -> record'` over a plain mapping of
column names to values. It replaces direct identifiers and personal free
text while leaving structural fields (sizes, types, flags, timestamps,
foreign keys) untouched, so aggregate statistics survive.

Field mapping:
    identifiers      email, did, file_hash, file_path, source_ip, user_agent
    free text        title, description           -> fixed placeholders
    personal JSON    profile, metadata, document  -> {"anonymized": true}
    tag lists        ai_tags                       -> []

Usage:
    from gdpr_engine.security.anonymization import get_strategy

    anonymize = get_strategy("pseudonymize", secret)
    clean = anonymize({"email": "a@b.c", "file_size": 10})
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Callable, Mapping
from typing import Any

AnonymizationStrategy = Callable[[Mapping[str, Any]], dict[str, Any]]

IDENTIFIER_FIELDS: frozenset[str] = frozenset({
    "email",
    "did",
    "file_hash",
    "file_path",
    "source_ip",
    "user_agent",
})

FREE_TEXT_PLACEHOLDERS: dict[str, str] = {
    "title": "Anonymized Dataset",
    "description": "This dataset has been anonymized",
}

PERSONAL_DOCUMENT_FIELDS: frozenset[str] = frozenset({"profile", "metadata", "document"})

TAG_FIELDS: frozenset[str] = frozenset({"ai_tags"})

ANONYMIZED_DOMAIN = "anonymized.invalid"
REDACTED = "[REDACTED]"

_PSEUDONYM_LENGTH = 24


def pseudonymize_identifier(value: Any, secret: str) -> str:
    """Deterministic keyed pseudonym: same value and key give the same output."""
    digest = hmac.new(secret.encode("utf-8"), str(value).encode("utf-8"), hashlib.sha256).hexdigest()
    return f"anon-{digest[:_PSEUDONYM_LENGTH]}"


def _scrub_non_identifiers(record: Mapping[str, Any], out: dict[str, Any]) -> None:
    for key, value in record.items():
        if value is None:
            continue
        if key in FREE_TEXT_PLACEHOLDERS:
            out[key] = FREE_TEXT_PLACEHOLDERS[key]
        elif key in PERSONAL_DOCUMENT_FIELDS:
            out[key] = {"anonymized": True}
        elif key in TAG_FIELDS:
            out[key] = []


def pseudonymize(secret: str) -> AnonymizationStrategy:
    """Replace identifiers with keyed pseudonyms (linkable only with the key)."""

    def _apply(record: Mapping[str, Any]) -> dict[str, Any]:
        out = dict(record)
        for key in IDENTIFIER_FIELDS & record.keys():
            value = record[key]
            if value is None:
                continue
            pseudonym = pseudonymize_identifier(value, secret)
            out[key] = f"{pseudonym}@{ANONYMIZED_DOMAIN}" if key == "email" else pseudonym
        _scrub_non_identifiers(record, out)
        return out

    return _apply


def redact(secret: str) -> AnonymizationStrategy:
    """Replace identifiers with a constant marker (not linkable at all)."""

    def _apply(record: Mapping[str, Any]) -> dict[str, Any]:
        out = dict(record)
        for key in IDENTIFIER_FIELDS & record.keys():
            if record[key] is None:
                continue
            if key == "email":
                # Emails are unique per user
                out[key] = f"redacted-{record.get('id', 'unknown')}@{ANONYMIZED_DOMAIN}"
            elif key == "did":
                out[key] = f"{REDACTED}:{record.get('id', 'unknown')}"
            else:
                out[key] = REDACTED
        _scrub_non_identifiers(record, out)
        return out

    return _apply


_STRATEGIES: dict[str, Callable[[str], AnonymizationStrategy]] = {
    "pseudonymize": pseudonymize,
    "redact": redact,
}


def get_strategy(name: str, secret: str) -> AnonymizationStrategy:
    """Look up a strategy by its configured name."""
    try:
        factory = _STRATEGIES[name]
    except KeyError:
        msg = f"Unknown anonymization strategy: {name}"
        raise ValueError(msg) from None
    return factory(secret)
