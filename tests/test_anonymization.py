"""Tests for anonymization strategies."""

from __future__ import annotations

import pytest

from gdpr_engine.security.anonymization import (
    ANONYMIZED_DOMAIN,
    REDACTED,
    get_strategy,
    pseudonymize_identifier,
)


def _dataset_record():
    return {
        "id": "1234",
        "did": "did:dataset:abc",
        "title": "My medical records",
        "description": "Scans from 2024",
        "file_hash": "deadbeef",
        "file_path": "/data/ada/scans.zip",
        "file_size": 4096,
        "mime_type": "application/zip",
        "metadata": {"author": "Ada Lovelace"},
        "ai_tags": ["health", "imaging"],
        "is_public": False,
    }


class TestPseudonymizeIdentifier:
    def test_deterministic(self):
        assert pseudonymize_identifier("ada", "k") == pseudonymize_identifier("ada", "k")

    def test_key_dependent(self):
        assert pseudonymize_identifier("ada", "k1") != pseudonymize_identifier("ada", "k2")

    def test_prefix_and_no_plaintext(self):
        pseudonym = pseudonymize_identifier("ada@example.com", "k")
        assert pseudonym.startswith("anon-")
        assert "example.com" not in pseudonym


class TestPseudonymizeStrategy:
    def test_identifiers_replaced(self):
        anonymize = get_strategy("pseudonymize", "secret")
        out = anonymize(_dataset_record())

        assert out["did"] == pseudonymize_identifier("did:dataset:abc", "secret")
        assert out["file_hash"].startswith("anon-")
        assert out["file_path"].startswith("anon-")

    def test_free_text_and_documents_scrubbed(self):
        out = get_strategy("pseudonymize", "secret")(_dataset_record())

        assert out["title"] == "Anonymized Dataset"
        assert out["description"] == "This dataset has been anonymized"
        assert out["metadata"] == {"anonymized": True}
        assert out["ai_tags"] == []

    def test_structure_preserved(self):
        record = _dataset_record()
        out = get_strategy("pseudonymize", "secret")(record)

        assert out["file_size"] == 4096
        assert out["mime_type"] == "application/zip"
        assert out["is_public"] is False
        assert out["id"] == "1234"

    def test_email_stays_email_shaped(self):
        out = get_strategy("pseudonymize", "secret")({"email": "ada@example.com"})
        assert out["email"].endswith(f"@{ANONYMIZED_DOMAIN}")

    def test_input_not_mutated(self):
        record = _dataset_record()
        get_strategy("pseudonymize", "secret")(record)
        assert record["title"] == "My medical records"

    def test_none_values_left_alone(self):
        out = get_strategy("pseudonymize", "secret")({"description": None, "source_ip": None})
        assert out == {"description": None, "source_ip": None}


class TestRedactStrategy:
    def test_identifiers_redacted(self):
        out = get_strategy("redact", "secret")({"id": "u1", "source_ip": "10.0.0.1", "user_agent": "curl"})
        assert out["source_ip"] == REDACTED
        assert out["user_agent"] == REDACTED

    def test_unique_fields_stay_unique(self):
        redact = get_strategy("redact", "secret")
        a = redact({"id": "u1", "email": "a@example.com", "did": "did:a"})
        b = redact({"id": "u2", "email": "b@example.com", "did": "did:b"})
        assert a["email"] != b["email"]
        assert a["did"] != b["did"]

    def test_free_text_scrubbed(self):
        out = get_strategy("redact", "secret")({"title": "Secret project"})
        assert out["title"] == "Anonymized Dataset"


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError, match="Unknown anonymization strategy"):
        get_strategy("shred", "secret")
