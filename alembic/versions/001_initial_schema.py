"""Initial schema — users, datasets, shares, DIDs, consent, audit, deletion jobs.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # ── Append-only tables (no FKs: they outlive the user row) ─────────

    op.create_table(
        "consent_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("consent_type", sa.String(50), nullable=False, comment="ConsentType enum value"),
        sa.Column("granted", sa.Boolean(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_ip", sa.String(64)),
        sa.Column("user_agent", sa.String(500)),
        sa.Column("anonymized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_consent_records_user_recorded", "consent_records", ["user_id", "recorded_at", "id"])

    op.create_table(
        "audit_entries",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_ref", sa.String(100), nullable=False, comment="User UUID, or its pseudonym after deletion"),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("detail", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entries_action", "audit_entries", ["action"])
    op.create_index("ix_audit_entries_user_occurred", "audit_entries", ["user_ref", "occurred_at", "id"])

    op.create_table(
        "deletion_jobs",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("soft_delete", sa.Boolean(), nullable=False),
        sa.Column("completed_steps", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("failed_attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.String(1000)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    # ── Personal data ─────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("did", sa.String(255), nullable=False),
        sa.Column("profile", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("anonymized", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("did"),
    )
    op.create_index("ix_users_anonymized", "users", ["anonymized"])

    op.create_table(
        "datasets",
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("did", sa.String(255), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("file_hash", sa.String(128), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("ai_tags", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("anonymized", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
    )
    op.create_index("ix_datasets_owner_id", "datasets", ["owner_id"])

    op.create_table(
        "dataset_shares",
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("shared_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("shared_with_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("permission", sa.String(20), nullable=False),
        sa.Column("shared_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["dataset_id"], ["datasets.id"]),
        sa.ForeignKeyConstraint(["shared_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["shared_with_id"], ["users.id"]),
        sa.UniqueConstraint("dataset_id", "shared_with_id"),
    )
    op.create_index("ix_dataset_shares_dataset_id", "dataset_shares", ["dataset_id"])
    op.create_index("ix_dataset_shares_shared_by_id", "dataset_shares", ["shared_by_id"])
    op.create_index("ix_dataset_shares_shared_with_id", "dataset_shares", ["shared_with_id"])

    op.create_table(
        "did_documents",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("did", sa.String(255), nullable=False),
        sa.Column("document", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("anonymized", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_did_documents_user_id", "did_documents", ["user_id"])


def downgrade() -> None:
    op.drop_table("did_documents")
    op.drop_table("dataset_shares")
    op.drop_table("datasets")
    op.drop_table("users")
    op.drop_table("deletion_jobs")
    op.drop_table("audit_entries")
    op.drop_table("consent_records")
