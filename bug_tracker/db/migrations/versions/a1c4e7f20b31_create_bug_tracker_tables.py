"""Create bug tracker tables

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-19

Creates users, bugs, bug_tags, bug_comments and audit_log.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c4e7f20b31"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=True),
        sa.Column("last_name", sa.String(length=50), nullable=True),
        sa.Column(
            "role",
            sa.Enum(
                "developer", "tester", "admin", "project_manager",
                name="user_role",
            ),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "bugs",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("steps_to_reproduce", sa.Text(), nullable=True),
        sa.Column("expected_behavior", sa.String(length=500), nullable=True),
        sa.Column("actual_behavior", sa.String(length=500), nullable=True),
        sa.Column(
            "severity",
            sa.Enum("low", "medium", "high", "critical", name="bug_severity"),
            nullable=False,
        ),
        sa.Column(
            "priority",
            sa.Enum("low", "medium", "high", "urgent", name="bug_priority"),
            nullable=False,
        ),
        sa.Column(
            "category",
            sa.Enum(
                "ui", "backend", "database", "performance", "security",
                "feature", "other",
                name="bug_category",
            ),
            nullable=False,
        ),
        sa.Column("project", sa.String(length=200), nullable=False),
        sa.Column("environment", sa.JSON(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "open", "in_progress", "resolved", "closed", "reopened",
                name="bug_status",
            ),
            nullable=False,
        ),
        sa.Column(
            "reported_by",
            sa.String(length=128),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "assigned_to",
            sa.String(length=128),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("resolution", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "resolved_by",
            sa.String(length=128),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("estimated_time", sa.Float(), nullable=True),
        sa.Column("actual_time", sa.Float(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_bugs_severity", "bugs", ["severity"])
    op.create_index("ix_bugs_priority", "bugs", ["priority"])
    op.create_index("ix_bugs_project", "bugs", ["project"])
    op.create_index("ix_bugs_status", "bugs", ["status"])
    op.create_index("ix_bugs_reported_by", "bugs", ["reported_by"])
    op.create_index("ix_bugs_assigned_to", "bugs", ["assigned_to"])
    op.create_index("ix_bugs_created_at", "bugs", ["created_at"])
    op.create_index("ix_bugs_status_severity", "bugs", ["status", "severity"])

    op.create_table(
        "bug_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "bug_id",
            sa.String(length=128),
            sa.ForeignKey("bugs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(length=30), nullable=False),
    )
    op.create_index("ix_bug_tags_bug_position", "bug_tags", ["bug_id", "position"])

    op.create_table(
        "bug_comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "bug_id",
            sa.String(length=128),
            sa.ForeignKey("bugs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            sa.String(length=128),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_bug_comments_bug_id", "bug_comments", ["bug_id"])
    op.create_index("ix_bug_comments_author_id", "bug_comments", ["author_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "ts",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column(
            "action",
            sa.Enum(
                "created", "updated", "status_changed", "deleted", "commented",
                "role_changed", "activation_changed",
                name="audit_action",
            ),
            nullable=False,
        ),
        sa.Column("entity_kind", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_entity_kind", "audit_log", ["entity_kind"])
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_kind", "entity_id"])
    op.create_index(
        "ix_audit_log_entity_ts",
        "audit_log",
        ["entity_kind", "entity_id", "ts"],
    )


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("bug_comments")
    op.drop_table("bug_tags")
    op.drop_table("bugs")
    op.drop_table("users")

    # Drop PostgreSQL enum types (no-op for SQLite)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "audit_action",
            "bug_status",
            "bug_category",
            "bug_priority",
            "bug_severity",
            "user_role",
        ):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
