"""Initial schema: 3 tables matching db.py models.

Revision ID: 001
Revises: (none)
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _document_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("data", JSONB(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def upgrade() -> None:
    # --- team_members / designs ---
    _document_table("team_members")
    _document_table("designs")

    # --- chat_messages ---
    op.create_table(
        "chat_messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("seq", sa.BigInteger(), sa.Identity(), nullable=False, unique=True),
        sa.Column("conversation_id", sa.String(100), nullable=False),
        sa.Column("participant_id", sa.String(100), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("response", sa.Text(), nullable=True),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("intent_kind", sa.String(50), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("context", JSONB(), nullable=False),
        sa.Column("transport_metadata", JSONB(), nullable=False),
        sa.Column("is_resolved", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_chat_messages_conversation", "chat_messages", ["conversation_id", "created_at"]
    )
    op.create_index(
        "idx_chat_messages_participant", "chat_messages", ["participant_id", "created_at"]
    )
    op.create_index("idx_chat_messages_intent", "chat_messages", ["intent_kind"])


def downgrade() -> None:
    op.drop_table("chat_messages")
    op.drop_table("designs")
    op.drop_table("team_members")
