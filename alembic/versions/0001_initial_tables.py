"""Create challenges and tokens tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Pending challenges: seed token, JSON {c, s, d} params, expiry in epoch ms
    op.create_table(
        "challenges",
        sa.Column("token", sa.String(64), primary_key=True),
        sa.Column("data", sa.Text, nullable=False),
        sa.Column("expires", sa.BigInteger, nullable=False),
    )
    op.create_index("ix_challenges_expires", "challenges", ["expires"])

    # Verification tokens: "<id>:<sha256(secret)>" -> expiry in epoch ms
    op.create_table(
        "tokens",
        sa.Column("key", sa.String(96), primary_key=True),
        sa.Column("expires", sa.BigInteger, nullable=False),
    )
    op.create_index("ix_tokens_expires", "tokens", ["expires"])


def downgrade() -> None:
    op.drop_index("ix_tokens_expires", table_name="tokens")
    op.drop_table("tokens")

    op.drop_index("ix_challenges_expires", table_name="challenges")
    op.drop_table("challenges")
