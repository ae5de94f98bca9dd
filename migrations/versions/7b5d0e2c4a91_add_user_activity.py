"""add user activity log

Revision ID: 7b5d0e2c4a91
Revises: 3c1e7a9d2b40
Create Date: 2026-10-18 14:03:27.518402

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7b5d0e2c4a91"
down_revision = "3c1e7a9d2b40"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user_activity",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=120), nullable=False),
        sa.Column("game_id", sa.Integer(), nullable=True),
        sa.Column("game_name", sa.String(length=120), nullable=False),
        sa.Column("freeplay", sa.Float(), nullable=False),
        sa.Column("redeem", sa.Float(), nullable=False),
        sa.Column("deposit", sa.Float(), nullable=False),
        sa.Column("freeplay_total", sa.Float(), nullable=True),
        sa.Column("redeem_total", sa.Float(), nullable=True),
        sa.Column("deposit_total", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["game_id"], ["game.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_activity_game_id"), "user_activity", ["game_id"], unique=False)


def downgrade():
    op.drop_index(op.f("ix_user_activity_game_id"), table_name="user_activity")
    op.drop_table("user_activity")
