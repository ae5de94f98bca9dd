"""initial schema (users, ledger, tombstones, sessions, games, audit)

Revision ID: 3c1e7a9d2b40
Revises:
Create Date: 2026-10-18 09:12:44.120931

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c1e7a9d2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=120), nullable=False),
        sa.Column("username_key", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_username_key"), "user", ["username_key"], unique=True)
    op.create_index(op.f("ix_user_email"), "user", ["email"], unique=True)

    op.create_table(
        "game_entry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=120), nullable=True),
        sa.Column("game_name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Float(), nullable=True),
        sa.Column("amount_final", sa.Float(), nullable=True),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("method", sa.String(length=40), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_game_entry_username"), "game_entry", ["username"], unique=False)
    op.create_index(op.f("ix_game_entry_game_name"), "game_entry", ["game_name"], unique=False)
    op.create_index(op.f("ix_game_entry_date"), "game_entry", ["date"], unique=False)

    op.create_table(
        "deleted_username",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=120), nullable=False),
        sa.Column("username_key", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_deleted_username_username_key"), "deleted_username", ["username_key"], unique=True)

    op.create_table(
        "login_session",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=120), nullable=False),
        sa.Column("username_key", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("sign_in_at", sa.DateTime(), nullable=False),
        sa.Column("sign_out_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_login_session_username_key"), "login_session", ["username_key"], unique=False)
    op.create_index(
        "uq_login_session_open",
        "login_session",
        ["username_key"],
        unique=True,
        sqlite_where=sa.text("sign_out_at IS NULL"),
        postgresql_where=sa.text("sign_out_at IS NULL"),
    )

    op.create_table(
        "game",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("coins_recharged", sa.Float(), nullable=False),
        sa.Column("last_recharge_date", sa.String(length=10), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "admin_audit_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("admin_user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("target_type", sa.String(length=40), nullable=True),
        sa.Column("target_id", sa.String(length=160), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["admin_user_id"], ["user.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_audit_log_admin_user_id"), "admin_audit_log", ["admin_user_id"], unique=False)


def downgrade():
    op.drop_index(op.f("ix_admin_audit_log_admin_user_id"), table_name="admin_audit_log")
    op.drop_table("admin_audit_log")

    op.drop_table("game")

    op.drop_index("uq_login_session_open", table_name="login_session")
    op.drop_index(op.f("ix_login_session_username_key"), table_name="login_session")
    op.drop_table("login_session")

    op.drop_index(op.f("ix_deleted_username_username_key"), table_name="deleted_username")
    op.drop_table("deleted_username")

    op.drop_index(op.f("ix_game_entry_date"), table_name="game_entry")
    op.drop_index(op.f("ix_game_entry_game_name"), table_name="game_entry")
    op.drop_index(op.f("ix_game_entry_username"), table_name="game_entry")
    op.drop_table("game_entry")

    op.drop_index(op.f("ix_user_email"), table_name="user")
    op.drop_index(op.f("ix_user_username_key"), table_name="user")
    op.drop_table("user")
