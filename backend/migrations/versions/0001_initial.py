"""Initial schema – users and the four item tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Every item table carries a uuid primary key, an ``owner_user_id`` foreign
key to users (cascading delete) and ``updated_at``.  Item columns hold
client-sealed hex ciphertext, hence Text rather than bounded strings.
"""

from alembic import op
import sqlalchemy as sa

# Alembic revision identifiers
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

_ITEM_TABLES = {
    "passwords": ("login", "password"),
    "banks": ("card_number", "cvc", "owner", "expiration"),
    "texts": ("text",),
}


def _item_table(name: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "owner_user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("meta", sa.Text(), nullable=False),
        *extra,
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    # "all items for user X" is the hot query
    op.create_index(f"ix_{name}_owner_user_id", name, ["owner_user_id"])


def upgrade() -> None:
    # -- users ----------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("login", sa.String(150), nullable=False),
        sa.Column("login_hash", sa.String(64), nullable=False),
        sa.Column("salt", sa.String(255), nullable=False),
        sa.Column("password_verifier", sa.String(255), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_users_login_hash", "users", ["login_hash"], unique=True)

    # -- item tables ----------------------------------------------------
    for name, columns in _ITEM_TABLES.items():
        _item_table(name, *(sa.Column(c, sa.Text(), nullable=False) for c in columns))

    # path_to_file is the staging blob uuid
    _item_table("files", sa.Column("path_to_file", sa.String(36), nullable=False))


def downgrade() -> None:
    for name in ("files", *reversed(list(_ITEM_TABLES))):
        op.drop_index(f"ix_{name}_owner_user_id", table_name=name)
        op.drop_table(name)
    op.drop_index("ix_users_login_hash", table_name="users")
    op.drop_table("users")
