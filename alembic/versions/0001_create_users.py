"""create users table with unique email

Revision ID: 0001
Revises:
Create Date: 2025-08-02 15:04:25

"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

EMAIL_NOT_NULL = sa.text("email IS NOT NULL")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_user_id", sa.String(length=256), nullable=True),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("name", sa.String(length=256), nullable=True),
        sa.Column("tenant_id", sa.String(length=256), nullable=True),
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
    op.create_index(
        "ix_users_email_unique",
        "users",
        ["email"],
        unique=True,
        sqlite_where=EMAIL_NOT_NULL,
        postgresql_where=EMAIL_NOT_NULL,
        mssql_where=EMAIL_NOT_NULL,
    )
    op.create_index("ix_users_external_user_id", "users", ["external_user_id"])
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])


def downgrade() -> None:
    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_index("ix_users_external_user_id", table_name="users")
    op.drop_index("ix_users_email_unique", table_name="users")
    op.drop_table("users")
