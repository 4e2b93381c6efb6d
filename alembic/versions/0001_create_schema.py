from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("tenants"):
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("business_name", sa.String(), nullable=False),
            sa.Column("business_code", sa.String(length=32), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_tenants_business_code", "tenants", ["business_code"], unique=True)

    if not inspector.has_table("staff_accounts"):
        op.create_table(
            "staff_accounts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(), nullable=False),
            sa.Column("role", sa.String(), nullable=False, server_default="delivery"),
            sa.Column("staff_code", sa.String(length=32), nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("password_hash", sa.String(), nullable=True),
            sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("pin_hash", sa.String(), nullable=True),
            sa.Column("must_change_pin", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("pin_set_at", sa.DateTime(), nullable=True),
            sa.Column("pin_changed_at", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("tenant_id", "staff_code", name="uq_staff_accounts_tenant_staff_code"),
        )
        op.create_index("ix_staff_accounts_id", "staff_accounts", ["id"], unique=False)
        op.create_index("ix_staff_accounts_tenant_id", "staff_accounts", ["tenant_id"], unique=False)
        op.create_index("ix_staff_accounts_email", "staff_accounts", ["email"], unique=False)

    if not inspector.has_table("pin_attempts"):
        op.create_table(
            "pin_attempts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("staff_id", sa.Integer(), nullable=True),
            sa.Column("failed_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("first_failed_at", sa.DateTime(), nullable=True),
            sa.Column("last_failed_at", sa.DateTime(), nullable=True),
            sa.Column("locked_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("tenant_id", "staff_id", name="uq_pin_attempts_tenant_staff"),
        )
        op.create_index("ix_pin_attempts_id", "pin_attempts", ["id"], unique=False)
        op.create_index("ix_pin_attempts_tenant_id", "pin_attempts", ["tenant_id"], unique=False)
        op.create_index("ix_pin_attempts_staff_id", "pin_attempts", ["staff_id"], unique=False)

    if not inspector.has_table("audit_log"):
        op.create_table(
            "audit_log",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("entity_type", sa.String(), nullable=True),
            sa.Column("entity_id", sa.Integer(), nullable=True),
            sa.Column("meta_json", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_audit_log_id", "audit_log", ["id"], unique=False)
        op.create_index("ix_audit_log_tenant_id", "audit_log", ["tenant_id"], unique=False)
        op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"], unique=False)


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("pin_attempts")
    op.drop_table("staff_accounts")
    op.drop_table("tenants")
