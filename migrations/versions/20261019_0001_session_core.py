"""session core: principals, realm sessions, admin audit and purchases

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _session_table(name: str, fk_column: str, principal_table: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("session_token", sa.String(length=128), nullable=False),
        sa.Column(fk_column, sa.String(length=36), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *extra,
        _created_at(),
        sa.ForeignKeyConstraint([fk_column], [f"{principal_table}.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(f"ix_{name}_session_token", name, ["session_token"], unique=True)
    op.create_index(f"ix_{name}_{fk_column}", name, [fk_column], unique=False)


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_users_username", "admin_users", ["username"], unique=True)

    _session_table(
        "admin_sessions",
        "admin_user_id",
        "admin_users",
        sa.Column("ip_address", sa.String(length=64), nullable=False, server_default="unknown"),
        sa.Column("user_agent", sa.Text(), nullable=False, server_default="unknown"),
    )

    op.create_table(
        "admin_audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("admin_user_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=40), nullable=False),
        sa.Column("entity_type", sa.String(length=60), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=False, server_default="unknown"),
        sa.Column("user_agent", sa.Text(), nullable=False, server_default="unknown"),
        _created_at(),
        sa.ForeignKeyConstraint(["admin_user_id"], ["admin_users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "affiliates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("cpf", sa.String(length=11), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("whatsapp", sa.String(length=32), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("referral_code", sa.String(length=16), nullable=False),
        sa.Column("sponsor_id", sa.String(length=36), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_access_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["sponsor_id"], ["affiliates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_affiliates_email"),
        sa.UniqueConstraint("referral_code", name="uq_affiliates_referral_code"),
    )
    op.create_index("ix_affiliates_cpf", "affiliates", ["cpf"], unique=True)
    op.create_index("ix_affiliates_sponsor_id", "affiliates", ["sponsor_id"], unique=False)

    _session_table("affiliate_sessions", "affiliate_id", "affiliates")

    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("razao_social", sa.String(length=255), nullable=False),
        sa.Column("nome_fantasia", sa.String(length=255), nullable=False),
        sa.Column("cnpj", sa.String(length=18), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("telefone", sa.String(length=32), nullable=False),
        sa.Column("responsavel", sa.String(length=255), nullable=False),
        sa.Column("senha_hash", sa.String(length=255), nullable=False),
        sa.Column("endereco", sa.Text(), nullable=False, server_default=""),
        sa.Column("site_instagram", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("cashback_percentage", sa.Numeric(5, 2), nullable=False, server_default="5.0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_companies_email"),
    )
    op.create_index("ix_companies_cnpj", "companies", ["cnpj"], unique=False)

    _session_table("company_sessions", "company_id", "companies")

    op.create_table(
        "company_cashiers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("cpf", sa.String(length=14), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_access_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_company_cashiers_company_id", "company_cashiers", ["company_id"], unique=False)
    op.create_index("ix_company_cashiers_cpf", "company_cashiers", ["cpf"], unique=False)

    _session_table("cashier_sessions", "cashier_id", "company_cashiers")

    op.create_table(
        "company_purchases",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column("cashier_id", sa.String(length=36), nullable=True),
        sa.Column("customer_coupon", sa.String(length=32), nullable=False),
        sa.Column("purchase_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("cashback_generated", sa.Numeric(12, 2), nullable=False, server_default="0"),
        _created_at(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cashier_id"], ["company_cashiers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_company_purchases_customer_coupon", "company_purchases", ["customer_coupon"], unique=False)
    op.create_index(
        "ix_company_purchases_company_created_at",
        "company_purchases",
        ["company_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("company_purchases")
    op.drop_table("cashier_sessions")
    op.drop_table("company_cashiers")
    op.drop_table("company_sessions")
    op.drop_table("companies")
    op.drop_table("affiliate_sessions")
    op.drop_table("affiliates")
    op.drop_table("admin_audit_logs")
    op.drop_table("admin_sessions")
    op.drop_table("admin_users")
