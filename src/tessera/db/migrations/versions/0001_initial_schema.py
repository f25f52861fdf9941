"""Initial schema: admins, tenant hierarchy, identities

Creates admin_users, organizations, projects, applications, permissions,
identities, login_methods and user_accounts. All primary keys are
UUIDv7 values minted by the application (no server-side default).

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
    )

    # ─── Tenants ─────────────────────────────────────────
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("admin_users.id"), nullable=True),
        _created_at(),
    )
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("org_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "shared_identity_context", sa.Boolean(), nullable=False,
            server_default=sa.false(),
        ),
        _created_at(),
    )
    op.create_index("ix_projects_org_id", "projects", ["org_id"])

    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("client_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("client_secret_hash", sa.String(255), nullable=False),
        sa.Column("redirect_uris", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.CheckConstraint(
            "cardinality(redirect_uris) > 0", name="ck_applications_redirect_uris"
        ),
        _created_at(),
    )
    op.create_index("ix_applications_project_id", "applications", ["project_id"])

    op.create_table(
        "permissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Uuid(), sa.ForeignKey("applications.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("app_id", "name", name="uq_permissions_app_name"),
    )

    # ─── Identities ──────────────────────────────────────
    op.create_table(
        "identities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _created_at(),
    )
    op.create_table(
        "login_methods",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("identity_id", sa.Uuid(), sa.ForeignKey("identities.id"), nullable=False),
        sa.Column("method_type", sa.String(30), nullable=False),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint(
            "method_type", "identifier", name="uq_login_methods_type_identifier"
        ),
    )
    op.create_index("ix_login_methods_identity_id", "login_methods", ["identity_id"])

    op.create_table(
        "user_accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("identity_id", sa.Uuid(), sa.ForeignKey("identities.id"), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("local_profile_data", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "identity_id", "project_id", name="uq_user_accounts_identity_project"
        ),
    )
    op.create_index("ix_user_accounts_project_id", "user_accounts", ["project_id"])


def downgrade() -> None:
    op.drop_table("user_accounts")
    op.drop_table("login_methods")
    op.drop_table("identities")
    op.drop_table("permissions")
    op.drop_table("applications")
    op.drop_table("projects")
    op.drop_table("organizations")
    op.drop_table("admin_users")
