"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _tenant_id():
    return sa.Column(
        "tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True,
    )


def upgrade() -> None:
    # Businesses
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(63), unique=True, nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("primary_color", sa.String(20), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Logins
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("username", sa.String(50), nullable=False, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="STAFF"),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "username", name="uq_users_tenant_username"),
    )

    # Menu
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL"),
                  nullable=True, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("tag", sa.String(50), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "product_options",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("extra_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )

    # Loyalty members (orders reference them)
    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False, index=True),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("used_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_spent", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_visit_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "phone", name="uq_members_tenant_phone"),
    )
    op.create_table(
        "loyalty_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("points_per_currency", sa.Numeric(10, 2), nullable=False, server_default="1"),
        sa.Column("point_value", sa.Numeric(10, 4), nullable=False, server_default="0.10"),
        sa.Column("min_redeem_points", sa.Integer(), nullable=False, server_default="50"),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", name="uq_loyalty_settings_tenant"),
    )

    # Orders
    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        _tenant_id(),
        sa.Column("user_id", sa.String(64), nullable=True, index=True),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("table_num", sa.Integer(), nullable=False, index=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="waiting", index=True),
        sa.Column("payment_type", sa.String(20), nullable=False, server_default="cash"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"),
                  nullable=True, index=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_orders_tenant_table_status", "orders", ["tenant_id", "table_num", "status"])

    op.create_table(
        "point_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("order_id", sa.String(36), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    # Seating
    op.create_table(
        "table_areas",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "dining_tables",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("table_num", sa.Integer(), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("area_id", sa.Integer(), sa.ForeignKey("table_areas.id", ondelete="CASCADE"),
                  nullable=True, index=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "table_num", name="uq_dining_tables_tenant_num"),
    )

    # Running accounts
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("name", sa.String(200), nullable=False, index=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "account_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("table_num", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    # Staff
    op.create_table(
        "staff",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"),
                  nullable=True, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("pin_hash", sa.String(255), nullable=True),
        sa.Column("work_days", sa.JSON(), nullable=False),
        sa.Column("shift_start", sa.String(5), nullable=False, server_default="09:00"),
        sa.Column("shift_end", sa.String(5), nullable=False, server_default="23:00"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "username", name="uq_staff_tenant_username"),
    )
    op.create_table(
        "staff_permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("perm_key", sa.String(50), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("staff_id", "perm_key", name="uq_staff_permissions_key"),
    )

    # Activity log
    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("table_num", sa.Integer(), nullable=False, index=True),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_type", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )

    # Settings and printers
    op.create_table(
        "tenant_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("card_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("cash_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("pos_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sound_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("waiter_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("auto_print_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paper_size", sa.String(2), nullable=False, server_default="80"),
        sa.Column("printer_name", sa.String(100), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", name="uq_tenant_settings_tenant"),
    )
    op.create_table(
        "printers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("port", sa.Integer(), nullable=False, server_default="9100"),
        sa.Column("paper_size", sa.String(2), nullable=False, server_default="80"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("auto_print_categories", sa.JSON(), nullable=False),
        sa.Column("header_text", sa.Text(), nullable=True),
        sa.Column("footer_text", sa.Text(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("printers")
    op.drop_table("tenant_settings")
    op.drop_table("activity_log")
    op.drop_table("staff_permissions")
    op.drop_table("staff")
    op.drop_table("account_transactions")
    op.drop_table("accounts")
    op.drop_table("dining_tables")
    op.drop_table("table_areas")
    op.drop_table("point_transactions")
    op.drop_index("ix_orders_tenant_table_status", table_name="orders")
    op.drop_table("orders")
    op.drop_table("loyalty_settings")
    op.drop_table("members")
    op.drop_table("product_options")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("users")
    op.drop_table("tenants")
