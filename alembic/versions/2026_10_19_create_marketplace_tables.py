from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "5c1d7e0a9b42"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("user", "owner", "admin", name="userrole")
property_type = sa.Enum("apartment", "house", "villa", "condo", name="propertytype")
property_status = sa.Enum("pending", "approved", "rejected", "published", "sold", name="propertystatus")
booking_status = sa.Enum("pending", "approved", "rejected", "completed", name="bookingstatus")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255)),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("phone", sa.String(30)),
        sa.Column("verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("role", user_role, nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "owners",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("id_proof_number", sa.String(100), nullable=False),
        sa.Column("id_proof_type", sa.String(50), nullable=False),
        sa.Column("id_proof_image_url", sa.String(500), nullable=False),
        sa.Column("verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("owners.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("address", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("state", sa.String(100)),
        sa.Column("country", sa.String(100)),
        sa.Column("lat", sa.Float),
        sa.Column("lng", sa.Float),
        sa.Column("rent", sa.Numeric(12, 2), nullable=False),
        sa.Column("deposit", sa.Numeric(12, 2)),
        sa.Column("property_type", property_type),
        sa.Column("bedrooms", sa.Integer),
        sa.Column("bathrooms", sa.Integer),
        sa.Column("area", sa.Float),
        sa.Column("amenities", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("images", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("status", property_status, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_city", "properties", ["city"])
    op.create_index("ix_properties_rent", "properties", ["rent"])
    op.create_index("ix_properties_property_type", "properties", ["property_type"])
    op.create_index("ix_properties_status", "properties", ["status"])

    op.create_table(
        "owner_properties",
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("owners.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer, nullable=False),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("visit_date", sa.Date, nullable=False),
        sa.Column("time_slot", sa.String(50), nullable=False),
        sa.Column("status", booking_status, nullable=False, server_default="pending"),
        sa.Column("message", sa.Text),
        sa.Column("time_change_requested", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("time_change_reason", sa.Text),
        sa.Column("time_change_suggested_slots", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("time_change_requested_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_property_id", "bookings", ["property_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_user_property", "bookings", ["user_id", "property_id"])

    op.create_table(
        "wishlist_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "property_id", name="uq_wishlist_user_property"),
    )
    op.create_index("ix_wishlist_items_user_id", "wishlist_items", ["user_id"])


def downgrade():
    op.drop_table("wishlist_items")
    op.drop_table("bookings")
    op.drop_table("owner_properties")
    op.drop_table("properties")
    op.drop_table("owners")
    op.drop_table("users")
    for enum_type in (booking_status, property_status, property_type, user_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
