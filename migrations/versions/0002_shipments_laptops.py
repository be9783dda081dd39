"""shipments, laptops and reception reports

Revision ID: 0002_shipments_laptops
Revises: 0001_initial
Create Date: 2025-01-07 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_shipments_laptops"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def upgrade() -> None:
    op.create_table(
        "shipments",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shipment_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("client_company_id", GUID(), sa.ForeignKey("client_companies.id"), nullable=False),
        sa.Column("software_engineer_id", GUID(), sa.ForeignKey("software_engineers.id"), nullable=True),
        sa.Column("laptop_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("jira_ticket_number", sa.String(length=50), nullable=False),
        sa.Column("courier_name", sa.String(length=50), nullable=True),
        sa.Column("tracking_number", sa.String(length=100), nullable=True),
        sa.Column("second_tracking_number", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("delivery_details", sa.JSON(), nullable=True),
        sa.Column("pickup_scheduled_date", sa.DateTime(), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(), nullable=True),
        sa.Column("arrived_warehouse_at", sa.DateTime(), nullable=True),
        sa.Column("released_warehouse_at", sa.DateTime(), nullable=True),
        sa.Column("eta_to_engineer", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_user_id", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_shipments_client_company_id", "shipments", ["client_company_id"], unique=False)
    op.create_index("ix_shipments_software_engineer_id", "shipments", ["software_engineer_id"], unique=False)
    op.create_index("ix_shipments_status_type", "shipments", ["status", "shipment_type"], unique=False)

    op.create_table(
        "laptops",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("serial_number", sa.String(length=100), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("model", sa.String(length=200), nullable=True),
        sa.Column("cpu", sa.String(length=100), nullable=True),
        sa.Column("ram_gb", sa.String(length=20), nullable=True),
        sa.Column("ssd_gb", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("client_company_id", GUID(), sa.ForeignKey("client_companies.id"), nullable=True),
        sa.Column("software_engineer_id", GUID(), sa.ForeignKey("software_engineers.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_laptops_serial_number", "laptops", ["serial_number"], unique=True)
    op.create_index("ix_laptops_client_company_id", "laptops", ["client_company_id"], unique=False)
    op.create_index("ix_laptops_software_engineer_id", "laptops", ["software_engineer_id"], unique=False)

    op.create_table(
        "shipment_laptops",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shipment_id", GUID(), sa.ForeignKey("shipments.id"), nullable=False),
        sa.Column("laptop_id", GUID(), sa.ForeignKey("laptops.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("shipment_id", "laptop_id", name="uq_shipment_laptops_pair"),
    )
    op.create_index("ix_shipment_laptops_shipment_id", "shipment_laptops", ["shipment_id"], unique=False)
    op.create_index("ix_shipment_laptops_laptop_id", "shipment_laptops", ["laptop_id"], unique=False)
    op.create_index(
        "uq_shipment_laptops_active_laptop",
        "shipment_laptops",
        ["laptop_id"],
        unique=True,
        sqlite_where=sa.text("is_active"),
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "pickup_forms",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shipment_id", GUID(), sa.ForeignKey("shipments.id"), nullable=False),
        sa.Column("submitted_by_user_id", GUID(), nullable=True),
        sa.Column("form_data", sa.JSON(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_pickup_forms_shipment_id", "pickup_forms", ["shipment_id"], unique=True)

    op.create_table(
        "reception_reports",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("laptop_id", GUID(), sa.ForeignKey("laptops.id"), nullable=False),
        sa.Column("shipment_id", GUID(), sa.ForeignKey("shipments.id"), nullable=True),
        sa.Column("client_company_id", GUID(), nullable=True),
        sa.Column("tracking_number", sa.String(length=100), nullable=True),
        sa.Column("warehouse_user_id", GUID(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("photo_serial_number", sa.String(length=500), nullable=False),
        sa.Column("photo_external_condition", sa.String(length=500), nullable=False),
        sa.Column("photo_working_condition", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("approved_by", GUID(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_reception_reports_laptop_id", "reception_reports", ["laptop_id"], unique=False)
    op.create_index("ix_reception_reports_shipment_id", "reception_reports", ["shipment_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_reception_reports_shipment_id", table_name="reception_reports")
    op.drop_index("ix_reception_reports_laptop_id", table_name="reception_reports")
    op.drop_table("reception_reports")
    op.drop_index("ix_pickup_forms_shipment_id", table_name="pickup_forms")
    op.drop_table("pickup_forms")
    op.drop_index("uq_shipment_laptops_active_laptop", table_name="shipment_laptops")
    op.drop_index("ix_shipment_laptops_laptop_id", table_name="shipment_laptops")
    op.drop_index("ix_shipment_laptops_shipment_id", table_name="shipment_laptops")
    op.drop_table("shipment_laptops")
    op.drop_index("ix_laptops_software_engineer_id", table_name="laptops")
    op.drop_index("ix_laptops_client_company_id", table_name="laptops")
    op.drop_index("ix_laptops_serial_number", table_name="laptops")
    op.drop_table("laptops")
    op.drop_index("ix_shipments_status_type", table_name="shipments")
    op.drop_index("ix_shipments_software_engineer_id", table_name="shipments")
    op.drop_index("ix_shipments_client_company_id", table_name="shipments")
    op.drop_table("shipments")
