"""Create users, leads, cases, customers, disbursements, audit and counter tables"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_crm_schema"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _created_at(**kwargs) -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, **kwargs)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _addresses() -> list[sa.Column]:
    return [
        sa.Column("permanent_address", sa.Text(), nullable=True),
        sa.Column("current_address", sa.Text(), nullable=True),
        sa.Column("site_address", sa.Text(), nullable=True),
        sa.Column("office_address", sa.Text(), nullable=True),
        sa.Column("pan", sa.String(length=20), nullable=True),
        sa.Column("aadhar", sa.String(length=20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="viewer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "customers",
        _uuid("id", primary_key=True),
        sa.Column("customer_id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("mobile", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("channel_partner", sa.String(length=255), nullable=True),
        sa.Column("bank_name", sa.String(length=255), nullable=True),
        sa.Column("branch", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
        sa.Column("pan", sa.String(length=20), nullable=True),
        sa.Column("aadhar", sa.String(length=20), nullable=True),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_customers_customer_id", "customers", ["customer_id"], unique=True)
    op.create_index("ix_customers_bank_name", "customers", ["bank_name"])
    op.create_index("ix_customers_status", "customers", ["status"])
    op.create_index("ix_customers_created_at", "customers", ["created_at"])

    op.create_table(
        "leads",
        _uuid("id", primary_key=True),
        sa.Column("lead_id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("mobile", sa.String(length=32), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("source", sa.String(length=100), nullable=True),
        sa.Column("lead_type", sa.String(length=100), nullable=False),
        sa.Column("sub_type", sa.String(length=100), nullable=True),
        sa.Column("gd_status", sa.String(length=32), nullable=False, server_default="Pending"),
        sa.Column("bank", sa.String(length=255), nullable=True),
        sa.Column("branch", sa.String(length=255), nullable=True),
        sa.Column("channel_partner", sa.String(length=255), nullable=True),
        sa.Column("requirement_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("sanctioned_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("workflow_status", sa.String(length=32), nullable=False, server_default="FreePool"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="free_pool"),
        _uuid("assigned_to_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_addresses(),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_leads_lead_id", "leads", ["lead_id"], unique=True)
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    op.create_table(
        "cases",
        _uuid("id", primary_key=True),
        sa.Column("case_id", sa.String(length=32), nullable=False),
        sa.Column("lead_id", sa.String(length=32), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("mobile", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("applicant2_name", sa.String(length=255), nullable=True),
        sa.Column("applicant2_mobile", sa.String(length=32), nullable=True),
        sa.Column("applicant2_email", sa.String(length=255), nullable=True),
        sa.Column("lead_type", sa.String(length=100), nullable=True),
        sa.Column("sub_type", sa.String(length=100), nullable=True),
        sa.Column("loan_type", sa.String(length=64), nullable=False, server_default="Home Loan"),
        sa.Column("requirement_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("disbursed_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("bank", sa.String(length=255), nullable=True),
        sa.Column("branch", sa.String(length=255), nullable=True),
        sa.Column("channel_partner", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("task", sa.String(length=64), nullable=True),
        *_addresses(),
        _uuid("customer_id", sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        _uuid("assigned_to_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_cases_case_id", "cases", ["case_id"], unique=True)
    op.create_index("ix_cases_lead_id", "cases", ["lead_id"])
    op.create_index("ix_cases_task", "cases", ["task"])
    op.create_index("ix_cases_created_at", "cases", ["created_at"])

    op.create_table(
        "case_audits",
        _uuid("id", primary_key=True),
        _uuid("case_id", sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        _uuid("actor_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("from_status", sa.String(length=64), nullable=True),
        sa.Column("to_status", sa.String(length=64), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_case_audits_case_id", "case_audits", ["case_id"])

    op.create_table(
        "disbursements",
        _uuid("id", primary_key=True),
        _uuid("customer_id", sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        _created_at(),
    )
    op.create_index("ix_disbursements_customer_id", "disbursements", ["customer_id"])

    op.create_table(
        "audit_logs",
        _uuid("id", primary_key=True),
        _uuid("actor_id", nullable=True),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("entity_id", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("ip", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("user_agent", sa.String(length=512), nullable=False, server_default=""),
        _created_at(),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "counters",
        sa.Column("name", sa.String(length=64), primary_key=True),
        sa.Column("seq", sa.Integer(), nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("counters")
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_disbursements_customer_id", table_name="disbursements")
    op.drop_table("disbursements")
    op.drop_index("ix_case_audits_case_id", table_name="case_audits")
    op.drop_table("case_audits")
    op.drop_index("ix_cases_created_at", table_name="cases")
    op.drop_index("ix_cases_task", table_name="cases")
    op.drop_index("ix_cases_lead_id", table_name="cases")
    op.drop_index("ix_cases_case_id", table_name="cases")
    op.drop_table("cases")
    op.drop_index("ix_leads_created_at", table_name="leads")
    op.drop_index("ix_leads_status", table_name="leads")
    op.drop_index("ix_leads_lead_id", table_name="leads")
    op.drop_table("leads")
    op.drop_index("ix_customers_created_at", table_name="customers")
    op.drop_index("ix_customers_status", table_name="customers")
    op.drop_index("ix_customers_bank_name", table_name="customers")
    op.drop_index("ix_customers_customer_id", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
