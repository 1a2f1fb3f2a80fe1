"""Initial vicidash schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Agent (natural key: VICIdial user)
    op.create_table(
        "agent",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user", sa.String(100), nullable=False),
        sa.Column("full_name", sa.String(200)),
        sa.Column("user_group", sa.String(100)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_agent_user", "agent", ["user"], unique=True)

    # Campaign (natural key: VICIdial campaign code)
    op.create_table(
        "campaign",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.String(100), nullable=False),
        sa.Column("campaign_name", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_campaign_campaign_id", "campaign", ["campaign_id"], unique=True)

    # AgentCampaign
    op.create_table(
        "agent_campaign",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.Integer, sa.ForeignKey("agent.id", ondelete="CASCADE"), nullable=False),
        sa.Column("campaign_id", sa.Integer, sa.ForeignKey("campaign.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("agent_id", "campaign_id", name="uq_agent_campaign"),
    )
    op.create_index("ix_agent_campaign_agent_id", "agent_campaign", ["agent_id"])
    op.create_index("ix_agent_campaign_campaign_id", "agent_campaign", ["campaign_id"])


def downgrade() -> None:
    op.drop_table("agent_campaign")
    op.drop_table("campaign")
    op.drop_table("agent")
