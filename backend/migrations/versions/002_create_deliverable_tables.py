"""Create deliverable, asset, checklist and activity tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 11:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'deliverables',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), server_default='general', nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), server_default='planned', nullable=False),
        sa.Column('progress', sa.Integer(), server_default='0', nullable=False),
        sa.Column('client_visible', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('archived', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('created_by', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "status IN ('planned', 'in_progress', 'in_review', 'approved', "
            "'complete', 'blocked', 'revisions_requested')",
            name='ck_deliverables_status'
        ),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name='ck_deliverables_progress')
    )
    op.create_index('ix_deliverables_org_id', 'deliverables', ['org_id'])
    op.create_index('ix_deliverables_org_id_status', 'deliverables', ['org_id', 'status'])

    op.execute("""
        CREATE TRIGGER update_deliverables_updated_at
        BEFORE UPDATE ON deliverables
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column();
    """)

    op.create_table(
        'deliverable_assets',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('deliverable_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('kind', sa.Text(), server_default='file', nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('is_required_proof', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('proof_type', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['deliverable_id'], ['deliverables.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE')
    )
    op.create_index('ix_deliverable_assets_deliverable_id', 'deliverable_assets', ['deliverable_id'])

    op.create_table(
        'deliverable_checklist_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('deliverable_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('is_done', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('order_index', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['deliverable_id'], ['deliverables.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE')
    )

    op.create_table(
        'deliverable_activity_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('deliverable_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_id', sa.Text(), nullable=True),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['deliverable_id'], ['deliverables.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE')
    )
    op.create_index(
        'ix_deliverable_activity_org_id_created_at',
        'deliverable_activity_log',
        ['org_id', sa.text('created_at DESC')]
    )


def downgrade():
    op.drop_index('ix_deliverable_activity_org_id_created_at', table_name='deliverable_activity_log')
    op.drop_table('deliverable_activity_log')
    op.drop_table('deliverable_checklist_items')
    op.drop_index('ix_deliverable_assets_deliverable_id', table_name='deliverable_assets')
    op.drop_table('deliverable_assets')

    op.execute('DROP TRIGGER IF EXISTS update_deliverables_updated_at ON deliverables')
    op.drop_index('ix_deliverables_org_id_status', table_name='deliverables')
    op.drop_index('ix_deliverables_org_id', table_name='deliverables')
    op.drop_table('deliverables')
