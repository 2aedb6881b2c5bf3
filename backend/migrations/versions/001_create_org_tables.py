"""Create orgs and org_members tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Reusable updated_at trigger function
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
          NEW.updated_at = NOW();
          RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.create_table(
        'orgs',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('external_ref', sa.Text(), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('kind', sa.Text(), server_default='client', nullable=False),
        sa.Column('parent_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['parent_org_id'], ['orgs.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('external_ref', name='uq_orgs_external_ref'),
        sa.CheckConstraint("kind IN ('agency', 'client')", name='ck_orgs_kind')
    )

    # Org kind never changes after insert
    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_org_kind_change()
        RETURNS TRIGGER AS $$
        BEGIN
          IF NEW.kind <> OLD.kind THEN
            RAISE EXCEPTION 'Org kind cannot change after creation';
          END IF;
          RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER orgs_kind_immutable
        BEFORE UPDATE ON orgs
        FOR EACH ROW
        EXECUTE FUNCTION prevent_org_kind_change();
    """)

    op.create_table(
        'org_members',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), server_default='member', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('org_id', 'user_id', name='uq_org_members_org_user'),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name='ck_org_members_role')
    )
    op.create_index('ix_org_members_user_id', 'org_members', ['user_id'])


def downgrade():
    op.drop_index('ix_org_members_user_id', table_name='org_members')
    op.drop_table('org_members')

    op.execute('DROP TRIGGER IF EXISTS orgs_kind_immutable ON orgs')
    op.execute('DROP FUNCTION IF EXISTS prevent_org_kind_change()')
    op.drop_table('orgs')
