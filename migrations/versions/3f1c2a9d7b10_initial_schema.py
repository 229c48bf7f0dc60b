"""initial schema: users, certificates, audit log

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2025-11-03 10:12:44.018233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('STUDENT', 'PEDAGOGY', 'SECRETARIAT', 'ADMIN',
                    name='userrole')
certificate_status = sa.Enum('PENDING', 'APPROVED_BY_PEDAGOGY',
                             'APPROVED_BY_SECRETARIAT', 'APPROVED', 'REJECTED',
                             name='certificatestatus')
audit_action = sa.Enum('CREATE', 'UPDATE', 'DELETE', name='auditaction')


def upgrade():
    op.create_table(
        'user',
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('hashed_password', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('ra', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('employee_register', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('phone', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('course', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('period', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('class_group', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)
    op.create_index(op.f('ix_user_role'), 'user', ['role'], unique=False)
    op.create_index(op.f('ix_user_ra'), 'user', ['ra'], unique=True)
    op.create_index(op.f('ix_user_employee_register'), 'user',
                    ['employee_register'], unique=True)

    op.create_table(
        'certificate',
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('days_off', sa.Integer(), nullable=False),
        sa.Column('reason', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('image_url', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('image_path', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('status', certificate_status, nullable=False),
        sa.Column('pedagogy_approved_by', sa.Uuid(), nullable=True),
        sa.Column('pedagogy_approved_at', sa.DateTime(), nullable=True),
        sa.Column('secretariat_approved_by', sa.Uuid(), nullable=True),
        sa.Column('secretariat_approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_by', sa.Uuid(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('admin_note', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['user.id']),
        sa.ForeignKeyConstraint(['pedagogy_approved_by'], ['user.id']),
        sa.ForeignKeyConstraint(['secretariat_approved_by'], ['user.id']),
        sa.ForeignKeyConstraint(['rejected_by'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_certificate_owner_id'), 'certificate',
                    ['owner_id'], unique=False)
    op.create_index(op.f('ix_certificate_status'), 'certificate',
                    ['status'], unique=False)

    op.create_table(
        'auditlog',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_user_id', sa.Uuid(), nullable=False),
        sa.Column('entity_type', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('action', audit_action, nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('ip_address', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_auditlog_actor_user_id'), 'auditlog',
                    ['actor_user_id'], unique=False)
    op.create_index(op.f('ix_auditlog_entity_id'), 'auditlog',
                    ['entity_id'], unique=False)
    op.create_index(op.f('ix_auditlog_timestamp'), 'auditlog',
                    ['timestamp'], unique=False)


def downgrade():
    op.drop_table('auditlog')
    op.drop_table('certificate')
    op.drop_table('user')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        audit_action.drop(bind, checkfirst=True)
        certificate_status.drop(bind, checkfirst=True)
        user_role.drop(bind, checkfirst=True)
