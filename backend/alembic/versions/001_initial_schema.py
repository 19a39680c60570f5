"""Initial schema for bot personality provisioning

Revision ID: 001
Revises:
Create Date: 2026-10-18

WHAT: Creates tenants, users, messaging sessions, n8n workflow cache,
knowledge base, bot personalities and the audit log.

HOW: UUID primary keys are String(36) so the same schema runs on
PostgreSQL and SQLite. Enum columns store member names, matching the
SQLAlchemy Enum defaults used by the models.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'])
    op.create_index('ix_organizations_name', 'organizations', ['name'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'AGENT', name='userrole'), nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_org_id', 'users', ['org_id'])

    op.create_table(
        'n8n_workflows',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('workflow_id', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('INACTIVE', 'ACTIVE', 'ERROR', name='n8nworkflowstatus'),
            nullable=False,
        ),
        sa.Column('is_enabled', sa.Boolean(), nullable=True),
        sa.Column('nodes', sa.JSON(), nullable=True),
        sa.Column('workflow_data', sa.JSON(), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_n8n_workflows_org_id', 'n8n_workflows', ['org_id'])
    op.create_index('ix_n8n_workflows_workflow_id', 'n8n_workflows', ['workflow_id'])

    op.create_table(
        'messaging_sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('session_name', sa.String(255), nullable=False),
        sa.Column('phone_number', sa.String(32), nullable=True),
        sa.Column(
            'status',
            sa.Enum('STARTING', 'SCAN_QR', 'WORKING', 'FAILED', 'STOPPED', name='sessionstatus'),
            nullable=False,
        ),
        sa.Column('is_connected', sa.Boolean(), nullable=True),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.Column(
            'n8n_workflow_id',
            sa.String(36),
            sa.ForeignKey('n8n_workflows.id', ondelete='SET NULL'),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index('ix_messaging_sessions_org_id', 'messaging_sessions', ['org_id'])

    op.create_table(
        'knowledge_base_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('language', sa.String(20), nullable=True),
        sa.Column(
            'status',
            sa.Enum('DRAFT', 'PUBLISHED', 'ARCHIVED', name='knowledgeitemstatus'),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index('ix_knowledge_base_items_org_id', 'knowledge_base_items', ['org_id'])

    op.create_table(
        'knowledge_qa_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'knowledge_item_id',
            sa.String(36),
            sa.ForeignKey('knowledge_base_items.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('context', sa.Text(), nullable=True),
        sa.Column('keywords', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'ix_knowledge_qa_items_knowledge_item_id', 'knowledge_qa_items', ['knowledge_item_id']
    )

    op.create_table(
        'bot_personalities',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('language', sa.String(20), nullable=True),
        sa.Column('formality_level', sa.String(20), nullable=True),
        sa.Column('response_delay_ms', sa.Integer(), nullable=True),
        sa.Column('max_response_length', sa.Integer(), nullable=True),
        sa.Column('confidence_threshold', sa.Numeric(3, 2), nullable=True),
        sa.Column('typing_indicator', sa.Boolean(), nullable=True),
        sa.Column('enable_small_talk', sa.Boolean(), nullable=True),
        sa.Column('learning_enabled', sa.Boolean(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=True),
        sa.Column('system_message', sa.Text(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('CREATING', 'ACTIVE', 'CANCELLED', 'ERROR', name='botpersonalitystatus'),
            nullable=False,
        ),
        sa.Column(
            'messaging_session_id',
            sa.String(36),
            sa.ForeignKey('messaging_sessions.id'),
            nullable=False,
        ),
        sa.Column(
            'knowledge_base_item_id',
            sa.String(36),
            sa.ForeignKey('knowledge_base_items.id'),
            nullable=False,
        ),
        sa.Column(
            'n8n_workflow_id', sa.String(36), sa.ForeignKey('n8n_workflows.id'), nullable=False
        ),
        *_timestamps(),
    )
    op.create_index('ix_bot_personalities_org_id', 'bot_personalities', ['org_id'])
    op.create_index('ix_bot_personalities_code', 'bot_personalities', ['code'])
    op.create_index('ix_bot_personalities_status', 'bot_personalities', ['status'])
    op.create_index(
        'ix_bot_personalities_messaging_session_id', 'bot_personalities', ['messaging_session_id']
    )
    op.create_index(
        'ix_bot_personalities_knowledge_base_item_id',
        'bot_personalities',
        ['knowledge_base_item_id'],
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'actor_user_id',
            sa.Integer(),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'action',
            sa.Enum(
                'CREATE',
                'UPDATE',
                'DELETE',
                'WORKFLOW_EXECUTED',
                'WORKFLOW_RETRIED',
                'WORKFLOW_CANCELLED',
                name='auditaction',
            ),
            nullable=False,
        ),
        sa.Column('resource_type', sa.String(100), nullable=False),
        sa.Column('resource_id', sa.String(64), nullable=True),
        sa.Column(
            'org_id',
            sa.Integer(),
            sa.ForeignKey('organizations.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_type', 'audit_logs', ['resource_type'])
    op.create_index('ix_audit_logs_resource_id', 'audit_logs', ['resource_id'])
    op.create_index('ix_audit_logs_org_id', 'audit_logs', ['org_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('bot_personalities')
    op.drop_table('knowledge_qa_items')
    op.drop_table('knowledge_base_items')
    op.drop_table('messaging_sessions')
    op.drop_table('n8n_workflows')
    op.drop_table('users')
    op.drop_table('organizations')

    for enum_name in (
        'auditaction',
        'botpersonalitystatus',
        'knowledgeitemstatus',
        'sessionstatus',
        'n8nworkflowstatus',
        'userrole',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
