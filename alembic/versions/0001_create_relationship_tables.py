"""create relationship, messaging and notification tables

Revision ID: 0001_relationship_tables
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001_relationship_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Profile tables read by the connection listings
    op.create_table('schools',
        sa.Column('school_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('school_name', sa.String(length=200), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('school_id')
    )
    op.create_index(op.f('ix_schools_school_name'), 'schools', ['school_name'])
    op.create_index(op.f('ix_schools_created_at'), 'schools', ['created_at'])

    op.create_table('users',
        sa.Column('user_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='alumni'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('profile_picture', sa.String(length=500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('current_city', sa.String(length=100), nullable=True),
        sa.Column('current_country', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_role_active', 'users', ['role', 'is_active'])
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'])

    op.create_table('school_admins',
        sa.Column('admin_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('school_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['school_id'], ['schools.school_id'], ),
        sa.PrimaryKeyConstraint('admin_id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_school_admins_school_id'), 'school_admins', ['school_id'])
    op.create_index(op.f('ix_school_admins_created_at'), 'school_admins', ['created_at'])

    op.create_table('alumni_education',
        sa.Column('education_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('school_id', sa.Integer(), nullable=False),
        sa.Column('start_year', sa.Integer(), nullable=True),
        sa.Column('end_year', sa.Integer(), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['school_id'], ['schools.school_id'], ),
        sa.PrimaryKeyConstraint('education_id')
    )
    op.create_index(op.f('ix_alumni_education_user_id'), 'alumni_education', ['user_id'])
    op.create_index(op.f('ix_alumni_education_school_id'), 'alumni_education', ['school_id'])
    op.create_index(op.f('ix_alumni_education_created_at'), 'alumni_education', ['created_at'])

    op.create_table('work_experience',
        sa.Column('work_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('company_name', sa.String(length=200), nullable=False),
        sa.Column('position', sa.String(length=200), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('work_id')
    )
    op.create_index(op.f('ix_work_experience_user_id'), 'work_experience', ['user_id'])
    op.create_index(op.f('ix_work_experience_created_at'), 'work_experience', ['created_at'])

    # Relationships
    op.create_table('connections',
        sa.Column('connection_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('receiver_id', sa.Integer(), nullable=False),
        sa.Column('user_low_id', sa.Integer(), nullable=False),
        sa.Column('user_high_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['sender_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('connection_id'),
        sa.UniqueConstraint('user_low_id', 'user_high_id', name='uq_connections_pair'),
        sa.CheckConstraint('sender_id <> receiver_id', name='ck_connections_not_self')
    )
    op.create_index(op.f('ix_connections_sender_id'), 'connections', ['sender_id'])
    op.create_index(op.f('ix_connections_receiver_id'), 'connections', ['receiver_id'])
    op.create_index(op.f('ix_connections_created_at'), 'connections', ['created_at'])
    op.create_index('idx_connections_receiver_status', 'connections', ['receiver_id', 'status'])
    op.create_index('idx_connections_sender_status', 'connections', ['sender_id', 'status'])

    op.create_table('mentorship',
        sa.Column('mentorship_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mentor_id', sa.Integer(), nullable=False),
        sa.Column('mentee_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='requested'),
        sa.Column('area_of_guidance', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['mentor_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['mentee_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('mentorship_id')
    )
    op.create_index(op.f('ix_mentorship_mentor_id'), 'mentorship', ['mentor_id'])
    op.create_index(op.f('ix_mentorship_mentee_id'), 'mentorship', ['mentee_id'])
    op.create_index(op.f('ix_mentorship_created_at'), 'mentorship', ['created_at'])

    # Direct messages
    op.create_table('messages',
        sa.Column('message_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('receiver_id', sa.Integer(), nullable=False),
        sa.Column('message_text', sa.Text(), nullable=True),
        sa.Column('has_attachments', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_for_sender', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_for_receiver', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['sender_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id')
    )
    op.create_index(op.f('ix_messages_sender_id'), 'messages', ['sender_id'])
    op.create_index(op.f('ix_messages_receiver_id'), 'messages', ['receiver_id'])
    op.create_index(op.f('ix_messages_created_at'), 'messages', ['created_at'])
    op.create_index('idx_messages_pair_time', 'messages', ['sender_id', 'receiver_id', 'created_at'])
    op.create_index('idx_messages_unread', 'messages', ['receiver_id', 'is_read'])

    op.create_table('message_attachments',
        sa.Column('attachment_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('message_id', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_type', sa.String(length=20), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.message_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('attachment_id')
    )
    op.create_index(op.f('ix_message_attachments_message_id'), 'message_attachments', ['message_id'])
    op.create_index(op.f('ix_message_attachments_created_at'), 'message_attachments', ['created_at'])

    # Group chats
    op.create_table('group_chats',
        sa.Column('group_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_name', sa.String(length=100), nullable=False),
        sa.Column('group_description', sa.Text(), nullable=True),
        sa.Column('group_avatar', sa.String(length=500), nullable=True),
        sa.Column('group_type', sa.String(length=20), nullable=False, server_default='custom'),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.user_id'], ),
        sa.PrimaryKeyConstraint('group_id')
    )
    op.create_index(op.f('ix_group_chats_created_by'), 'group_chats', ['created_by'])
    op.create_index(op.f('ix_group_chats_created_at'), 'group_chats', ['created_at'])

    op.create_table('group_members',
        sa.Column('member_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=10), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_muted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('last_read_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['group_id'], ['group_chats.group_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('member_id'),
        sa.UniqueConstraint('group_id', 'user_id', name='uq_group_members_group_user')
    )
    op.create_index(op.f('ix_group_members_user_id'), 'group_members', ['user_id'])
    op.create_index(op.f('ix_group_members_created_at'), 'group_members', ['created_at'])
    op.create_index('idx_group_members_group_active', 'group_members', ['group_id', 'is_active'])

    op.create_table('group_messages',
        sa.Column('message_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('message_text', sa.Text(), nullable=True),
        sa.Column('has_attachments', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_by_sender', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_by_members', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['group_id'], ['group_chats.group_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id')
    )
    op.create_index(op.f('ix_group_messages_sender_id'), 'group_messages', ['sender_id'])
    op.create_index(op.f('ix_group_messages_created_at'), 'group_messages', ['created_at'])
    op.create_index('idx_group_messages_group_time', 'group_messages', ['group_id', 'created_at'])

    op.create_table('group_message_attachments',
        sa.Column('attachment_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('message_id', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_type', sa.String(length=20), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['group_messages.message_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('attachment_id')
    )
    op.create_index(op.f('ix_group_message_attachments_message_id'), 'group_message_attachments', ['message_id'])
    op.create_index(op.f('ix_group_message_attachments_created_at'), 'group_message_attachments', ['created_at'])

    op.create_table('notifications',
        sa.Column('notification_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('recipient_type', sa.String(length=20), nullable=False, server_default='user'),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_id', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('notification_id')
    )
    op.create_index(op.f('ix_notifications_created_at'), 'notifications', ['created_at'])
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'recipient_type', 'is_read'])
    op.create_index('idx_notifications_user_time', 'notifications', ['user_id', 'recipient_type', 'created_at'])


def downgrade() -> None:
    # Indexes go with their tables
    for table in (
        'notifications',
        'group_message_attachments',
        'group_messages',
        'group_members',
        'group_chats',
        'message_attachments',
        'messages',
        'mentorship',
        'connections',
        'work_experience',
        'alumni_education',
        'school_admins',
        'users',
        'schools',
    ):
        op.drop_table(table)
