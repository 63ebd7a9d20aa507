"""create dreamers and dreams

Revision ID: 7f3a1c2d9e4b
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '7f3a1c2d9e4b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'dreamers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False),
        sa.Column('email_verification_token', sa.String(length=64), nullable=True),
        sa.Column('email_verification_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('password_reset_token', sa.String(length=64), nullable=True),
        sa.Column('password_reset_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False),
        sa.Column('lock_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('token_version', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=True),
        sa.Column('last_name', sa.String(length=50), nullable=True),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('onboarding_completed', sa.Boolean(), nullable=False),
        sa.Column('intro_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('journey_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('theme', sa.Enum('light', 'dark', 'auto', name='theme'), nullable=False),
        sa.Column(
            'animation_speed',
            sa.Enum('slow', 'normal', 'fast', name='animation_speed'),
            nullable=False,
        ),
        sa.Column(
            'shepherd_personality',
            sa.Enum('gentle', 'encouraging', 'wise', name='shepherd_personality'),
            nullable=False,
        ),
        sa.Column('notifications', sa.Boolean(), nullable=False),
        sa.Column('upgraded_from_intro_id', sa.String(length=64), nullable=True),
        sa.Column('upgraded_from_token', sa.String(length=64), nullable=True),
        sa.Column('upgraded_original_created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('upgraded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dream_count', sa.Integer(), nullable=False),
        sa.Column('goal_count', sa.Integer(), nullable=False),
        sa.Column('active_habits', sa.Integer(), nullable=False),
        sa.Column('last_active_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'),
            nullable=False,
        ),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_dreamers')),
        sa.UniqueConstraint('email', name='uq_dreamers_email'),
    )
    with op.batch_alter_table('dreamers', schema=None) as batch_op:
        batch_op.create_index(
            'ix_dreamers_password_reset_token', ['password_reset_token'], unique=False
        )
        batch_op.create_index(
            'ix_dreamers_email_verification_token', ['email_verification_token'], unique=False
        )

    op.create_table(
        'dreams',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('dreamer_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=220), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('vision', sa.Text(), nullable=False),
        sa.Column(
            'created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'),
            nullable=False,
        ),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ['dreamer_id'], ['dreamers.id'],
            name=op.f('fk_dreams_dreamer_id_dreamers'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_dreams')),
        sa.UniqueConstraint('dreamer_id', 'slug', name='uq_dreams_dreamer_id_slug'),
    )
    with op.batch_alter_table('dreams', schema=None) as batch_op:
        batch_op.create_index('ix_dreams_dreamer_id', ['dreamer_id'], unique=False)


def downgrade():
    with op.batch_alter_table('dreams', schema=None) as batch_op:
        batch_op.drop_index('ix_dreams_dreamer_id')
    op.drop_table('dreams')

    with op.batch_alter_table('dreamers', schema=None) as batch_op:
        batch_op.drop_index('ix_dreamers_email_verification_token')
        batch_op.drop_index('ix_dreamers_password_reset_token')
    op.drop_table('dreamers')

    sa.Enum(name='shepherd_personality').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='animation_speed').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='theme').drop(op.get_bind(), checkfirst=True)
