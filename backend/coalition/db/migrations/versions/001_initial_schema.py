"""Initial coalition schema

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

Creates accounts (admins, organizations), published content (announcements,
tags, blogs, alerts, surveys), responses, subscriptions, notifications, email
history, page content and Stripe billing tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', sa.String(15), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _admin_fk() -> sa.Column:
    return sa.Column(
        'created_by_admin_id', sa.String(15),
        sa.ForeignKey('admin_users.id', ondelete='SET NULL'), nullable=True
    )


def upgrade() -> None:
    op.create_table(
        'admin_users',
        _id(),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'organizations',
        _id(),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('name', sa.String(200), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column(
            'status',
            sa.Enum('PENDING', 'ACTIVE', 'INACTIVE', 'DECLINED', name='organizationstatus'),
            nullable=False, server_default='PENDING', index=True
        ),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website', sa.String(500), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('phone_number', sa.String(50), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('region', sa.Enum('EAST', 'MIDDLE', 'WEST', name='region'), nullable=True),
        sa.Column('organization_type', sa.String(100), nullable=True),
        sa.Column('organization_size', sa.String(50), nullable=True),
        sa.Column('primary_contact_name', sa.String(200), nullable=True),
        sa.Column('primary_contact_email', sa.String(255), nullable=True),
        sa.Column('primary_contact_phone', sa.String(50), nullable=True),
        sa.Column('secondary_contact_name', sa.String(200), nullable=True),
        sa.Column('secondary_contact_email', sa.String(255), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('notify_announcements', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_blogs', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_alerts', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_surveys', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('membership_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('membership_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'tags',
        _id(),
        sa.Column('name', sa.String(100), unique=True, nullable=False, index=True),
        *_timestamps(),
    )

    op.create_table(
        'announcements',
        _id(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('published_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attachment_urls', sa.JSON(), nullable=False),
        _admin_fk(),
        *_timestamps(),
    )

    op.create_table(
        'announcement_tags',
        sa.Column(
            'announcement_id', sa.String(15),
            sa.ForeignKey('announcements.id', ondelete='CASCADE'), primary_key=True
        ),
        sa.Column('tag_id', sa.String(15), sa.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'blogs',
        _id(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('author', sa.String(200), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('featured_image_url', sa.String(1000), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('published_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'alerts',
        _id(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column(
            'priority',
            sa.Enum('URGENT', 'MEDIUM', 'LOW', name='alertpriority'),
            nullable=False, server_default='MEDIUM', index=True
        ),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('published_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attachment_urls', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('questions', sa.JSON(), nullable=True),
        _admin_fk(),
        *_timestamps(),
    )

    op.create_table(
        'surveys',
        _id(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        _admin_fk(),
        *_timestamps(),
    )

    op.create_table(
        'alert_responses',
        _id(),
        sa.Column('alert_id', sa.String(15), sa.ForeignKey('alerts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column(
            'organization_id', sa.String(15),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True
        ),
        sa.Column('responses', sa.JSON(), nullable=False),
        sa.Column('submitted_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint('alert_id', 'organization_id', name='uq_alert_responses_alert_org'),
    )

    op.create_table(
        'survey_responses',
        _id(),
        sa.Column('survey_id', sa.String(15), sa.ForeignKey('surveys.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column(
            'organization_id', sa.String(15),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True
        ),
        sa.Column('responses', sa.JSON(), nullable=False),
        sa.Column('submitted_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint('survey_id', 'organization_id', name='uq_survey_responses_survey_org'),
    )

    op.create_table(
        'email_subscriptions',
        _id(),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('subscription_types', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
    )

    op.create_table(
        'notifications',
        _id(),
        sa.Column(
            'type',
            sa.Enum('ANNOUNCEMENT', 'BLOG', 'ALERT', 'SURVEY', name='notificationtype'),
            nullable=False, index=True
        ),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('content_id', sa.String(15), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'email_history',
        _id(),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('recipient_emails', sa.JSON(), nullable=False),
        sa.Column('recipient_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('filters', sa.JSON(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('SCHEDULED', 'SENT', 'FAILED', name='emailstatus'),
            nullable=False, server_default='SENT', index=True
        ),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        _admin_fk(),
        *_timestamps(),
    )

    op.create_table(
        'page_contents',
        _id(),
        sa.Column('page', sa.String(100), nullable=False, index=True),
        sa.Column('section', sa.String(100), nullable=False),
        sa.Column('content_key', sa.String(100), nullable=False),
        sa.Column('content_value', sa.Text(), nullable=False, server_default=''),
        sa.Column('content_type', sa.String(20), nullable=False, server_default='text'),
        *_timestamps(),
        sa.UniqueConstraint('page', 'section', 'content_key', name='uq_page_contents_page_section_key'),
    )

    op.create_table(
        'subscriptions',
        _id(),
        sa.Column(
            'organization_id', sa.String(15),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, unique=True
        ),
        sa.Column('stripe_customer_id', sa.String(255), nullable=False, index=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True, unique=True),
        sa.Column('stripe_price_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='incomplete'),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'payments',
        _id(),
        sa.Column(
            'organization_id', sa.String(15),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True
        ),
        sa.Column('stripe_invoice_id', sa.String(255), nullable=False, index=True),
        sa.Column('amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(10), nullable=False, server_default='usd'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('stripe_invoice_id', 'status', name='uq_payments_invoice_status'),
    )


def downgrade() -> None:
    for table in (
        'payments',
        'subscriptions',
        'page_contents',
        'email_history',
        'notifications',
        'email_subscriptions',
        'survey_responses',
        'alert_responses',
        'surveys',
        'alerts',
        'blogs',
        'announcement_tags',
        'announcements',
        'tags',
        'organizations',
        'admin_users',
    ):
        op.drop_table(table)

    # Drop enum types
    for enum_name in ('organizationstatus', 'region', 'alertpriority', 'notificationtype', 'emailstatus'):
        op.execute(f'DROP TYPE IF EXISTS {enum_name}')
