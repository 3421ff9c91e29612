"""
SQLAlchemy models for the coalition backend.
"""
from coalition.models.admin_user import AdminUser
from coalition.models.organization import Organization, OrganizationStatus, Region

# Published content
from coalition.models.tag import Tag, announcement_tags
from coalition.models.announcement import Announcement
from coalition.models.blog import Blog
from coalition.models.alert import Alert, AlertPriority
from coalition.models.alert_response import AlertResponse
from coalition.models.survey import Survey
from coalition.models.survey_response import SurveyResponse
from coalition.models.page_content import PageContent

# Communication
from coalition.models.email_subscription import EmailSubscription
from coalition.models.notification import Notification, NotificationType
from coalition.models.email_history import EmailHistory, EmailStatus

# Billing
from coalition.models.subscription import Subscription
from coalition.models.payment import Payment

__all__ = [
    "AdminUser",
    "Organization",
    "OrganizationStatus",
    "Region",
    "Tag",
    "announcement_tags",
    "Announcement",
    "Blog",
    "Alert",
    "AlertPriority",
    "AlertResponse",
    "Survey",
    "SurveyResponse",
    "PageContent",
    "EmailSubscription",
    "Notification",
    "NotificationType",
    "EmailHistory",
    "EmailStatus",
    "Subscription",
    "Payment",
]
