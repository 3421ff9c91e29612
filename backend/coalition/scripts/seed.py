#!/usr/bin/env python3
"""
Seed the database with default page content, demo member organizations and
an initial admin account.

Existing rows are left untouched, so the script is safe to run repeatedly.

Usage:
    python -m coalition.scripts.seed [--admin-email EMAIL] [--admin-password PASSWORD] [--skip-organizations]
"""
import argparse
import asyncio
import logging

from sqlalchemy import select

from coalition.core.logging import configure_logging
from coalition.core.security import get_password_hash
from coalition.db.base import session_scope, init_db
from coalition.models.admin_user import AdminUser
from coalition.models.base import utcnow
from coalition.models.organization import Organization, OrganizationStatus, Region
from coalition.models.page_content import PageContent

logger = logging.getLogger(__name__)

# (page, section, content_key, content_value, content_type)
PAGE_CONTENT = [
    ("home", "hero", "title", "Tennessee Coalition for Better Aging", "text"),
    ("home", "hero", "subtitle",
     "Empowering organizations across Tennessee to improve the lives of older adults through "
     "collaboration, advocacy, and innovation.", "text"),
    ("home", "hero", "ctaText", "Join Our Coalition", "text"),
    ("home", "hero", "backgroundImage", "", "image"),
    ("home", "mission", "title", "Our Mission", "text"),
    ("home", "mission", "description",
     "The coalition brings together organizations dedicated to enhancing the quality of life for "
     "older adults across Tennessee. We promote healthy aging, support family caregivers and "
     "advocate for policies that benefit our senior population.", "text"),
    ("home", "features", "feature1Title", "Statewide Network", "text"),
    ("home", "features", "feature1Description",
     "Connect with member organizations across all three regions: East, Middle and West.", "text"),
    ("home", "features", "feature2Title", "Resources & Support", "text"),
    ("home", "features", "feature2Description",
     "Access educational materials, best practices and professional development opportunities.", "text"),
    ("home", "features", "feature3Title", "Advocacy & Policy", "text"),
    ("home", "features", "feature3Description",
     "Join our collective voice advocating for policies that support healthy aging.", "text"),
    ("about", "overview", "title", "About Us", "text"),
    ("about", "overview", "description",
     "<p>The coalition was founded to address the growing needs of Tennessee's aging population. "
     "We bring together Area Agencies on Aging, healthcare providers, social service organizations, "
     "advocacy groups and community partners.</p>", "richtext"),
    ("about", "values", "title", "Our Values", "text"),
    ("about", "values", "value1", "Collaboration: we are stronger working together.", "text"),
    ("about", "values", "value2", "Dignity: every older adult deserves respect and choice.", "text"),
    ("about", "values", "value3", "Equity: services should reach every community in the state.", "text"),
    ("advocacy", "header", "title", "Advocacy", "text"),
    ("advocacy", "header", "subtitle", "Policy priorities for healthy aging in Tennessee.", "text"),
    ("announcements", "header", "title", "Announcements", "text"),
    ("blogs", "header", "title", "Coalition Blog", "text"),
    ("contact", "info", "title", "Contact Us", "text"),
    ("contact", "info", "email", "info@tnaging.org", "text"),
    ("contact", "info", "description", "Questions about membership? Send us a message.", "text"),
    ("register", "hero", "title", "Become a Member", "text"),
    ("register", "hero", "subtitle", "Membership is open to organizations serving older Tennesseans.", "text"),
    ("email-signup", "hero", "title", "Stay Informed", "text"),
    ("email-signup", "hero", "subtitle", "Get announcements and blog posts in your inbox.", "text"),
]

DEMO_ORGANIZATIONS = [
    {
        "name": "AARP Tennessee",
        "email": "tnaarp@aarp.org",
        "description": "Nonprofit, nonpartisan organization that empowers people to choose how they live as they age.",
        "website": "https://states.aarp.org/tennessee/",
        "address": "150 4th Ave N, Suite 1100",
        "city": "Nashville",
        "state": "TN",
        "zip_code": "37219",
        "latitude": 36.1643,
        "longitude": -86.7786,
        "region": Region.MIDDLE,
        "organization_type": "Advocacy",
        "tags": ["advocacy", "policy"],
    },
    {
        "name": "Aging Commission of the Mid-South",
        "email": "info@agingcommission.org",
        "description": "Serving older adults and adults with disabilities in Shelby County.",
        "website": "https://shelbycountytn.gov/3433/Aging-Commission-of-the-Mid-South",
        "address": "160 N Main St",
        "city": "Memphis",
        "state": "TN",
        "zip_code": "38103",
        "latitude": 35.1495,
        "longitude": -90.049,
        "region": Region.WEST,
        "organization_type": "Government Agency",
        "tags": ["caregiving", "services"],
    },
    {
        "name": "East Tennessee Human Resource Agency",
        "email": "aging@ethra.org",
        "description": "Area Agency on Aging and Disability for sixteen East Tennessee counties.",
        "website": "https://www.ethra.org",
        "address": "9111 Cross Park Dr, Suite D100",
        "city": "Knoxville",
        "state": "TN",
        "zip_code": "37923",
        "latitude": 35.9296,
        "longitude": -84.0327,
        "region": Region.EAST,
        "organization_type": "Area Agency on Aging",
        "tags": ["services", "transportation"],
    },
]


async def seed_page_content(db) -> int:
    created = 0
    for page, section, key, value, content_type in PAGE_CONTENT:
        existing = await db.execute(
            select(PageContent.id).where(
                PageContent.page == page,
                PageContent.section == section,
                PageContent.content_key == key
            )
        )
        if existing.first() is not None:
            continue
        db.add(PageContent(
            page=page,
            section=section,
            content_key=key,
            content_value=value,
            content_type=content_type,
        ))
        created += 1
    await db.flush()
    return created


async def seed_organizations(db, password: str) -> int:
    created = 0
    for data in DEMO_ORGANIZATIONS:
        existing = await db.execute(select(Organization.id).where(Organization.email == data["email"]))
        if existing.first() is not None:
            continue
        db.add(Organization(
            **data,
            password_hash=get_password_hash(password),
            status=OrganizationStatus.ACTIVE,
            primary_contact_email=data["email"],
            membership_active=True,
            membership_date=utcnow(),
            approved_at=utcnow(),
        ))
        created += 1
    await db.flush()
    return created


async def seed_admin(db, email: str, password: str) -> bool:
    email = email.strip().lower()
    existing = await db.execute(select(AdminUser.id).where(AdminUser.email == email))
    if existing.first() is not None:
        return False
    db.add(AdminUser(
        email=email,
        name="Coalition Admin",
        password_hash=get_password_hash(password),
        is_active=True,
    ))
    await db.flush()
    return True


async def run(args: argparse.Namespace) -> None:
    await init_db()
    async with session_scope() as db:
        pages = await seed_page_content(db)
        orgs = 0 if args.skip_organizations else await seed_organizations(db, args.org_password)
        admin = await seed_admin(db, args.admin_email, args.admin_password)

    logger.info(f"Seeded {pages} page content rows and {orgs} organizations")
    if admin:
        logger.info(f"Created admin {args.admin_email}")


def main():
    parser = argparse.ArgumentParser(description="Seed coalition data")
    parser.add_argument("--admin-email", default="admin@coalition-hub.org", help="Initial admin email")
    parser.add_argument("--admin-password", default="ChangeMe123!", help="Initial admin password")
    parser.add_argument("--org-password", default="Member123!", help="Password for demo organizations")
    parser.add_argument("--skip-organizations", action="store_true", help="Only seed page content and the admin")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
