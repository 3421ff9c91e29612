"""Access helpers shared by routers."""
from typing import Iterable, Optional
from fastapi import HTTPException, status

from coalition.core.deps import CurrentUser


def ensure_admin_or_self(user: CurrentUser, organization_id: str) -> None:
    """Admins pass; organizations only for their own id."""
    if user.is_admin:
        return
    if user.id != organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


def is_admin(user: Optional[CurrentUser]) -> bool:
    return user is not None and user.is_admin


def tags_overlap(item_tags: Optional[Iterable[str]], wanted: Optional[Iterable[str]]) -> bool:
    """True when the two tag lists share at least one name."""
    return bool(set(item_tags or []) & set(wanted or []))


def can_view_tagged(user: Optional[CurrentUser], item_tags: Optional[list[str]]) -> bool:
    """Untagged content is visible to everyone; tagged content needs a shared tag."""
    if is_admin(user) or not item_tags:
        return True
    if user is None or not user.is_organization:
        return False
    return tags_overlap(item_tags, user.record.tags)


def parse_csv(value: Optional[str]) -> list[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
