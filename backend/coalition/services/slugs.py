"""URL slug generation for announcements and blogs."""
import re
import unicodedata

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_SLUG_LENGTH = 200


def slugify(text: str) -> str:
    value = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value.lower())
    value = re.sub(r"[\s_-]+", "-", value).strip("-")
    return value[:MAX_SLUG_LENGTH].rstrip("-") or "post"


async def unique_slug(db: AsyncSession, model, title: str) -> str:
    """Slugify a title, appending -2, -3, ... until it is unused for the model."""
    base = slugify(title)
    result = await db.execute(select(model.slug).where(model.slug.like(f"{base}%")))
    taken = set(result.scalars().all())
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"
