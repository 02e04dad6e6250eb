import logging
import re
import unicodedata
from typing import Optional

from repositories import StoreRepository

logger = logging.getLogger(__name__)

FALLBACK_SLUG = "store"


def slugify(value: Optional[str]) -> str:
    if value is None:
        return ""
    condensed = " ".join(str(value).split()).lower()
    ascii_name = (
        unicodedata.normalize("NFKD", condensed)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    return re.sub(r"[^a-z0-9]+", "-", ascii_name).strip("-")


def slug_pattern(slug: str) -> str:
    """Match `slug` itself or `slug-<digits>`; used case-insensitively."""
    return rf"^({re.escape(slug)})((-[0-9]*$)?)$"


class SlugGenerator:
    """Derives a store slug and suffixes it when earlier stores already hold it.

    The suffix is the number of stores whose slug matches, not the next unused
    integer, so `coffee-shop` is followed by `coffee-shop-1`, `coffee-shop-2`...
    """

    def __init__(self, stores: StoreRepository):
        self.stores = stores

    def generate(self, name: str) -> str:
        base = slugify(name) or FALLBACK_SLUG
        matches = self.stores.find_slug_matches(slug_pattern(base))
        slug = f"{base}-{len(matches)}" if matches else base
        logger.debug("Slug %r assigned for %r (%d existing matches)", slug, name, len(matches))
        return slug
