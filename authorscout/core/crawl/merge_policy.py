"""Field-level merge rules for author records.

Names upgrade to a longer cleaned value. Bio, website and social links
are fill-once: the first non-empty value observed is kept. Keywords only
grow and sample articles stop at a cap.
"""

import re

from authorscout.core.crawl.models import Author, SampleArticle

FILL_ONCE_FIELDS = ("bio", "website", "twitter", "linkedin", "github")

_LEADING_BY = re.compile(r"^by\s*", re.IGNORECASE)
_AT_HANDLE = re.compile(r"@[\w-]+")
_WHITESPACE = re.compile(r"\s+")


def clean_name(raw: str | None) -> str:
    """Strip a leading "by", @handles and extra whitespace from a display name."""
    if not raw:
        return ""
    name = _LEADING_BY.sub("", raw.strip())
    name = _AT_HANDLE.sub("", name)
    return _WHITESPACE.sub(" ", name).strip()


def upgrade_name(current: str, candidate: str | None) -> str:
    """Return the candidate name when it is non-empty and longer than the current one."""
    cleaned = clean_name(candidate)
    if cleaned and len(cleaned) > len(current or ""):
        return cleaned
    return current


def fill_once(current: str | None, candidate: str | None) -> str | None:
    """Keep a populated value; otherwise take the candidate if it has content."""
    if current:
        return current
    if candidate and candidate.strip():
        return candidate.strip()
    return current


def append_sample(samples: list[SampleArticle], article: SampleArticle, cap: int) -> bool:
    """Append an article while below the cap. Returns True if appended."""
    if len(samples) >= cap:
        return False
    if any(existing.url == article.url for existing in samples):
        return False
    samples.append(article)
    return True


def apply_fill_once(author: Author, **values: str | None) -> list[str]:
    """Fill empty optional fields on an author. Returns the names of filled fields."""
    filled = []
    for field_name, value in values.items():
        if field_name not in FILL_ONCE_FIELDS:
            raise ValueError(f"{field_name} is not a fill-once field")
        current = getattr(author, field_name)
        merged = fill_once(current, value)
        if merged != current:
            setattr(author, field_name, merged)
            filled.append(field_name)
    return filled


def fold_author(existing: Author, incoming: Author, cap: int) -> None:
    """Fold another observation of the same handle into an existing record."""
    if incoming.handle != existing.handle:
        raise ValueError(f"Cannot fold {incoming.handle} into {existing.handle}")

    existing.matched_keywords |= incoming.matched_keywords
    existing.name = upgrade_name(existing.name, incoming.name)
    if not existing.profile_url:
        existing.profile_url = incoming.profile_url
    apply_fill_once(
        existing, **{name: getattr(incoming, name) for name in FILL_ONCE_FIELDS}
    )
    for article in incoming.sample_articles:
        append_sample(existing.sample_articles, article, cap)
