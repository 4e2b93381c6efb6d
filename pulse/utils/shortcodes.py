import re
import unicodedata

_NUMERIC_ID = re.compile(r"^\d+$")


def normalize_shortcode(value: str) -> str:
    """Lower-cased ASCII form used for case-insensitive shortcode matching."""
    if not value:
        return ""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9_-]", "", value)

    return value


def parse_internal_id(value: str) -> int | None:
    candidate = (value or "").strip()
    if not _NUMERIC_ID.match(candidate):
        return None
    return int(candidate)
