import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse every whitespace run to a single space and trim both ends."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()
