import re
from typing import Optional

# Markup / quoting characters and SQL statement terminators
_STRIP_CHARS = re.compile(r"[<>\"';\\]")


def sanitize_text(value: Optional[str], max_length: int = 500) -> str:
    """Strip injection-prone characters, trim and cap the length of free text."""
    if not value:
        return ""
    return _STRIP_CHARS.sub("", str(value)).strip()[:max_length]


def sanitize_or_default(value: Optional[str], default: str, max_length: int = 500) -> str:
    return sanitize_text(value, max_length) or default
