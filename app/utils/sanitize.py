from typing import Any, Optional

import nh3


def sanitize_text(value: Any) -> str:
    """
    Strips every HTML tag from free text before it is stored.
    Non-string input yields an empty string. Script/style bodies are dropped
    along with their tags.
    """
    if not isinstance(value, str):
        return ""
    return nh3.clean(value, tags=set(), attributes={}).strip()


def sanitize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = sanitize_text(value)
    return cleaned or None
