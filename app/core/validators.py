"""Input validation helpers for user codes read from the row source."""
from __future__ import annotations

# Characters that would break the "<code>@domain" email or the search URL
FORBIDDEN_CODE_CHARS = frozenset("@/?#&%\\")


def normalize_user_code(raw: str | None) -> str:
    """Normalize and validate a user code.

    Args:
        raw: Raw code from the CSV row

    Returns:
        Stripped user code

    Raises:
        ValueError: If the code is blank or unusable as an email local part
    """
    code = (raw or "").strip()
    if not code:
        raise ValueError("User code is empty")
    if any(char.isspace() for char in code):
        raise ValueError(f"User code {code!r} contains whitespace")
    bad = sorted(set(code) & FORBIDDEN_CODE_CHARS)
    if bad:
        raise ValueError(f"User code {code!r} contains forbidden characters: {''.join(bad)}")
    if len(code) > 63:
        # Keycloak usernames are "<code>@", limited to 64 characters by the email local part rule
        raise ValueError(f"User code {code!r} exceeds 63 characters")
    return code
