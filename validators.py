"""
validators.py — Minecraft username checks
Java names: 3-16 of [A-Za-z0-9_]. Bedrock (Floodgate) names carry a leading '.'.
"""
import re
from typing import Optional, Tuple

USERNAME_RE = re.compile(r"^\.?[A-Za-z0-9_]{3,16}$")


def is_bedrock_name(username: str) -> bool:
    return username.startswith(".")


def validate_username(username: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Return (valid, error message)."""
    if not username or not username.strip():
        return False, "Username cannot be empty"

    if USERNAME_RE.match(username):
        return True, None

    if len(username) < 3:
        return False, "Username must be at least 3 characters"
    if len(username) > 17:
        return False, "Username cannot be longer than 16 characters (17 with a leading dot)"

    invalid = sorted(set(re.findall(r"[^A-Za-z0-9_.]", username)))
    if invalid:
        return False, f"Username contains invalid characters: {', '.join(invalid)}"

    if "." in username.lstrip(".") or username.startswith(".."):
        return False, "A dot (.) is only allowed at the start, for Bedrock players"

    return False, "Username must be 3-16 characters of a-z, A-Z, 0-9, _ with an optional leading ."
