import re
from typing import List, Tuple

from flask import current_app

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")

_DEFAULT_MIN_LEN = 10
_MAX_LEN = 128


def _min_len() -> int:
    try:
        return int(current_app.config.get("PASSWORD_MIN_LEN", _DEFAULT_MIN_LEN))
    except RuntimeError:
        return _DEFAULT_MIN_LEN


def validate_password(pw: str) -> Tuple[bool, List[str]]:
    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    errors: List[str] = []
    min_len = _min_len()

    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw) > _MAX_LEN:
        errors.append(f"Password must be at most {_MAX_LEN} characters")
    if not _LETTER.search(pw):
        errors.append("Password must include at least 1 letter")
    if not _DIGIT.search(pw):
        errors.append("Password must include at least 1 number")

    return (len(errors) == 0), errors
