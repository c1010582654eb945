# utils/codegen.py
from __future__ import annotations

import secrets

# 36 symbols minus I, O, 0 and 1, which are easy to misread
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GROUP_LENGTH = 3


def generate(length: int = 6) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_formatted() -> str:
    """Return a code shaped like ``K7Q-2MX``."""
    return f"{generate(GROUP_LENGTH)}-{generate(GROUP_LENGTH)}"


def normalize(code: str) -> str:
    """Upper-case and strip; puts the dash back into codes typed without it."""
    code = (code or "").strip().upper()
    if "-" not in code and len(code) >= 2 * GROUP_LENGTH:
        code = f"{code[:GROUP_LENGTH]}-{code[GROUP_LENGTH:]}"
    return code


def is_well_formed(code: str) -> bool:
    parts = normalize(code).split("-")
    return (
        len(parts) == 2
        and all(len(p) == GROUP_LENGTH for p in parts)
        and all(ch in ALPHABET for p in parts for ch in p)
    )
