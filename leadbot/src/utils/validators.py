"""
LeadBot - Input Validators
============================
Pure, side-effect-free checks applied to raw visitor input.
"""

from __future__ import annotations

import re

# local@domain.tld — no whitespace and no extra "@" on either side,
# at least one dot in the domain part.
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email(value: object) -> bool:
    """
    Return True if *value* is a syntactically plausible email address.

    Examples::

        "a@b.co"          → True
        "a@b"             → False   (no dot in the domain)
        "a b@c.com"       → False   (embedded whitespace)
        ""                → False
    """
    if not isinstance(value, str):
        return False
    return _EMAIL_RE.fullmatch(value) is not None
