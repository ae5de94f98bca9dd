"""Username identity rules shared by every route.

Usernames are free text in the ledger. Two spellings that differ only in case
or surrounding whitespace are the same person, so every comparison and every
stored lookup key goes through :func:`normalize_username`. The trimmed
original casing is kept only for display.
"""

from __future__ import annotations

import re

from .errors import ValidationError


PLACEHOLDER_EMAIL_DOMAIN = "noemail.local"
VIRTUAL_ID_PREFIX = "virtual:"

_NON_ALNUM = re.compile(r"[\W_]")


def clean_username(value) -> str:
    return str(value or "").strip()


def normalize_username(value) -> str:
    return clean_username(value).lower()


def placeholder_email(username: str, taken: set[str]) -> str:
    """Pick a deterministic ``<local>@noemail.local`` address not in ``taken``.

    ``taken`` holds lowercased emails and is updated with the returned value.
    """
    local = _NON_ALNUM.sub("", normalize_username(username)) or "user"
    email = f"{local}@{PLACEHOLDER_EMAIL_DOMAIN}"
    i = 1
    while email in taken:
        email = f"{local}+{i}@{PLACEHOLDER_EMAIL_DOMAIN}"
        i += 1

    taken.add(email)
    return email


def parse_virtual_id(raw_id: str) -> str | None:
    if not raw_id.startswith(VIRTUAL_ID_PREFIX):
        return None

    username = clean_username(raw_id[len(VIRTUAL_ID_PREFIX):])
    if not username:
        raise ValidationError("Invalid virtual id")
    return username
