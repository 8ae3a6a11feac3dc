"""Account lookups used for linger and device-group advice."""
from __future__ import annotations

import grp
import os
import pwd


def current_user() -> str:
    """Return the login name of the effective user."""
    try:
        return pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        return str(os.geteuid())


def user_in_group(user: str, group: str) -> bool | None:
    """Return whether *user* belongs to *group*; ``None`` when either is unknown."""
    try:
        group_entry = grp.getgrnam(group)
    except KeyError:
        return None
    if user in group_entry.gr_mem:
        return True
    try:
        pw_entry = pwd.getpwnam(user)
    except KeyError:
        return None
    return pw_entry.pw_gid == group_entry.gr_gid


__all__ = ["current_user", "user_in_group"]
