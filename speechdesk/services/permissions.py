"""
Permission gate.

Permissions are a 20 character vector of 'S' (granted) / 'N' (denied)
flags, addressed with 1-based module codes (2 = text-to-speech).
"""
from typing import Optional

from fastapi import Depends, HTTPException

from speechdesk.config import DEFAULT_PERMISSIONS

PERMISSION_SLOTS = 20


def has_permission(vector: Optional[str], code: int) -> bool:
    """Check whether permission `code` is granted in the vector."""
    index = code - 1
    if not vector or index < 0 or index >= PERMISSION_SLOTS:
        return False
    return len(vector) > index and vector[index] == 'S'


class PermissionChecker:
    """
    Decides whether the current caller may use a module.

    An authentication layer replaces this through dependency overrides;
    without one, the configured default vector applies.
    """

    def __init__(self, vector: str = DEFAULT_PERMISSIONS):
        self.vector = vector

    def allows(self, code: int) -> bool:
        return has_permission(self.vector, code)


_checker: Optional[PermissionChecker] = None


def get_permission_checker() -> PermissionChecker:
    global _checker
    if _checker is None:
        _checker = PermissionChecker()
    return _checker


def require_permission(code: int):
    """Route dependency rejecting callers without permission `code`."""

    async def dependency(checker: PermissionChecker = Depends(get_permission_checker)):
        if not checker.allows(code):
            raise HTTPException(status_code=403, detail='Access denied')

    return dependency
