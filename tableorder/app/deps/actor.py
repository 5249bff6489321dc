from fastapi import Header, HTTPException

from ..domain import Actor, Role

"""Dependency helpers for resolving the acting restaurant user."""


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    """Return the :class:`Actor` described by ``X-User-ID``/``X-User-Role``.

    Args:
        x_user_id: Identifier of the authenticated user.
        x_user_role: ``owner`` or ``staff``.

    Raises:
        HTTPException: 401 if either header is missing, 403 for any other role.
    """
    # identity is asserted by the upstream auth gateway
    if not x_user_id or not x_user_role:
        raise HTTPException(401, "Authentication required")
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise HTTPException(403, "You are not authorized to manage orders") from None
    return Actor(user_id=x_user_id, role=role)
