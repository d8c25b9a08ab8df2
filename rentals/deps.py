from dataclasses import dataclass, field
from urllib.parse import unquote
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from rentals.scopes import BookingScope, CatalogScope


@dataclass
class CurrentUser:
    id: UUID
    username: str
    scopes: list[str] = field(default_factory=list)

    @property
    def is_admin_reader(self) -> bool:
        return self.has_any(BookingScope.ADMIN, BookingScope.ADMIN_READ)

    @property
    def is_admin_writer(self) -> bool:
        return self.has_any(BookingScope.ADMIN, BookingScope.ADMIN_WRITE)

    def has_any(self, *scopes: str) -> bool:
        return any(s in self.scopes for s in scopes)


def get_current_user(
    x_user_id: str = Header(...),
    x_username: str = Header(...),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the identity headers injected by the gateway after it validated the
    session. The service trusts these headers and never sees credentials.
    """
    try:
        user_id = UUID(x_user_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity from gateway",
        ) from None

    scopes = x_user_scopes.split(" ") if x_user_scopes else []

    return CurrentUser(id=user_id, username=unquote(x_username), scopes=scopes)


def require_scopes(*required: str):
    """
    Factory that returns a dependency enforcing one or more scopes.

    Usage:
        @router.post("/costumes")
        async def route(user = Depends(require_scopes("admin:catalog"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        missing = [s for s in required if s not in current_user.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scopes: {', '.join(missing)}",
            )
        return current_user

    return _dep


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_manage_catalog = require_scopes(CatalogScope.ADMIN)


async def can_view_dashboard(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not current_user.is_admin_reader:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires '{BookingScope.ADMIN_READ}' (admin).",
        )
    return current_user


async def can_read_booking(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Passes if the user can read their own bookings or is a booking admin.
    - bookings:read        → customer sees own bookings
    - admin:bookings[:read] → admin sees all
    """
    if not current_user.has_any(
        BookingScope.READ, BookingScope.ADMIN, BookingScope.ADMIN_READ
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"Requires '{BookingScope.READ}' (customers) "
                f"or '{BookingScope.ADMIN_READ}' (admin)."
            ),
        )
    return current_user


async def can_write_booking(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Customers book for themselves; admins book at the point of sale."""
    if not current_user.has_any(
        BookingScope.WRITE, BookingScope.ADMIN, BookingScope.ADMIN_WRITE
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"Requires '{BookingScope.WRITE}' (customers) "
                f"or '{BookingScope.ADMIN_WRITE}' (admin)."
            ),
        )
    return current_user
