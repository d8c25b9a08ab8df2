from enum import StrEnum


class BookingScope(StrEnum):
    # Customer scopes
    READ = "bookings:read"  # view own bookings
    WRITE = "bookings:write"  # place a booking for yourself
    CANCEL = "bookings:cancel"  # cancel own active booking

    # Admin scopes
    ADMIN = "admin:bookings"  # everything below
    ADMIN_READ = "admin:bookings:read"  # read any booking, dashboard
    ADMIN_WRITE = "admin:bookings:write"  # point-of-sale bookings, any status change


class CatalogScope(StrEnum):
    ADMIN = "admin:catalog"  # create / edit / delete inventory and categories
