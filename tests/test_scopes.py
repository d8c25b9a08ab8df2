"""Tests for BookingScope / CatalogScope values."""

from rentals.scopes import BookingScope, CatalogScope


class TestBookingScopeValues:
    def test_customer_read_scope(self):
        assert BookingScope.READ == "bookings:read"

    def test_customer_write_scope(self):
        assert BookingScope.WRITE == "bookings:write"

    def test_customer_cancel_scope(self):
        assert BookingScope.CANCEL == "bookings:cancel"

    def test_admin_super_scope(self):
        assert BookingScope.ADMIN == "admin:bookings"

    def test_admin_read_scope(self):
        assert BookingScope.ADMIN_READ == "admin:bookings:read"

    def test_admin_write_scope(self):
        assert BookingScope.ADMIN_WRITE == "admin:bookings:write"

    def test_all_scopes_are_strings(self):
        for scope in BookingScope:
            assert isinstance(scope, str)


class TestCatalogScopeValues:
    def test_admin_catalog_scope(self):
        assert CatalogScope.ADMIN == "admin:catalog"

    def test_scopes_joined_into_header_form(self):
        header = " ".join([BookingScope.READ, CatalogScope.ADMIN])
        assert header == "bookings:read admin:catalog"
