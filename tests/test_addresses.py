"""Tests for AddressBook and address formatting."""

import pytest

from storefront.addresses import AddressBook, format_address
from storefront.errors import AddressNotFoundError, InvalidAddressError
from storefront.models import Address


def address_fields(**overrides):
    fields = {
        "full_name": "Asha Rao",
        "phone": "9876543210",
        "line1": "12 Beach Road",
        "city": "Visakhapatnam",
        "state": "Andhra Pradesh",
        "pincode": "530001",
    }
    fields.update(overrides)
    return fields


class TestFormatAddress:
    def test_full_address(self):
        address = Address(
            id="a-1",
            user_id="user-1",
            alt_phone="9123456780",
            line2="Flat 3B",
            **address_fields(),
        )

        assert format_address(address) == (
            "Asha Rao\n"
            "12 Beach Road\n"
            "Flat 3B\n"
            "Visakhapatnam, Andhra Pradesh - 530001\n"
            "Phone: 9876543210\n"
            "Alt Phone: 9123456780"
        )

    def test_blank_lines_dropped(self):
        address = Address(id="a-1", user_id="user-1", line2="   ", **address_fields())

        lines = format_address(address).splitlines()

        assert len(lines) == 4
        assert "Alt Phone" not in format_address(address)


class TestAddressBook:
    def test_first_address_is_default(self, store):
        book = AddressBook(store)
        first = book.save_address("user-1", **address_fields())
        second = book.save_address("user-1", **address_fields(line1="7 Hill Street"))

        assert first.is_default
        assert not second.is_default
        assert book.get_default("user-1").id == first.id

    def test_list_default_first(self, store):
        book = AddressBook(store)
        book.save_address("user-1", **address_fields())
        second = book.save_address("user-1", **address_fields(line1="7 Hill Street"))
        book.set_default("user-1", second.id)

        addresses = book.list_addresses("user-1")

        assert addresses[0].id == second.id
        assert [a.is_default for a in addresses] == [True, False]

    def test_addresses_are_per_user(self, store):
        book = AddressBook(store)
        mine = book.save_address("user-1", **address_fields())
        theirs = book.save_address("user-2", **address_fields())

        assert theirs.is_default
        assert [a.id for a in book.list_addresses("user-1")] == [mine.id]
        with pytest.raises(AddressNotFoundError):
            book.get_address("user-1", theirs.id)

    @pytest.mark.parametrize("field", ["full_name", "phone", "line1", "city", "state", "pincode"])
    def test_required_fields(self, store, field):
        with pytest.raises(InvalidAddressError) as exc_info:
            AddressBook(store).save_address("user-1", **address_fields(**{field: "  "}))

        assert exc_info.value.field == field

    @pytest.mark.parametrize("pincode", ["53000", "5300011", "53O001"])
    def test_pincode_must_be_six_digits(self, store, pincode):
        with pytest.raises(InvalidAddressError) as exc_info:
            AddressBook(store).save_address("user-1", **address_fields(pincode=pincode))

        assert exc_info.value.field == "pincode"

    def test_delete_default_promotes_oldest(self, store):
        book = AddressBook(store)
        first = book.save_address("user-1", **address_fields())
        second = book.save_address("user-1", **address_fields(line1="2 Second Lane"))
        book.save_address("user-1", **address_fields(line1="3 Third Lane"))

        book.delete_address("user-1", first.id)

        assert book.get_default("user-1").id == second.id

    def test_delete_non_default_keeps_default(self, store):
        book = AddressBook(store)
        first = book.save_address("user-1", **address_fields())
        second = book.save_address("user-1", **address_fields(line1="2 Second Lane"))

        book.delete_address("user-1", second.id)

        assert book.get_default("user-1").id == first.id

    def test_cannot_delete_someone_elses_address(self, store):
        book = AddressBook(store)
        theirs = book.save_address("user-2", **address_fields())

        with pytest.raises(AddressNotFoundError):
            book.delete_address("user-1", theirs.id)
        assert book.list_addresses("user-2")[0].id == theirs.id
