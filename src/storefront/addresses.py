"""Delivery addresses and the text snapshot stored on orders."""

from .data_store import DataStore
from .errors import AddressNotFoundError, InvalidAddressError
from .models import Address, _generate_id, _utc_now

REQUIRED_FIELDS = ("full_name", "phone", "line1", "city", "state", "pincode")
PINCODE_LENGTH = 6


def format_address(address: Address) -> str:
    """
    Render an address as the multi-line block frozen into an order.

    Recipient, street lines, "city, state - pincode", phone, then the
    alternate phone if there is one. Blank lines are dropped.
    """
    lines = [
        address.full_name,
        address.line1,
        address.line2,
        f"{address.city}, {address.state} - {address.pincode}",
        f"Phone: {address.phone}",
    ]
    if address.alt_phone:
        lines.append(f"Alt Phone: {address.alt_phone}")
    return "\n".join(line.strip() for line in lines if line and line.strip())


class AddressBook:
    """Per-user saved addresses. Each user has at most one default."""

    def __init__(self, store: DataStore):
        self.store = store

    def list_addresses(self, user_id: str) -> list[Address]:
        """The user's addresses, default first, then oldest first."""
        rows = self.store.select("addresses", {"user_id": user_id}, order_by="created_at")
        addresses = [Address.from_dict(r) for r in rows]
        addresses.sort(key=lambda a: not a.is_default)
        return addresses

    def get_address(self, user_id: str, address_id: str) -> Address:
        """
        Get one of the user's addresses.

        Raises:
            AddressNotFoundError: If it doesn't exist or belongs to someone else.
        """
        row = self.store.get("addresses", address_id)
        if row is None or row.get("user_id") != user_id:
            raise AddressNotFoundError(address_id)
        return Address.from_dict(row)

    def get_default(self, user_id: str) -> Address | None:
        for address in self.list_addresses(user_id):
            if address.is_default:
                return address
        return None

    def save_address(
        self,
        user_id: str,
        full_name: str,
        phone: str,
        line1: str,
        city: str,
        state: str,
        pincode: str,
        line2: str = "",
        alt_phone: str | None = None,
    ) -> Address:
        """
        Validate and save a new address.

        The user's first address becomes the default.

        Raises:
            InvalidAddressError: A required field is blank or the pincode is malformed.
        """
        values = {
            "full_name": full_name,
            "phone": phone,
            "line1": line1,
            "city": city,
            "state": state,
            "pincode": pincode,
        }
        for name in REQUIRED_FIELDS:
            if not (values[name] or "").strip():
                raise InvalidAddressError(name)

        pincode = pincode.strip()
        if len(pincode) != PINCODE_LENGTH or not pincode.isdigit():
            raise InvalidAddressError("pincode", f"must be {PINCODE_LENGTH} digits")

        is_first = not self.store.select("addresses", {"user_id": user_id}, limit=1)
        address = Address(
            id=_generate_id(),
            user_id=user_id,
            full_name=full_name.strip(),
            phone=phone.strip(),
            line1=line1.strip(),
            line2=(line2 or "").strip(),
            city=city.strip(),
            state=state.strip(),
            pincode=pincode,
            alt_phone=alt_phone.strip() if alt_phone and alt_phone.strip() else None,
            is_default=is_first,
            created_at=_utc_now(),
        )
        self.store.insert("addresses", address.to_dict())
        return address

    def set_default(self, user_id: str, address_id: str) -> Address:
        """Make one address the default and clear the flag on the others."""
        target = self.get_address(user_id, address_id)
        for address in self.list_addresses(user_id):
            if address.is_default and address.id != target.id:
                self.store.update("addresses", address.id, {"is_default": False})
        self.store.update("addresses", target.id, {"is_default": True})
        target.is_default = True
        return target

    def delete_address(self, user_id: str, address_id: str) -> Address:
        """
        Delete an address.

        If it was the default, the oldest remaining address takes over.
        Orders are unaffected since they hold a text snapshot.
        """
        address = self.get_address(user_id, address_id)
        self.store.delete("addresses", address.id)

        if address.is_default:
            remaining = self.list_addresses(user_id)
            if remaining:
                self.set_default(user_id, remaining[0].id)

        return address
