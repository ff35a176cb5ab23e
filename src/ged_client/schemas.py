"""
Response records for GED endpoints.

Decoding is tolerant: unknown fields are ignored (or carried along where the
record is written back to the service) and missing optional fields get
defaults, so newer service versions keep working.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Envelope:
    """The ``{status, data}`` wrapper used by most GED endpoints."""

    status: Optional[str] = None
    data: Optional[list] = None

    @classmethod
    def from_api_response(cls, payload: Any) -> "Envelope":
        """Create from a decoded response (a bare list is treated as data)."""
        if isinstance(payload, list):
            return cls(status=None, data=payload)
        if not isinstance(payload, dict):
            return cls()

        data = payload.get("data")
        if data is not None and not isinstance(data, list):
            data = [data]
        return cls(status=payload.get("status"), data=data)

    @property
    def records(self) -> list:
        return self.data or []


@dataclass
class ProfileMember:
    """A user's membership entry inside a profile."""

    user_name: str
    full_name: str = ""
    firstname: str = ""
    lastname: str = ""
    email: str = ""

    @classmethod
    def build(
        cls,
        username: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> "ProfileMember":
        """Build a new membership; the full name is "first last", trimmed."""
        first_name = first_name or ""
        last_name = last_name or ""
        return cls(
            user_name=username,
            full_name=f"{first_name} {last_name}".strip(),
            firstname=first_name,
            lastname=last_name,
            email=email or "",
        )

    def to_api_payload(self) -> dict:
        return {
            "userName": self.user_name,
            "fullName": self.full_name,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "email": self.email,
        }


@dataclass
class Profile:
    """
    A named group of users sharing access rights.

    Member entries are kept exactly as the service sent them so that writing
    the list back leaves untouched members unchanged.
    """

    display_name: str = ""
    users: list = field(default_factory=list)
    jupiter_right: Any = None

    @classmethod
    def from_api_response(cls, data: dict) -> "Profile":
        users = data.get("users") or []
        if isinstance(users, dict):
            # Filtered PHP-style arrays can arrive keyed by index
            users = list(users.values())

        return cls(
            display_name=data.get("displayName") or "",
            users=list(users),
            jupiter_right=data.get("jupiterRight"),
        )

    def without_member(self, username: str) -> list:
        """Raw member entries with every entry for ``username`` removed."""
        return [
            u for u in self.users
            if not (isinstance(u, dict) and u.get("userName") == username)
        ]


@dataclass
class DownloadedFile:
    """A file downloaded from the GED service."""

    file_name: str
    file_content: bytes
