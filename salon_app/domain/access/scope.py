"""Access scope - which locations, staff and appointments a principal may see"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_LOCATIONS = "all"


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    SALES = "SALES"
    CLIENT = "CLIENT"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        """Case-insensitive lookup; unknown roles map to None (least privileged)"""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            logger.warning(f"⚠️ Unrecognized role '{value}', treating as least privileged")
            return None


class VirtualLocation(str, Enum):
    """Addressable locations that have no row in the locations table"""

    ONLINE = "online"
    HOME = "home"


VIRTUAL_LOCATION_NAMES = {
    VirtualLocation.ONLINE: "Online Store",
    VirtualLocation.HOME: "Home Service",
}


@dataclass(frozen=True)
class Principal:
    """Authenticated actor, built once from the session token claims"""

    id: str
    role: Optional[Role]
    locations: tuple[str, ...] = field(default_factory=tuple)
    email: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        locations = claims.get("locations") or []
        if isinstance(locations, str):
            locations = [locations]
        return cls(
            id=str(claims.get("sub") or claims.get("id") or ""),
            role=Role.parse(claims.get("role")),
            locations=tuple(str(loc) for loc in locations),
            email=claims.get("email"),
        )

    @property
    def has_all_locations(self) -> bool:
        return ALL_LOCATIONS in self.locations


def _get(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


class AccessScope:
    """
    Location-based visibility rules for one principal.

    A scope without a principal is the public-read fallback and lets
    everything through. Items may be dicts or objects; locations are read
    from `id`, appointments from `location`, staff from `locations`.
    """

    def __init__(self, principal: Optional[Principal]):
        self.principal = principal

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def role(self) -> Optional[Role]:
        return self.principal.role if self.principal else None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER

    @property
    def is_staff(self) -> bool:
        return self.role == Role.STAFF

    @property
    def is_sales(self) -> bool:
        return self.role == Role.SALES

    @property
    def user_locations(self) -> tuple[str, ...]:
        return self.principal.locations if self.principal else ()

    def has_location_access(self, location_id: str) -> bool:
        if not self.principal:
            return True
        if self.is_admin:
            return True
        if self.principal.has_all_locations:
            return True
        if location_id == VirtualLocation.ONLINE.value:
            return self.is_sales
        if location_id == VirtualLocation.HOME.value:
            return False  # home service is admin-only
        return location_id in self.user_locations

    def filter_locations(self, locations: Sequence[T], key: str = "id") -> list[T]:
        return self._filter_by_location(locations, key, home_admin_only=False)

    def filter_appointments(self, appointments: Sequence[T], key: str = "location") -> list[T]:
        return self._filter_by_location(appointments, key, home_admin_only=True)

    def filter_staff(self, staff: Sequence[T], key: str = "locations") -> list[T]:
        """
        Staff visible to the principal.

        Virtual ids get no special treatment here, unlike the other filters:
        a staff member assigned to "online" is visible to anyone who is also
        assigned to "online".
        """
        if not self.principal or self.is_admin or self.principal.has_all_locations:
            return list(staff)

        mine = set(self.user_locations)
        return [member for member in staff if mine.intersection(_get(member, key) or ())]

    def _filter_by_location(
        self, items: Iterable[T], key: str, home_admin_only: bool
    ) -> list[T]:
        items = list(items)
        if not self.principal or self.is_admin:
            return items

        # Sales users only ever see the online store
        if self.is_sales:
            return [item for item in items if _get(item, key) == VirtualLocation.ONLINE.value]

        if self.principal.has_all_locations:
            return [item for item in items if _get(item, key) != VirtualLocation.ONLINE.value]

        visible = []
        for item in items:
            location_id = _get(item, key)
            if location_id == VirtualLocation.ONLINE.value:
                continue
            if location_id == VirtualLocation.HOME.value:
                if not home_admin_only:
                    visible.append(item)
                continue
            if location_id in self.user_locations:
                visible.append(item)
        return visible
