"""Data classes for family tree entities."""

from dataclasses import dataclass, field
from enum import Enum

CONNECTOR_PREFIX = "fam:"


class Gender(str, Enum):
    MALE = "M"
    FEMALE = "F"
    UNKNOWN = "U"


class _Unset:
    """Marker for a patch field that was not supplied."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def connector_id(family_id: str) -> str:
    """Graph vertex id of the connector node drawn for a family."""
    return f"{CONNECTOR_PREFIX}{family_id}"


def dedupe_ids(ids) -> tuple[str, ...]:
    """Drop empty and repeated ids while preserving order."""
    return tuple(dict.fromkeys(i for i in ids if i))


@dataclass(frozen=True)
class Person:
    id: str
    tree_id: str
    first_name: str = ""
    last_name: str = ""
    birth_date: str | None = None  # free text, never parsed
    birth_place: str | None = None
    death_date: str | None = None
    death_place: str | None = None
    gender: Gender = Gender.UNKNOWN
    photo_url: str | None = None  # opaque, usually a data URL
    notes: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


@dataclass(frozen=True)
class Family:
    id: str
    tree_id: str
    partner1_id: str | None = None
    partner2_id: str | None = None
    child_ids: tuple[str, ...] = ()

    @property
    def partner_ids(self) -> tuple[str, ...]:
        return tuple(p for p in (self.partner1_id, self.partner2_id) if p)

    @property
    def is_vacuous(self) -> bool:
        return not self.partner_ids and not self.child_ids

    def references(self, person_id: str) -> bool:
        return person_id in self.partner_ids or person_id in self.child_ids


@dataclass(frozen=True)
class FamilyTree:
    id: str
    name: str
    created_at: int  # milliseconds since the epoch
    updated_at: int
    persons: tuple[Person, ...] = ()
    families: tuple[Family, ...] = ()

    def get_person(self, person_id: str | None) -> Person | None:
        for person in self.persons:
            if person.id == person_id:
                return person
        return None

    def get_family(self, family_id: str | None) -> Family | None:
        for family in self.families:
            if family.id == family_id:
                return family
        return None

    @property
    def person_ids(self) -> set[str]:
        return {p.id for p in self.persons}


@dataclass(frozen=True)
class PersonPatch:
    """
    Partial update for a Person.

    Fields left as UNSET keep their current value. Any other value overwrites;
    None (or "") clears the field.
    """

    first_name: str | None | _Unset = UNSET
    last_name: str | None | _Unset = UNSET
    birth_date: str | None | _Unset = UNSET
    birth_place: str | None | _Unset = UNSET
    death_date: str | None | _Unset = UNSET
    death_place: str | None | _Unset = UNSET
    gender: Gender | str | None | _Unset = UNSET
    photo_url: str | None | _Unset = UNSET
    notes: str | None | _Unset = UNSET


@dataclass(frozen=True)
class FamilyPatch:
    """Partial update for a Family, same merge rule as PersonPatch."""

    partner1_id: str | None | _Unset = UNSET
    partner2_id: str | None | _Unset = UNSET
    child_ids: tuple[str, ...] | list[str] | None | _Unset = field(default=UNSET)
