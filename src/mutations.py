"""
Genealogy model operations.

Every function takes a FamilyTree snapshot and returns the next snapshot;
the input is never modified. A tree of None means the tree could not be
loaded and raises NotFound.
"""

import dataclasses
import logging
import time
import uuid

from errors import InvalidReference, NotFound
from models import (
    UNSET,
    Family,
    FamilyPatch,
    FamilyTree,
    Gender,
    Person,
    PersonPatch,
    dedupe_ids,
)

logger = logging.getLogger("famtree.mutations")

DEFAULT_TREE_NAME = "My Family Tree"

# Text fields that clear to "" instead of None
_REQUIRED_TEXT = ("first_name", "last_name")


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def _require_tree(tree: FamilyTree | None) -> FamilyTree:
    if tree is None:
        raise NotFound("tree", None)
    return tree


def _touch(tree: FamilyTree, **changes) -> FamilyTree:
    """Apply changes and advance updated_at, strictly even within one millisecond."""
    updated_at = max(now_ms(), tree.updated_at + 1)
    return dataclasses.replace(tree, updated_at=updated_at, **changes)


def _coerce_gender(value) -> Gender:
    if value is None or value == "":
        return Gender.UNKNOWN
    return Gender(value)


def _check_references(
    tree: FamilyTree,
    partner1_id: str | None,
    partner2_id: str | None,
    child_ids: tuple[str, ...],
) -> None:
    known = tree.person_ids
    if partner1_id and partner1_id not in known:
        raise InvalidReference("partner1_id", partner1_id)
    if partner2_id and partner2_id not in known:
        raise InvalidReference("partner2_id", partner2_id)
    for child_id in child_ids:
        if child_id not in known:
            raise InvalidReference("child_ids", child_id)


# ============================================================================
# Trees
# ============================================================================


def create_tree(name: str = "") -> FamilyTree:
    """Create an empty tree."""
    created = now_ms()
    return FamilyTree(
        id=new_id(),
        name=name.strip() or DEFAULT_TREE_NAME,
        created_at=created,
        updated_at=created,
    )


def rename_tree(tree: FamilyTree | None, name: str) -> FamilyTree:
    tree = _require_tree(tree)
    return _touch(tree, name=name.strip() or DEFAULT_TREE_NAME)


def purge_vacuous_families(tree: FamilyTree | None) -> FamilyTree:
    """Drop families with no partner and no child."""
    tree = _require_tree(tree)
    kept = tuple(f for f in tree.families if not f.is_vacuous)
    if len(kept) == len(tree.families):
        return tree
    logger.info("Purging %d vacuous families", len(tree.families) - len(kept))
    return _touch(tree, families=kept)


# ============================================================================
# Persons
# ============================================================================


def add_person(tree: FamilyTree | None, **fields) -> tuple[FamilyTree, Person]:
    """
    Append a new person with a fresh id.

    Accepts the editable Person fields as keyword arguments.

    Returns:
        The next tree snapshot and the created person.
    """
    tree = _require_tree(tree)
    if "gender" in fields:
        fields["gender"] = _coerce_gender(fields["gender"])
    for name in _REQUIRED_TEXT:
        if fields.get(name) is None:
            fields[name] = ""
    person = Person(id=new_id(), tree_id=tree.id, **fields)
    return _touch(tree, persons=tree.persons + (person,)), person


def update_person(
    tree: FamilyTree | None, person_id: str, patch: PersonPatch
) -> FamilyTree:
    """Merge the supplied patch fields into an existing person."""
    tree = _require_tree(tree)
    current = tree.get_person(person_id)
    if current is None:
        raise NotFound("person", person_id)

    changes = {}
    for f in dataclasses.fields(PersonPatch):
        value = getattr(patch, f.name)
        if value is UNSET:
            continue
        if f.name == "gender":
            value = _coerce_gender(value)
        elif f.name in _REQUIRED_TEXT:
            value = value or ""
        elif value == "":
            value = None
        changes[f.name] = value

    updated = dataclasses.replace(current, **changes)
    persons = tuple(updated if p.id == person_id else p for p in tree.persons)
    return _touch(tree, persons=persons)


def delete_person(tree: FamilyTree | None, person_id: str) -> FamilyTree:
    """
    Remove a person and every reference to them.

    The id is stripped from partner slots and child lists of all families;
    families left with no partner and no child are removed as well.
    """
    tree = _require_tree(tree)
    if tree.get_person(person_id) is None:
        raise NotFound("person", person_id)

    persons = tuple(p for p in tree.persons if p.id != person_id)
    families = []
    for family in tree.families:
        if family.references(person_id):
            family = dataclasses.replace(
                family,
                partner1_id=None if family.partner1_id == person_id else family.partner1_id,
                partner2_id=None if family.partner2_id == person_id else family.partner2_id,
                child_ids=tuple(c for c in family.child_ids if c != person_id),
            )
            if family.is_vacuous:
                logger.debug("Family %s left empty by deleting %s", family.id, person_id)
                continue
        families.append(family)

    return _touch(tree, persons=persons, families=tuple(families))


# ============================================================================
# Families
# ============================================================================


def add_family(
    tree: FamilyTree | None,
    partner1_id: str | None = None,
    partner2_id: str | None = None,
    child_ids=(),
) -> tuple[FamilyTree, Family | None]:
    """
    Record a new family after checking every reference resolves in this tree.

    A family with neither partner nor child is never stored: the tree is
    returned unchanged together with None.

    Raises:
        InvalidReference: if a partner or child id is not a person of the tree.
    """
    tree = _require_tree(tree)
    partner1_id = partner1_id or None
    partner2_id = partner2_id or None
    child_ids = dedupe_ids(child_ids)
    _check_references(tree, partner1_id, partner2_id, child_ids)

    family = Family(
        id=new_id(),
        tree_id=tree.id,
        partner1_id=partner1_id,
        partner2_id=partner2_id,
        child_ids=child_ids,
    )
    if family.is_vacuous:
        logger.debug("Ignoring empty family in tree %s", tree.id)
        return tree, None
    return _touch(tree, families=tree.families + (family,)), family


def update_family(
    tree: FamilyTree | None, family_id: str, patch: FamilyPatch
) -> FamilyTree:
    """Merge the supplied patch fields into a family, removing it if it ends up empty."""
    tree = _require_tree(tree)
    current = tree.get_family(family_id)
    if current is None:
        raise NotFound("family", family_id)

    changes = {}
    if patch.partner1_id is not UNSET:
        changes["partner1_id"] = patch.partner1_id or None
    if patch.partner2_id is not UNSET:
        changes["partner2_id"] = patch.partner2_id or None
    if patch.child_ids is not UNSET:
        changes["child_ids"] = dedupe_ids(patch.child_ids or ())

    _check_references(
        tree,
        changes.get("partner1_id"),
        changes.get("partner2_id"),
        changes.get("child_ids", ()),
    )

    updated = dataclasses.replace(current, **changes)
    if updated.is_vacuous:
        logger.debug("Family %s became empty, removing it", family_id)
        families = tuple(f for f in tree.families if f.id != family_id)
    else:
        families = tuple(updated if f.id == family_id else f for f in tree.families)
    return _touch(tree, families=families)


def delete_family(tree: FamilyTree | None, family_id: str) -> FamilyTree:
    """Remove a family; its members are kept."""
    tree = _require_tree(tree)
    if tree.get_family(family_id) is None:
        raise NotFound("family", family_id)
    return _touch(tree, families=tuple(f for f in tree.families if f.id != family_id))


def add_partner(
    tree: FamilyTree | None, person_id: str, partner_id: str
) -> tuple[FamilyTree, Family]:
    """Record a new union between two existing persons."""
    tree = _require_tree(tree)
    if tree.get_person(person_id) is None:
        raise InvalidReference("partner1_id", person_id)
    return add_family(tree, partner1_id=person_id, partner2_id=partner_id)


def add_child(tree: FamilyTree | None, family_id: str, child_id: str) -> FamilyTree:
    """Append a child to an existing family; a child already listed is a no-op."""
    tree = _require_tree(tree)
    family = tree.get_family(family_id)
    if family is None:
        raise NotFound("family", family_id)
    if child_id in family.child_ids:
        return tree
    return update_family(
        tree, family_id, FamilyPatch(child_ids=family.child_ids + (child_id,))
    )
