"""Integrity checks for family tree snapshots."""

from collections import Counter

from models import Family, FamilyTree


def validate_tree(tree: FamilyTree) -> list[str]:
    """
    Validate a tree snapshot for:
    - Duplicate person or family ids
    - Persons or families recorded under another tree
    - Partner or child references that do not resolve to a person of the tree
    - Families with neither partners nor children

    Returns a list of warning messages; an empty list means the snapshot can
    be handed to the model operations and the layout engine as is.
    """
    warnings: list[str] = []

    for kind, ids in (
        ("person", [p.id for p in tree.persons]),
        ("family", [f.id for f in tree.families]),
    ):
        for entity_id, count in Counter(ids).items():
            if count > 1:
                warnings.append(f"Duplicate {kind} id {entity_id} appears {count} times")

    for record in (*tree.persons, *tree.families):
        if record.tree_id != tree.id:
            kind = "Family" if isinstance(record, Family) else "Person"
            warnings.append(f"{kind} {record.id} belongs to tree {record.tree_id}, not {tree.id}")

    known = tree.person_ids
    for family in tree.families:
        for slot in ("partner1_id", "partner2_id"):
            partner_id = getattr(family, slot)
            if partner_id and partner_id not in known:
                warnings.append(f"Family {family.id}: {slot} {partner_id} does not exist")
        for child_id in family.child_ids:
            if child_id not in known:
                warnings.append(f"Family {family.id}: child {child_id} does not exist")
        if family.is_vacuous:
            warnings.append(f"Family {family.id} has no partners and no children")

    return warnings
