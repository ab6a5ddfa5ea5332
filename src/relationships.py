"""Derived relationship lookups over a tree snapshot."""

from dataclasses import dataclass, field

from models import FamilyTree, Person


@dataclass(frozen=True)
class RelationshipIndex:
    """
    Read-only adjacency maps built from one FamilyTree snapshot.

    Build a new index whenever the tree changes; the index never mutates the
    tree and unknown ids simply produce empty results.
    """

    partner_families: dict[str, set[str]] = field(default_factory=dict)
    child_families: dict[str, set[str]] = field(default_factory=dict)
    family_partners: dict[str, tuple[str, ...]] = field(default_factory=dict)
    family_children: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_tree(cls, tree: FamilyTree) -> "RelationshipIndex":
        index = cls()
        for family in tree.families:
            index.family_partners[family.id] = family.partner_ids
            index.family_children[family.id] = family.child_ids
            for partner_id in family.partner_ids:
                index.partner_families.setdefault(partner_id, set()).add(family.id)
            for child_id in family.child_ids:
                index.child_families.setdefault(child_id, set()).add(family.id)
        return index

    def families_as_partner(self, person_id: str) -> set[str]:
        return set(self.partner_families.get(person_id, ()))

    def families_as_child(self, person_id: str) -> set[str]:
        return set(self.child_families.get(person_id, ()))

    def children_of(self, family_id: str) -> tuple[str, ...]:
        return self.family_children.get(family_id, ())

    def partners_of(self, person_id: str) -> set[str]:
        """Persons sharing a family with this person as the other partner."""
        partners: set[str] = set()
        for family_id in self.partner_families.get(person_id, ()):
            partners.update(self.family_partners[family_id])
        partners.discard(person_id)
        return partners

    def parents_of(self, person_id: str) -> set[str]:
        parents: set[str] = set()
        for family_id in self.child_families.get(person_id, ()):
            parents.update(self.family_partners[family_id])
        return parents

    def siblings_of(self, person_id: str) -> set[str]:
        """Children of any family this person is a child of, excluding the person."""
        siblings: set[str] = set()
        for family_id in self.child_families.get(person_id, ()):
            siblings.update(self.family_children[family_id])
        siblings.discard(person_id)
        return siblings


def build_index(tree: FamilyTree) -> RelationshipIndex:
    return RelationshipIndex.from_tree(tree)


def available_partners(tree: FamilyTree, person_id: str) -> list[Person]:
    """Persons that could be recorded as a new partner of person_id."""
    excluded = build_index(tree).partners_of(person_id)
    excluded.add(person_id)
    return [p for p in tree.persons if p.id not in excluded]
