"""Tests for the genealogy model operations."""

from dataclasses import replace

import pytest

from errors import InvalidReference, NotFound
from models import Family, FamilyPatch, Gender, PersonPatch
from mutations import (
    DEFAULT_TREE_NAME,
    add_child,
    add_family,
    add_partner,
    add_person,
    create_tree,
    delete_family,
    delete_person,
    purge_vacuous_families,
    rename_tree,
    update_family,
    update_person,
)


# ============================================================================
# Trees
# ============================================================================


def test_create_tree_is_empty():
    tree = create_tree("Smiths")
    assert tree.name == "Smiths"
    assert tree.persons == ()
    assert tree.families == ()
    assert tree.created_at == tree.updated_at


def test_create_tree_blank_name_gets_default():
    assert create_tree("   ").name == DEFAULT_TREE_NAME


def test_rename_tree_bumps_updated_at(empty_tree):
    renamed = rename_tree(empty_tree, "Joneses")
    assert renamed.name == "Joneses"
    assert renamed.id == empty_tree.id
    assert renamed.updated_at > empty_tree.updated_at


def test_operations_on_missing_tree_raise_not_found():
    with pytest.raises(NotFound) as exc:
        add_person(None, first_name="Ghost")
    assert exc.value.kind == "tree"
    with pytest.raises(NotFound):
        delete_family(None, "f1")


# ============================================================================
# Persons
# ============================================================================


def test_add_person_ids_unique_and_updated_at_advances(empty_tree):
    tree = empty_tree
    seen = set()
    for i in range(20):
        before = tree.updated_at
        tree, person = add_person(tree, first_name=f"Person {i}")
        assert person.id not in seen
        seen.add(person.id)
        assert tree.updated_at > before
    assert len(tree.persons) == 20
    assert len(tree.person_ids) == 20


def test_add_person_defaults(empty_tree):
    tree, person = add_person(empty_tree)
    assert person.tree_id == tree.id
    assert person.first_name == ""
    assert person.last_name == ""
    assert person.gender is Gender.UNKNOWN
    assert person.birth_date is None
    assert tree.persons[-1] == person


def test_add_person_does_not_modify_input(empty_tree):
    add_person(empty_tree, first_name="John")
    assert empty_tree.persons == ()


def test_add_person_rejects_unknown_gender(empty_tree):
    with pytest.raises(ValueError):
        add_person(empty_tree, gender="X")


def test_update_person_merges_only_supplied_fields(empty_tree):
    tree, person = add_person(
        empty_tree, first_name="John", last_name="Smith", birth_date="1 JAN 1900", notes="farmer"
    )
    tree = update_person(tree, person.id, PersonPatch(last_name="Smyth", gender="M"))
    updated = tree.get_person(person.id)
    assert updated.first_name == "John"
    assert updated.last_name == "Smyth"
    assert updated.gender is Gender.MALE
    assert updated.birth_date == "1 JAN 1900"
    assert updated.notes == "farmer"


def test_update_person_clears_explicit_empty_values(empty_tree):
    tree, person = add_person(
        empty_tree, first_name="John", birth_date="1900", birth_place="York", gender="M"
    )
    tree = update_person(
        tree, person.id, PersonPatch(birth_date=None, birth_place="", gender=None, first_name=None)
    )
    updated = tree.get_person(person.id)
    assert updated.birth_date is None
    assert updated.birth_place is None
    assert updated.gender is Gender.UNKNOWN
    assert updated.first_name == ""


def test_update_person_missing_raises_not_found(empty_tree):
    with pytest.raises(NotFound) as exc:
        update_person(empty_tree, "nobody", PersonPatch(first_name="X"))
    assert exc.value.kind == "person"
    assert exc.value.entity_id == "nobody"


def test_update_person_bumps_updated_at(nuclear_family):
    tree = nuclear_family["tree"]
    updated = update_person(tree, nuclear_family["c"].id, PersonPatch(notes="twin"))
    assert updated.updated_at > tree.updated_at


def test_delete_partner_keeps_family_with_remaining_members(nuclear_family):
    tree, p1, p2, c, f = (nuclear_family[k] for k in ("tree", "p1", "p2", "c", "f"))
    tree = delete_person(tree, p2.id)
    family = tree.get_family(f.id)
    assert family is not None
    assert family.partner1_id == p1.id
    assert family.partner2_id is None
    assert family.child_ids == (c.id,)
    assert tree.get_person(p2.id) is None


def test_delete_both_partners_keeps_family_with_child(nuclear_family):
    tree, p1, p2, c, f = (nuclear_family[k] for k in ("tree", "p1", "p2", "c", "f"))
    tree = delete_person(tree, p1.id)
    tree = delete_person(tree, p2.id)
    family = tree.get_family(f.id)
    assert family.partner_ids == ()
    assert family.child_ids == (c.id,)


def test_delete_partners_of_childless_family_removes_it(empty_tree):
    tree, p1 = add_person(empty_tree, first_name="A")
    tree, p2 = add_person(tree, first_name="B")
    tree, c = add_person(tree, first_name="C")
    tree, f = add_family(tree, partner1_id=p1.id, partner2_id=p2.id)
    tree = delete_person(tree, p1.id)
    tree = delete_person(tree, p2.id)
    assert tree.get_family(f.id) is None
    assert tree.get_person(c.id) is not None


def test_delete_person_strips_every_reference(empty_tree):
    tree, a = add_person(empty_tree, first_name="A")
    tree, b = add_person(tree, first_name="B")
    tree, c = add_person(tree, first_name="C")
    tree, d = add_person(tree, first_name="D")
    tree, f1 = add_family(tree, partner1_id=a.id, partner2_id=b.id, child_ids=[c.id])
    tree, f2 = add_family(tree, partner1_id=c.id, partner2_id=d.id)
    tree, f3 = add_family(tree, child_ids=[c.id])

    tree = delete_person(tree, c.id)

    for family in tree.families:
        assert not family.references(c.id)
    assert tree.get_family(f1.id).child_ids == ()
    assert tree.get_family(f2.id).partner_ids == (d.id,)
    # f3 only had C as a child
    assert tree.get_family(f3.id) is None


def test_delete_person_twice_raises_not_found(nuclear_family):
    tree = delete_person(nuclear_family["tree"], nuclear_family["c"].id)
    with pytest.raises(NotFound):
        delete_person(tree, nuclear_family["c"].id)


# ============================================================================
# Families
# ============================================================================


def test_add_family_rejects_dangling_partner(nuclear_family):
    with pytest.raises(InvalidReference) as exc:
        add_family(nuclear_family["tree"], partner1_id=nuclear_family["p1"].id, partner2_id="ghost")
    assert exc.value.field == "partner2_id"
    assert exc.value.entity_id == "ghost"


def test_add_family_rejects_dangling_child(nuclear_family):
    with pytest.raises(InvalidReference) as exc:
        add_family(nuclear_family["tree"], child_ids=[nuclear_family["c"].id, "ghost"])
    assert exc.value.field == "child_ids"


def test_add_family_dedupes_children(nuclear_family):
    c = nuclear_family["c"].id
    tree, family = add_family(nuclear_family["tree"], child_ids=[c, c])
    assert family.child_ids == (c,)
    assert tree.families[-1] == family


def test_add_family_without_members_is_not_stored(empty_tree):
    tree, family = add_family(empty_tree)
    assert family is None
    assert tree.families == ()


def test_add_family_children_only(nuclear_family):
    tree, family = add_family(nuclear_family["tree"], child_ids=[nuclear_family["p1"].id])
    assert family.partner_ids == ()
    assert tree.updated_at > nuclear_family["tree"].updated_at


def test_update_family_rejects_dangling_reference(nuclear_family):
    tree, f = nuclear_family["tree"], nuclear_family["f"]
    with pytest.raises(InvalidReference):
        update_family(tree, f.id, FamilyPatch(child_ids=["ghost"]))


def test_update_family_missing_raises_not_found(empty_tree):
    with pytest.raises(NotFound) as exc:
        update_family(empty_tree, "nope", FamilyPatch(partner1_id=None))
    assert exc.value.kind == "family"


def test_update_family_keeps_unsupplied_fields(nuclear_family):
    tree, f, p1, c = (nuclear_family[k] for k in ("tree", "f", "p1", "c"))
    tree = update_family(tree, f.id, FamilyPatch(partner2_id=None))
    family = tree.get_family(f.id)
    assert family.partner1_id == p1.id
    assert family.partner2_id is None
    assert family.child_ids == (c.id,)


def test_update_family_to_empty_removes_it(nuclear_family):
    tree, f = nuclear_family["tree"], nuclear_family["f"]
    tree = update_family(
        tree, f.id, FamilyPatch(partner1_id=None, partner2_id=None, child_ids=None)
    )
    assert tree.get_family(f.id) is None
    assert len(tree.persons) == 3


def test_delete_family_keeps_persons(nuclear_family):
    tree = delete_family(nuclear_family["tree"], nuclear_family["f"].id)
    assert tree.families == ()
    assert len(tree.persons) == 3


def test_delete_family_missing_raises_not_found(empty_tree):
    with pytest.raises(NotFound):
        delete_family(empty_tree, "nope")


def test_add_partner_records_union(nuclear_family):
    tree, p1 = nuclear_family["tree"], nuclear_family["p1"]
    tree, second = add_person(tree, first_name="Jane")
    tree, family = add_partner(tree, p1.id, second.id)
    assert family.partner1_id == p1.id
    assert family.partner2_id == second.id
    assert family.child_ids == ()


def test_add_partner_rejects_unknown_person(nuclear_family):
    with pytest.raises(InvalidReference):
        add_partner(nuclear_family["tree"], "ghost", nuclear_family["p1"].id)


def test_add_child_appends(nuclear_family):
    tree, f, c = nuclear_family["tree"], nuclear_family["f"], nuclear_family["c"]
    tree, second = add_person(tree, first_name="Tom")
    tree = add_child(tree, f.id, second.id)
    assert tree.get_family(f.id).child_ids == (c.id, second.id)


def test_add_child_already_listed_leaves_tree_unchanged(nuclear_family):
    tree, f, c = nuclear_family["tree"], nuclear_family["f"], nuclear_family["c"]
    assert add_child(tree, f.id, c.id) is tree


def test_purge_vacuous_families(nuclear_family):
    tree = nuclear_family["tree"]
    broken = replace(tree, families=tree.families + (Family(id="empty", tree_id=tree.id),))
    purged = purge_vacuous_families(broken)
    assert purged.get_family("empty") is None
    assert purged.get_family(nuclear_family["f"].id) is not None
    assert purge_vacuous_families(tree) is tree


# ============================================================================
# updated_at
# ============================================================================


def _with_vacuous_family(fam):
    tree = fam["tree"]
    return replace(tree, families=tree.families + (Family(id="empty", tree_id=tree.id),))


def _with_new_person(fam):
    tree, _ = add_person(fam["tree"], first_name="Tom")
    return tree


@pytest.mark.parametrize(
    "prepare, operation",
    [
        (None, lambda t, fam: delete_person(t, fam["c"].id)),
        (None, lambda t, fam: update_family(t, fam["f"].id, FamilyPatch(partner2_id=None))),
        (
            None,
            lambda t, fam: update_family(
                t, fam["f"].id, FamilyPatch(partner1_id=None, partner2_id=None, child_ids=())
            ),
        ),
        (None, lambda t, fam: delete_family(t, fam["f"].id)),
        (_with_new_person, lambda t, fam: add_child(t, fam["f"].id, t.persons[-1].id)),
        (None, lambda t, fam: add_partner(t, fam["p1"].id, fam["c"].id)[0]),
        (_with_vacuous_family, lambda t, fam: purge_vacuous_families(t)),
    ],
    ids=[
        "delete_person",
        "update_family",
        "update_family_to_empty",
        "delete_family",
        "add_child",
        "add_partner",
        "purge_vacuous_families",
    ],
)
def test_mutation_bumps_updated_at(nuclear_family, prepare, operation):
    before = prepare(nuclear_family) if prepare else nuclear_family["tree"]
    after = operation(before, nuclear_family)
    assert after is not before
    assert after.updated_at > before.updated_at
