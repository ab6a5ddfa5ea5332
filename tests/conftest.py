"""Shared fixtures: small trees built through the model operations."""

import pytest

from mutations import add_family, add_person, create_tree


@pytest.fixture
def empty_tree():
    return create_tree("Test Family")


@pytest.fixture
def nuclear_family(empty_tree):
    """P1 and P2 as partners of family F with one child C."""
    tree, p1 = add_person(empty_tree, first_name="John", last_name="Smith", gender="M")
    tree, p2 = add_person(tree, first_name="Mary", last_name="Smith", gender="F")
    tree, c = add_person(tree, first_name="Anne", last_name="Smith", gender="F")
    tree, f = add_family(tree, partner1_id=p1.id, partner2_id=p2.id, child_ids=[c.id])
    return {"tree": tree, "p1": p1, "p2": p2, "c": c, "f": f}
