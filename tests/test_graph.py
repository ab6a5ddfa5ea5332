"""Tests for union graph construction."""

import logging

from graph import CHILD_EDGE, FAMILY_NODE, PARTNER_EDGE, PERSON_NODE, build_union_layout_graph
from layout import LayoutOptions
from models import Family, FamilyTree, Person, connector_id
from mutations import add_family, add_person


def test_union_graph_nodes_and_edges(nuclear_family):
    tree, p1, p2, c, f = (nuclear_family[k] for k in ("tree", "p1", "p2", "c", "f"))
    G = build_union_layout_graph(tree, LayoutOptions())
    fam = connector_id(f.id)

    assert list(G.nodes) == [p1.id, p2.id, c.id, fam]
    assert G.nodes[p1.id]["node_type"] == PERSON_NODE
    assert G.nodes[fam]["node_type"] == FAMILY_NODE
    assert G.nodes[fam]["record"] == f
    assert G.edges[p1.id, fam]["edge_type"] == PARTNER_EDGE
    assert G.edges[fam, c.id]["edge_type"] == CHILD_EDGE
    assert G.number_of_edges() == 3


def test_footprints_come_from_options(nuclear_family):
    options = LayoutOptions(person_width=10, person_height=11, family_width=3, family_height=4)
    G = build_union_layout_graph(nuclear_family["tree"], options)
    assert (G.nodes[nuclear_family["c"].id]["width"], G.nodes[nuclear_family["c"].id]["height"]) == (10, 11)
    fam = connector_id(nuclear_family["f"].id)
    assert (G.nodes[fam]["width"], G.nodes[fam]["height"]) == (3, 4)


def test_connector_id_prefix():
    assert connector_id("abc") == "fam:abc"


def test_single_partner_family(empty_tree):
    tree, parent = add_person(empty_tree, first_name="Solo")
    tree, kid = add_person(tree, first_name="Kid")
    tree, f = add_family(tree, partner2_id=parent.id, child_ids=[kid.id])
    G = build_union_layout_graph(tree, LayoutOptions())
    fam = connector_id(f.id)
    assert list(G.predecessors(fam)) == [parent.id]
    assert list(G.successors(fam)) == [kid.id]


def test_connector_id_taken_by_person_keeps_both(caplog):
    tree = FamilyTree(
        id="t",
        name="Clash",
        created_at=0,
        updated_at=0,
        persons=(Person(id="a", tree_id="t"), Person(id="fam:X", tree_id="t")),
        families=(Family(id="X", tree_id="t", partner1_id="a", partner2_id="a", child_ids=("fam:X",)),),
    )
    with caplog.at_level(logging.WARNING, logger="famtree.graph"):
        G = build_union_layout_graph(tree, LayoutOptions())

    assert list(G.nodes) == ["a", "fam:X", "fam:X#2"]
    assert G.nodes["fam:X"]["node_type"] == PERSON_NODE
    assert G.nodes["fam:X#2"]["node_type"] == FAMILY_NODE
    assert list(G.edges) == [("a", "fam:X#2"), ("fam:X#2", "fam:X")]
    assert "fam:X" in caplog.text
