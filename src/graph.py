"""NetworkX graph building for family tree layout."""

import logging
from typing import TYPE_CHECKING

import networkx as nx

from models import FamilyTree, connector_id

if TYPE_CHECKING:
    from layout import LayoutOptions

logger = logging.getLogger("famtree.graph")

PERSON_NODE = "person"
FAMILY_NODE = "family"
PARTNER_EDGE = "partner_to_family"
CHILD_EDGE = "family_to_child"


def build_union_layout_graph(tree: FamilyTree, options: "LayoutOptions") -> nx.DiGraph:
    """
    Build a layout graph using the union-node model.

    Every family becomes a small connector node that its partners point to and
    that points to each of its children:
    - Partners sit above the union, children hang below it
    - Siblings share one connector, so they align under it
    - A family without partners still links its connector to its children

    References to persons missing from the tree are skipped with a warning.

    Args:
        tree: The snapshot to lay out
        options: Node footprints

    Returns:
        A DiGraph whose node and edge insertion order follows the snapshot order
    """
    H = nx.DiGraph()

    for person in tree.persons:
        H.add_node(
            person.id,
            node_type=PERSON_NODE,
            width=options.person_width,
            height=options.person_height,
            record=person,
        )

    for family in tree.families:
        fam_id = _connector_vertex(H, family.id)
        H.add_node(
            fam_id,
            node_type=FAMILY_NODE,
            width=options.family_width,
            height=options.family_height,
            record=family,
        )

        for slot, partner_id in (("partner1", family.partner1_id), ("partner2", family.partner2_id)):
            if not partner_id:
                continue
            if not _is_person(H, partner_id):
                logger.warning(
                    "Family %s: %s %s is not in tree %s, skipping edge",
                    family.id, slot, partner_id, tree.id,
                )
                continue
            H.add_edge(partner_id, fam_id, edge_type=PARTNER_EDGE)

        for child_id in family.child_ids:
            if not _is_person(H, child_id):
                logger.warning(
                    "Family %s: child %s is not in tree %s, skipping edge",
                    family.id, child_id, tree.id,
                )
                continue
            H.add_edge(fam_id, child_id, edge_type=CHILD_EDGE)

    return H


def _connector_vertex(H: nx.DiGraph, family_id: str) -> str:
    """Return connector_id(family_id), suffixed if a vertex already uses it."""
    fam_id = connector_id(family_id)
    if fam_id not in H:
        return fam_id
    n = 2
    while f"{fam_id}#{n}" in H:
        n += 1
    logger.warning(
        "Connector id %s of family %s is already taken, using %s#%d",
        fam_id, family_id, fam_id, n,
    )
    return f"{fam_id}#{n}"


def _is_person(H: nx.DiGraph, node_id: str) -> bool:
    return node_id in H and H.nodes[node_id].get("node_type") == PERSON_NODE
