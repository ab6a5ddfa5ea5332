"""Rendering of computed tree layouts with Graphviz."""

from pathlib import Path
import logging

import pydot

from graph import PARTNER_EDGE
from layout import PERSON, TreeLayout
from models import Gender

logger = logging.getLogger("famtree.plotting")

POINTS_PER_INCH = 72

FILL_COLORS = {
    Gender.MALE: "lightblue",
    Gender.FEMALE: "lightpink",
    Gender.UNKNOWN: "lightgray",
}


def person_label(person) -> str:
    """Name on the first line, then birth and death dates when known."""
    name = person.full_name or "Unnamed"
    dates = ""
    if person.birth_date or person.death_date:
        dates = f"{person.birth_date or ''} - {person.death_date or ''}".strip()
    return f"{name}\n{dates}" if dates else name


def build_dot(layout: TreeLayout) -> pydot.Dot:
    """
    Translate a layout into a pydot graph with every node pinned in place.

    Graphviz measures y upwards, so rows are flipped against the layout height.
    Render with `neato -n2` to keep the computed positions.
    """
    P = pydot.Dot(graph_type="digraph")
    P.set("splines", "ortho")
    P.set("bb", f"0,0,{layout.width:g},{layout.height:g}")

    for node in layout.nodes:
        cx, cy = node.center
        common = dict(
            pos=f'"{cx:g},{layout.height - cy:g}!"',
            width=f"{node.width / POINTS_PER_INCH:g}",
            height=f"{node.height / POINTS_PER_INCH:g}",
            fixedsize="true",
        )
        if node.node_type == PERSON:
            person = node.data
            P.add_node(
                pydot.Node(
                    f'"{node.id}"',
                    label=person_label(person),
                    shape="box",
                    style="rounded,filled",
                    fillcolor=FILL_COLORS[Gender(person.gender)],
                    fontsize="10",
                    **common,
                )
            )
        else:
            # Family nodes are small connector points
            P.add_node(pydot.Node(f'"{node.id}"', shape="point", label="", **common))

    for edge in layout.edges:
        if edge.edge_type == PARTNER_EDGE:
            # Partner to family node: no arrow
            P.add_edge(pydot.Edge(f'"{edge.source}"', f'"{edge.target}"', dir="none", color="darkgray"))
        else:
            # Family node to child: arrow pointing down
            P.add_edge(pydot.Edge(f'"{edge.source}"', f'"{edge.target}"', color="darkgray"))

    return P


def plot_layout(layout: TreeLayout, output_path: Path | None = None):
    """
    Draw a computed layout.

    Args:
        layout: Output of `layout.compute_layout`
        output_path: Path to save the image (PNG, SVG or PDF). If None, displays interactively.
    """
    P = build_dot(layout)
    prog = ["neato", "-n2"]

    if output_path:
        # Determine format from extension
        ext = output_path.suffix.lower().lstrip(".")
        if ext not in ("png", "svg", "pdf"):
            ext = "png"

        P.write(str(output_path), prog=prog, format=ext)
        logger.info("Graph saved to %s", output_path)
    else:
        # Save to temporary file and display
        import tempfile

        import matplotlib.image as mpimg
        import matplotlib.pyplot as plt

        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            P.write(f.name, prog=prog, format="png")
            img = mpimg.imread(f.name)
            plt.figure(figsize=(20, 16))
            plt.imshow(img)
            plt.axis("off")
            plt.tight_layout()
            plt.show()
