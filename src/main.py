"""
1) Import the family tree in a GEDCOM file as a tree snapshot.
2) Check the snapshot for dangling references and empty families.
3) Store the snapshot with SQLite and read it back.
4) Lay out persons and family connectors top to bottom.
5) Render the layout and export the tree as JSON and CSV.
"""

from pathlib import Path
import logging
import os
import sys

from database import create_database, get_tree, import_tree
from exporting import export_csv, export_json
from layout import compute_layout
from mutations import purge_vacuous_families
from parsing import import_gedcom
from plotting import plot_layout
from validation import validate_tree

logger = logging.getLogger("famtree")


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=os.environ.get("FAMTREE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Paths
    project_root = Path(__file__).parent.parent
    gedcom_path = Path(argv[0]) if argv else project_root / "family.ged"
    db_path = project_root / "family_tree.db"
    plot_path = project_root / "family_tree.png"
    json_path = project_root / "family_tree.json"
    csv_path = project_root / "family_tree.csv"

    logger.info("Parsing GEDCOM file: %s", gedcom_path)
    tree = import_gedcom(gedcom_path)

    logger.info("Validating tree...")
    warnings = validate_tree(tree)
    if warnings:
        logger.warning("Found %d validation warnings:", len(warnings))
        for w in warnings[:10]:  # Show first 10 warnings
            logger.warning("  - %s", w)
        if len(warnings) > 10:
            logger.warning("  ... and %d more", len(warnings) - 10)
        tree = purge_vacuous_families(tree)
    else:
        logger.info("No validation issues found")

    logger.info("Storing tree in SQLite: %s", db_path)
    conn = create_database(db_path)
    try:
        stored = import_tree(conn, tree)
        tree = get_tree(conn, stored.id)
    finally:
        conn.close()

    logger.info("Computing layout...")
    layout = compute_layout(tree)
    logger.info("  Layout has %d nodes and %d edges", len(layout.nodes), len(layout.edges))

    logger.info("Plotting tree to: %s", plot_path)
    plot_layout(layout, plot_path)

    json_path.write_text(export_json(tree), encoding="utf-8")
    csv_path.write_text(export_csv(tree), encoding="utf-8")
    logger.info("Exported %s and %s", json_path.name, csv_path.name)


if __name__ == "__main__":
    main()
