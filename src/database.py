"""SQLite database operations for family tree storage."""

from pathlib import Path
import dataclasses
import logging
import sqlite3

from errors import NotFound
from models import Family, FamilyTree, Gender, Person
from mutations import now_ms

logger = logging.getLogger("famtree.database")

PERSON_COLUMNS = (
    "id",
    "tree_id",
    "first_name",
    "last_name",
    "birth_date",
    "birth_place",
    "death_date",
    "death_place",
    "gender",
    "photo_url",
    "notes",
)


def connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Create SQLite database with tree, person and family tables."""
    conn = connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS tree (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS person (
            id TEXT NOT NULL,
            tree_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            first_name TEXT NOT NULL DEFAULT '',
            last_name TEXT NOT NULL DEFAULT '',
            birth_date TEXT,
            birth_place TEXT,
            death_date TEXT,
            death_place TEXT,
            gender TEXT NOT NULL DEFAULT 'U',
            photo_url TEXT,
            notes TEXT,
            PRIMARY KEY (tree_id, id),
            FOREIGN KEY (tree_id) REFERENCES tree(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS family (
            id TEXT NOT NULL,
            tree_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            partner1_id TEXT,
            partner2_id TEXT,
            PRIMARY KEY (tree_id, id),
            FOREIGN KEY (tree_id) REFERENCES tree(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS family_child (
            tree_id TEXT NOT NULL,
            family_id TEXT NOT NULL,
            child_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            FOREIGN KEY (tree_id, family_id) REFERENCES family(tree_id, id) ON DELETE CASCADE
        )
    """)

    conn.commit()
    return conn


def get_tree(conn: sqlite3.Connection, tree_id: str) -> FamilyTree | None:
    """Load a whole tree snapshot, or None if no tree has this id."""
    cursor = conn.cursor()
    cursor.execute("SELECT id, name, created_at, updated_at FROM tree WHERE id = ?", (tree_id,))
    row = cursor.fetchone()
    if row is None:
        return None

    cursor.execute(
        f"SELECT {', '.join(PERSON_COLUMNS)} FROM person WHERE tree_id = ? ORDER BY position",
        (tree_id,),
    )
    persons = []
    for values in cursor.fetchall():
        fields = dict(zip(PERSON_COLUMNS, values))
        fields["gender"] = Gender(fields["gender"] or Gender.UNKNOWN)
        persons.append(Person(**fields))

    cursor.execute(
        """
        SELECT family_id, child_id FROM family_child
        WHERE tree_id = ? ORDER BY family_id, position
        """,
        (tree_id,),
    )
    children: dict[str, list[str]] = {}
    for family_id, child_id in cursor.fetchall():
        children.setdefault(family_id, []).append(child_id)

    cursor.execute(
        "SELECT id, partner1_id, partner2_id FROM family WHERE tree_id = ? ORDER BY position",
        (tree_id,),
    )
    families = [
        Family(
            id=family_id,
            tree_id=tree_id,
            partner1_id=partner1_id,
            partner2_id=partner2_id,
            child_ids=tuple(children.get(family_id, ())),
        )
        for family_id, partner1_id, partner2_id in cursor.fetchall()
    ]

    return FamilyTree(
        id=row[0],
        name=row[1],
        created_at=row[2],
        updated_at=row[3],
        persons=tuple(persons),
        families=tuple(families),
    )


def put_tree(conn: sqlite3.Connection, tree: FamilyTree):
    """Replace the stored copy of a tree with this snapshot (last writer wins)."""
    with conn:
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO tree (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                created_at = excluded.created_at,
                updated_at = excluded.updated_at
            """,
            (tree.id, tree.name, tree.created_at, tree.updated_at),
        )
        cursor.execute("DELETE FROM family_child WHERE tree_id = ?", (tree.id,))
        cursor.execute("DELETE FROM family WHERE tree_id = ?", (tree.id,))
        cursor.execute("DELETE FROM person WHERE tree_id = ?", (tree.id,))

        # Insert persons
        cursor.executemany(
            f"""
            INSERT INTO person (position, {', '.join(PERSON_COLUMNS)})
            VALUES (?, {', '.join('?' * len(PERSON_COLUMNS))})
            """,
            [
                (
                    i,
                    p.id,
                    tree.id,
                    p.first_name,
                    p.last_name,
                    p.birth_date,
                    p.birth_place,
                    p.death_date,
                    p.death_place,
                    Gender(p.gender).value,
                    p.photo_url,
                    p.notes,
                )
                for i, p in enumerate(tree.persons)
            ],
        )

        # Insert families and their children
        cursor.executemany(
            """
            INSERT INTO family (id, tree_id, position, partner1_id, partner2_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            [(f.id, tree.id, i, f.partner1_id, f.partner2_id) for i, f in enumerate(tree.families)],
        )
        cursor.executemany(
            """
            INSERT INTO family_child (tree_id, family_id, child_id, position)
            VALUES (?, ?, ?, ?)
            """,
            [
                (tree.id, f.id, child_id, i)
                for f in tree.families
                for i, child_id in enumerate(f.child_ids)
            ],
        )
    logger.debug(
        "Stored tree %s (%d persons, %d families)", tree.id, len(tree.persons), len(tree.families)
    )


def list_trees(conn: sqlite3.Connection) -> list[FamilyTree]:
    """All stored trees, most recently updated first."""
    cursor = conn.cursor()
    cursor.execute("SELECT id FROM tree ORDER BY updated_at DESC, id")
    return [get_tree(conn, tree_id) for (tree_id,) in cursor.fetchall()]


def delete_tree(conn: sqlite3.Connection, tree_id: str):
    """Delete a tree together with all of its persons and families."""
    with conn:
        cursor = conn.execute("DELETE FROM tree WHERE id = ?", (tree_id,))
    if cursor.rowcount == 0:
        raise NotFound("tree", tree_id)


def import_tree(conn: sqlite3.Connection, tree: FamilyTree) -> FamilyTree:
    """Store an imported snapshot, stamping it as updated now."""
    tree = dataclasses.replace(tree, updated_at=max(now_ms(), tree.updated_at))
    put_tree(conn, tree)
    return tree


def run_in_tree(conn: sqlite3.Connection, tree_id: str, operation, *args, **kwargs):
    """
    Read a tree, apply one model operation and write the result back.

    `operation` is one of the `mutations` functions; it receives the loaded
    tree as its first argument. Operations returning `(tree, record)` yield
    the record; the others yield the new tree.

    Raises:
        NotFound: if no tree with this id is stored, or the operation raises it.
    """
    tree = get_tree(conn, tree_id)
    if tree is None:
        raise NotFound("tree", tree_id)

    result = operation(tree, *args, **kwargs)
    if isinstance(result, tuple):
        new_tree, record = result
    else:
        new_tree, record = result, result
    put_tree(conn, new_tree)
    return record
