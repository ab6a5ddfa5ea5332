"""JSON and CSV serialization of tree snapshots."""

import csv
import io
import json

from models import Family, FamilyTree, Gender, Person

CSV_HEADERS = [
    "id",
    "firstName",
    "lastName",
    "gender",
    "birthDate",
    "birthPlace",
    "deathDate",
    "deathPlace",
    "notes",
]

# JSON key -> Person attribute
PERSON_KEYS = {
    "id": "id",
    "treeId": "tree_id",
    "firstName": "first_name",
    "lastName": "last_name",
    "birthDate": "birth_date",
    "birthPlace": "birth_place",
    "deathDate": "death_date",
    "deathPlace": "death_place",
    "gender": "gender",
    "photoUrl": "photo_url",
    "notes": "notes",
}


def person_to_dict(person: Person) -> dict:
    data = {}
    for key, attr in PERSON_KEYS.items():
        value = getattr(person, attr)
        if value is None:
            continue
        data[key] = value.value if isinstance(value, Gender) else value
    return data


def family_to_dict(family: Family) -> dict:
    data = {"id": family.id, "treeId": family.tree_id, "childIds": list(family.child_ids)}
    if family.partner1_id:
        data["partner1Id"] = family.partner1_id
    if family.partner2_id:
        data["partner2Id"] = family.partner2_id
    return data


def tree_to_dict(tree: FamilyTree) -> dict:
    return {
        "id": tree.id,
        "name": tree.name,
        "createdAt": tree.created_at,
        "updatedAt": tree.updated_at,
        "persons": [person_to_dict(p) for p in tree.persons],
        "families": [family_to_dict(f) for f in tree.families],
    }


def tree_from_dict(data: dict) -> FamilyTree:
    """Rebuild a snapshot from `tree_to_dict` output; missing optional keys become None."""
    tree_id = data["id"]
    persons = []
    for raw in data.get("persons", []):
        fields = {attr: raw.get(key) for key, attr in PERSON_KEYS.items()}
        fields["tree_id"] = fields["tree_id"] or tree_id
        fields["first_name"] = fields["first_name"] or ""
        fields["last_name"] = fields["last_name"] or ""
        fields["gender"] = Gender(fields["gender"] or Gender.UNKNOWN)
        persons.append(Person(**fields))

    families = [
        Family(
            id=raw["id"],
            tree_id=raw.get("treeId") or tree_id,
            partner1_id=raw.get("partner1Id"),
            partner2_id=raw.get("partner2Id"),
            child_ids=tuple(raw.get("childIds", ())),
        )
        for raw in data.get("families", [])
    ]

    return FamilyTree(
        id=tree_id,
        name=data.get("name", ""),
        created_at=data["createdAt"],
        updated_at=data["updatedAt"],
        persons=tuple(persons),
        families=tuple(families),
    )


def export_json(tree: FamilyTree) -> str:
    return json.dumps(tree_to_dict(tree), indent=2)


def load_json(text: str) -> FamilyTree:
    return tree_from_dict(json.loads(text))


def export_csv(tree: FamilyTree) -> str:
    """One row per person, every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for person in tree.persons:
        data = person_to_dict(person)
        writer.writerow([data.get(h, "") for h in CSV_HEADERS])
    return buffer.getvalue()
