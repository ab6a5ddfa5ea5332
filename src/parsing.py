"""GEDCOM import into a FamilyTree snapshot."""

from pathlib import Path
import dataclasses
import logging

from ged4py import GedcomReader

from models import Family, FamilyTree, Gender, Person, dedupe_ids
from mutations import create_tree, new_id

logger = logging.getLogger("famtree.parsing")


def parse_gedcom(filepath: Path) -> GedcomReader:
    """Parse a GEDCOM file and return the reader object."""
    return GedcomReader(str(filepath))


def split_name(raw: str) -> tuple[str, str]:
    """Split a "Given /Surname/ Suffix" value into first and last name."""
    if "/" not in raw:
        return (raw.strip(), "")
    given, _, rest = raw.partition("/")
    surname, _, suffix = rest.partition("/")
    first_name = " ".join(p for p in (given.strip(), suffix.strip()) if p)
    return (first_name, surname.strip())


def extract_name_parts(indi) -> tuple[str, str]:
    """Extract first name (given name plus suffix) and last name from an individual record."""
    name_rec = indi.sub_tag("NAME")
    if name_rec is None or name_rec.value is None:
        return ("", "")

    name_value = name_rec.value

    # ged4py returns NAME as tuple: (given, surname, suffix)
    if isinstance(name_value, tuple):
        given, surname, suffix = name_value
        first_name = " ".join(p for p in (given, suffix) if p)
        return (first_name, surname or "")

    givn = name_rec.sub_tag("GIVN")
    surn = name_rec.sub_tag("SURN")
    if givn or surn:
        return (givn.value if givn else "", surn.value if surn else "")

    return split_name(str(name_value))


def extract_event_details(indi, tag: str) -> tuple[str | None, str | None]:
    """Extract date and place from an event tag (BIRT, DEAT, etc.)."""
    event = indi.sub_tag(tag)
    if event is None:
        return (None, None)

    date_rec = event.sub_tag("DATE")
    place_rec = event.sub_tag("PLAC")

    # Dates stay free text; ged4py may return DateValue objects
    date_val = None
    if date_rec and date_rec.value:
        date_val = str(date_rec.value)

    place_val = None
    if place_rec and place_rec.value:
        place_val = str(place_rec.value)

    return (date_val, place_val)


def extract_gender(indi) -> Gender:
    """Extract gender from the SEX tag of an individual record."""
    sex_rec = indi.sub_tag("SEX")
    if sex_rec and sex_rec.value in ("M", "F"):
        return Gender(sex_rec.value)
    return Gender.UNKNOWN


def extract_notes(indi) -> str | None:
    notes = [str(n.value) for n in indi.sub_tags("NOTE") if n.value]
    return "\n".join(notes) or None


def import_gedcom(filepath: Path, tree_name: str = "") -> FamilyTree:
    """
    Build a new tree from the INDI and FAM records of a GEDCOM file.

    Every record gets a fresh id. References to individuals missing from the
    file are dropped, and families left without partners and children are
    skipped, so the result satisfies the model invariants.
    """
    reader = parse_gedcom(filepath)
    tree = create_tree(tree_name or Path(filepath).stem)

    # Map GEDCOM xref (@I1@) to person id
    person_ids: dict[str, str] = {}
    persons: list[Person] = []

    # First pass: extract all individuals
    for rec in reader.records0("INDI"):
        if rec.xref_id is None:
            continue

        first_name, last_name = extract_name_parts(rec)
        birth_date, birth_place = extract_event_details(rec, "BIRT")
        death_date, death_place = extract_event_details(rec, "DEAT")

        person = Person(
            id=new_id(),
            tree_id=tree.id,
            first_name=first_name,
            last_name=last_name,
            birth_date=birth_date,
            birth_place=birth_place,
            death_date=death_date,
            death_place=death_place,
            gender=extract_gender(rec),
            notes=extract_notes(rec),
        )
        person_ids[rec.xref_id] = person.id
        persons.append(person)

    def resolve(sub, fam_xref: str) -> str | None:
        if sub is None:
            return None
        xref = getattr(sub, "xref_id", None)
        if xref not in person_ids:
            logger.warning("Family %s references unknown individual %s", fam_xref, xref)
            return None
        return person_ids[xref]

    # Second pass: extract family records
    families: list[Family] = []
    for rec in reader.records0("FAM"):
        if rec.xref_id is None:
            continue

        family = Family(
            id=new_id(),
            tree_id=tree.id,
            partner1_id=resolve(rec.sub_tag("HUSB"), rec.xref_id),
            partner2_id=resolve(rec.sub_tag("WIFE"), rec.xref_id),
            child_ids=dedupe_ids(resolve(child, rec.xref_id) for child in rec.sub_tags("CHIL")),
        )
        if family.is_vacuous:
            logger.info("Skipping family %s with no resolvable members", rec.xref_id)
            continue
        families.append(family)

    logger.info(
        "Imported %d persons and %d families from %s", len(persons), len(families), filepath
    )
    return dataclasses.replace(tree, persons=tuple(persons), families=tuple(families))
