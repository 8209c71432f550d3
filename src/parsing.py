"""Input adapters: REST-style JSON payloads and GEDCOM files."""

import logging
import re
from pathlib import Path

from ged4py import GedcomReader

from errors import InputError
from models import ChildLink, FamilyUnit, Person, RelationshipEdge, TreeInput

logger = logging.getLogger(__name__)

SEX_MAP = {"M": "MALE", "F": "FEMALE"}

# GEDCOM PEDI values to lineage types
PEDIGREE_MAP = {
    "birth": "BIOLOGICAL",
    "adopted": "ADOPTED",
    "foster": "FOSTER",
    "sealing": "BIOLOGICAL",
    "step": "STEP",
}


# ============================================================================
# JSON payloads
# ============================================================================


def _require(record: dict, key: str, what: str):
    if key not in record or record[key] is None:
        raise InputError(f"{what} is missing required field '{key}': {record!r}")
    return record[key]


def _person_ref(value) -> int:
    # Partners and children may be bare ids or {"personId": id} objects
    if isinstance(value, dict):
        return int(_require(value, "personId", "Person reference"))
    return int(value)


def person_from_dict(record: dict) -> Person:
    return Person(
        id=int(_require(record, "id", "Person")),
        gender=record.get("gender"),
        is_deceased=bool(record.get("isDeceased") or record.get("deathDate")),
        name=record.get("fullName") or record.get("name"),
    )


def family_unit_from_dict(record: dict) -> FamilyUnit:
    children = []
    for child in record.get("children") or []:
        if isinstance(child, dict):
            children.append(
                ChildLink(
                    person_id=_person_ref(child),
                    lineage_type=child.get("lineageType") or "BIOLOGICAL",
                    birth_order=child.get("birthOrder"),
                )
            )
        else:
            children.append(ChildLink(person_id=int(child)))

    return FamilyUnit(
        id=int(_require(record, "id", "Family unit")),
        partners=[_person_ref(p) for p in record.get("partners") or []],
        children=children,
        marriage_type=record.get("marriageType"),
        status=record.get("status"),
    )


def relationship_from_dict(record: dict) -> RelationshipEdge:
    to_id = record.get("toId", record.get("toMemberId"))
    if to_id is None:
        raise InputError(f"Relationship is missing 'toId': {record!r}")
    from_id = record.get("fromId")
    return RelationshipEdge(
        to_id=int(to_id),
        category=_require(record, "category", "Relationship"),
        label=record.get("label") or "",
        from_id=int(from_id) if from_id is not None else None,
    )


def tree_from_dict(payload: dict, root_id: int | None = None) -> TreeInput:
    """
    Build a TreeInput from a camelCase payload.

    Args:
        payload: Dict with rootPersonId (or rootId), persons, familyUnits and
            optionally relationships
        root_id: Overrides the payload's root

    Raises:
        InputError: On a missing root or a record without its required fields
    """
    if root_id is None:
        root_id = payload.get("rootPersonId", payload.get("rootId"))
    if root_id is None:
        raise InputError("Payload has no rootPersonId")

    try:
        persons = [person_from_dict(p) for p in payload.get("persons") or []]
        family_units = [family_unit_from_dict(u) for u in payload.get("familyUnits") or []]
        relationships = None
        if payload.get("relationships") is not None:
            relationships = [relationship_from_dict(r) for r in payload["relationships"]]
    except (TypeError, ValueError) as exc:
        raise InputError(f"Malformed payload: {exc}") from exc

    return TreeInput(
        root_id=int(root_id),
        persons=persons,
        family_units=family_units,
        relationships=relationships,
    )


# ============================================================================
# GEDCOM
# ============================================================================


def extract_numeric_id(xref_id: str) -> int:
    """Extract numeric part from GEDCOM xref_id like '@I_347421849@' or 'I674624289'."""
    digits = re.sub(r"[^0-9]", "", xref_id)
    if not digits:
        raise InputError(f"No numeric ID found in: {xref_id}")
    return int(digits)


def extract_name(indi) -> str | None:
    """Full name of an individual record, or None."""
    name_rec = indi.sub_tag("NAME")
    if name_rec is None or name_rec.value is None:
        return None

    # ged4py returns NAME as tuple: (given, surname, suffix)
    if isinstance(name_rec.value, tuple):
        parts = [p for p in name_rec.value if p]
        return " ".join(parts) or None

    return str(name_rec.value).replace("/", "").strip() or None


def extract_sex(indi) -> str | None:
    sex_rec = indi.sub_tag("SEX")
    return SEX_MAP.get(str(sex_rec.value).upper()) if sex_rec and sex_rec.value else None


def extract_pedigrees(indi) -> dict[str, str]:
    """Lineage type per family xref from the individual's FAMC links."""
    pedigrees = {}
    for famc in indi.sub_tags("FAMC", follow=False):
        pedi = famc.sub_tag("PEDI")
        if famc.value and pedi and pedi.value:
            pedigrees[famc.value] = PEDIGREE_MAP.get(str(pedi.value).lower(), "BIOLOGICAL")
    return pedigrees


def normalize_data(reader: GedcomReader) -> tuple[list[Person], list[FamilyUnit]]:
    """
    Extract persons and family units from parsed GEDCOM data.
    Ignores non-standard Ancestry-specific tags (starting with _).
    """
    persons: list[Person] = []
    family_units: list[FamilyUnit] = []
    pedigrees: dict[int, dict[str, str]] = {}

    # First pass: extract all individuals
    for rec in reader.records0("INDI"):
        if rec.xref_id is None:
            continue

        indi_id = extract_numeric_id(rec.xref_id)
        persons.append(
            Person(
                id=indi_id,
                gender=extract_sex(rec),
                is_deceased=rec.sub_tag("DEAT") is not None,
                name=extract_name(rec),
            )
        )
        pedigrees[indi_id] = extract_pedigrees(rec)

    # Second pass: extract family records
    for rec in reader.records0("FAM"):
        if rec.xref_id is None:
            continue

        partners = []
        for tag in ("HUSB", "WIFE"):
            partner = rec.sub_tag(tag)
            if partner and partner.xref_id:
                partners.append(extract_numeric_id(partner.xref_id))

        children = []
        for order, child in enumerate(rec.sub_tags("CHIL"), start=1):
            if not child.xref_id:
                continue
            child_id = extract_numeric_id(child.xref_id)
            lineage = pedigrees.get(child_id, {}).get(rec.xref_id, "BIOLOGICAL")
            children.append(ChildLink(person_id=child_id, lineage_type=lineage, birth_order=order))

        family_units.append(
            FamilyUnit(id=extract_numeric_id(rec.xref_id), partners=partners, children=children)
        )

    return persons, family_units


def load_gedcom(path: str | Path, root_id: int | None = None) -> TreeInput:
    """
    Read a GEDCOM file into a TreeInput.

    The root defaults to the first individual in the file.
    """
    with GedcomReader(str(path)) as reader:
        persons, family_units = normalize_data(reader)

    logger.info("Read %d persons and %d family units from %s", len(persons), len(family_units), path)

    if root_id is None:
        if not persons:
            raise InputError(f"No individuals in {path}")
        root_id = persons[0].id

    return TreeInput(root_id=root_id, persons=persons, family_units=family_units)
