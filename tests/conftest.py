import pytest

from models import ChildLink, FamilyUnit, Person, TreeInput


@pytest.fixture
def family_tree():
    """
    Three generations around person 5:

        1 = 2                 grandparents
          |
        3 = 4                 parents
          |
     6  7  5 = 8              siblings, root, spouse
            |
        9  10  11             children
        |
        12                    grandchild
    """
    genders = {
        1: "MALE", 2: "FEMALE", 3: "MALE", 4: "FEMALE", 5: "MALE", 6: "FEMALE",
        7: "MALE", 8: "FEMALE", 9: "MALE", 10: "FEMALE", 11: "MALE", 12: "FEMALE",
    }
    persons = [Person(id=pid, gender=g, name=f"Person {pid}") for pid, g in genders.items()]
    family_units = [
        FamilyUnit(id=101, partners=[1, 2], children=[ChildLink(3)]),
        FamilyUnit(id=102, partners=[3, 4], children=[ChildLink(5, birth_order=2), ChildLink(6, birth_order=1), ChildLink(7, birth_order=3)]),
        FamilyUnit(id=103, partners=[5, 8], children=[ChildLink(9), ChildLink(10), ChildLink(11)]),
        FamilyUnit(id=104, partners=[9], children=[ChildLink(12)]),
    ]
    return TreeInput(root_id=5, persons=persons, family_units=family_units)
