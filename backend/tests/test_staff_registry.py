from types import SimpleNamespace

from app.models.staff import StaffMember
from app.services.staff_registry import (
    list_roster,
    next_position,
    positional_index_for,
    resolve_staff_reference,
)

ROSTER = [
    SimpleNamespace(id="1f0c", name="Asha"),
    SimpleNamespace(id="0", name="Ravi"),
    SimpleNamespace(id="77aa", name="Meena"),
]


def test_stable_id_match_wins_over_index():
    assert resolve_staff_reference("0", ROSTER).name == "Ravi"


def test_numeric_reference_falls_back_to_position():
    assert resolve_staff_reference("2", ROSTER).name == "Meena"


def test_unresolvable_references():
    assert resolve_staff_reference("99", ROSTER) is None
    assert resolve_staff_reference("-1", ROSTER) is None
    assert resolve_staff_reference("ghost", ROSTER) is None
    assert resolve_staff_reference(None, ROSTER) is None
    assert resolve_staff_reference("", ROSTER) is None


def test_positional_index_for():
    assert positional_index_for("77aa", ROSTER) == 2
    assert positional_index_for("missing", ROSTER) is None


def test_roster_order_and_positions(db_session_factory):
    db = db_session_factory()
    try:
        assert next_position(db) == 0
        db.add(StaffMember(id="b", position=1, name="Second", subject="Art", qualified_classes=["LKG"]))
        db.add(StaffMember(id="a", position=0, name="First", subject="Art", qualified_classes=["LKG"]))
        db.commit()

        assert [member.id for member in list_roster(db)] == ["a", "b"]
        assert next_position(db) == 2
    finally:
        db.close()
