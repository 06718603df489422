import pytest

from app.core.exceptions import (
    ConfigurationError,
    GenerationInProgressError,
    GenerationTransportError,
    MalformedResponseError,
)
from app.services.generation import is_overload_error, single_flight
from app.services.reconciler import fallback_grid


def add_staff(client, name, classes, subject="Maths"):
    response = client.post(
        "/api/staff",
        json={"name": name, "subject": subject, "qualified_classes": classes},
    )
    assert response.status_code == 201
    return response.json()


def make_grid(days=5, periods=8, staff_id="0"):
    return [[[{"staffId": staff_id}] for _ in range(periods)] for _ in range(days)]


def generate(client, payload=None):
    if payload is None:
        return client.post("/api/timetables/generate")
    return client.post("/api/timetables/generate", json=payload)


def test_generate_with_empty_roster_makes_no_external_call(client, fake_generator):
    response = generate(client)

    assert response.status_code == 400
    assert response.json()["details"] == {"reason": "empty_roster"}
    assert fake_generator.requests == []


def test_generate_for_explicit_empty_class_list(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])

    response = generate(client, {"class_names": []})

    assert response.status_code == 400
    assert response.json()["details"] == {"reason": "no_classes"}
    assert fake_generator.requests == []


def test_generate_passes_valid_grid_through(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    add_staff(client, "Ravi Kumar", ["Class 1"])
    grid = make_grid(staff_id="1")
    fake_generator.response = {"allClassTimetables": [{"className": "Class 1", "data": grid}]}

    response = generate(client)

    assert response.status_code == 200
    body = response.json()
    assert body["timetables"] == {"Class 1": grid}
    assert body["advisory"] is None
    assert body["fallback_classes"] == []
    assert body["persisted"] is True

    sent = fake_generator.requests[0]
    assert sent.class_names == ["Class 1"]
    assert (sent.periods_per_day, sent.days_per_week, sent.breaks_per_day) == (8, 5, 2)
    assert [entry.positional_index for entry in sent.staff_roster] == [0, 1]

    stored = client.get("/api/timetables").json()
    assert stored["timetables"] == {"Class 1": grid}


def test_generate_fills_missing_class_with_fallback(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    add_staff(client, "Ravi Kumar", ["Class 2"])
    fake_generator.response = {"allClassTimetables": [{"className": "Class 1", "data": make_grid()}]}

    body = generate(client).json()

    assert set(body["timetables"]) == {"Class 1", "Class 2"}
    assert body["timetables"]["Class 2"] == fallback_grid(5, 8)
    assert body["fallback_classes"] == ["Class 2"]
    assert body["advisory"] == "partial"
    assert "Class 2" in body["message"]
    assert body["persisted"] is True


def test_transport_failure_returns_fallback_with_overload_advisory(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1", "Class 2"])
    fake_generator.error = GenerationTransportError("[503 Service Unavailable] The model is overloaded", status=503)

    response = generate(client)

    assert response.status_code == 200
    body = response.json()
    assert body["advisory"] == "overloaded"
    assert "overloaded" in body["message"]
    assert body["persisted"] is False
    assert body["timetables"] == {"Class 1": fallback_grid(5, 8), "Class 2": fallback_grid(5, 8)}


def test_total_failure_keeps_previous_timetables(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    fake_generator.response = {"Class 1": make_grid()}
    generate(client)

    fake_generator.response = None
    fake_generator.error = GenerationTransportError("connection reset")
    body = generate(client).json()

    assert body["advisory"] == "failed"
    assert client.get("/api/timetables").json()["timetables"] == {"Class 1": make_grid()}


def test_malformed_response_is_routed_to_fallback(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    fake_generator.error = MalformedResponseError("Generator output is not valid JSON")

    body = generate(client).json()

    assert body["advisory"] == "failed"
    assert body["timetables"]["Class 1"] == fallback_grid(5, 8)
    assert body["persisted"] is True
    assert client.get("/api/timetables/Class 1").json()["grid"] == fallback_grid(5, 8)


def test_answer_without_usable_classes_is_stored_for_manual_editing(client, fake_generator):
    asha = add_staff(client, "Asha Rao", ["Class 1"])
    fake_generator.response = {"allClassTimetables": []}

    body = generate(client).json()

    assert body["advisory"] == "failed"
    assert body["persisted"] is True
    assert client.get("/api/timetables").json()["fallback_classes"] == ["Class 1"]

    response = client.put(
        "/api/timetables/Class 1/slots",
        json={"day_index": 0, "period_index": 0, "staff_id": asha["id"]},
    )
    assert response.status_code == 200
    assert response.json()["grid"][0][0] == [{"staffId": "0"}]


def test_unconfigured_generator_keeps_previous_timetables(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    fake_generator.response = {"Class 1": make_grid()}
    generate(client)

    fake_generator.error = ConfigurationError("Timetable generator API key is not configured")
    body = generate(client).json()

    assert body["persisted"] is False
    assert client.get("/api/timetables/Class 1").json()["grid"] == make_grid()


def test_generate_with_custom_dimensions(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])

    body = generate(client, {"periods_per_day": 3, "days_per_week": 2, "break_count": 1}).json()

    assert body["timetables"]["Class 1"] == fallback_grid(2, 3)
    assert fake_generator.requests[0].breaks_per_day == 1


def test_slot_edit_translates_stable_id_to_position(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    ravi = add_staff(client, "Ravi Kumar", ["Class 1"])
    fake_generator.response = {"Class 1": make_grid()}
    generate(client)

    response = client.put(
        "/api/timetables/Class 1/slots",
        json={"day_index": 0, "period_index": 0, "activity_index": 0, "staff_id": ravi["id"]},
    )

    assert response.status_code == 200
    grid = response.json()["grid"]
    expected = make_grid()
    expected[0][0][0] = {"staffId": "1"}
    assert grid == expected
    assert client.get("/api/timetables/Class 1").json()["grid"] == expected


def test_slot_edit_with_deleted_staff_is_rejected(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    ravi = add_staff(client, "Ravi Kumar", ["Class 1"])
    fake_generator.response = {"Class 1": make_grid()}
    generate(client)
    client.delete(f"/api/staff/{ravi['id']}")

    response = client.put(
        "/api/timetables/Class 1/slots",
        json={"day_index": 0, "period_index": 0, "staff_id": ravi["id"]},
    )

    assert response.status_code == 409
    assert response.json()["details"] == {"staff_id": ravi["id"]}
    assert client.get("/api/timetables/Class 1").json()["grid"] == make_grid()


def test_slot_edit_requires_generated_class(client):
    response = client.put("/api/timetables/Class 9/slots", json={"day_index": 0, "period_index": 0})

    assert response.status_code == 404


def test_slot_edit_unassigns(client, fake_generator):
    add_staff(client, "Asha Rao", ["Class 1"])
    fake_generator.response = {"Class 1": make_grid()}
    generate(client)

    response = client.put(
        "/api/timetables/Class 1/slots",
        json={"day_index": 4, "period_index": 7, "staff_id": None},
    )

    assert response.json()["grid"][4][7] == [None]


def test_class_view_resolves_staff_and_degrades_unknown_indices(client, fake_generator):
    asha = add_staff(client, "Asha Rao", ["Class 1"], subject="Maths")
    ravi = add_staff(client, "Ravi Kumar", ["Class 1"], subject="English")
    grid = [[[{"staffId": "0"}], [{"staffId": "1"}], [{"staffId": "99"}], [None]]]
    fake_generator.response = {"Class 1": grid}
    generate(client)

    view = client.get("/api/timetables/Class 1/view").json()

    assert view["day_labels"] == ["Monday"]
    first, second, unknown, empty = view["grid"][0]
    assert first[0]["staff_member_id"] == asha["id"]
    assert first[0]["name"] == "Asha Rao"
    assert second[0]["subject"] == "English"
    assert unknown[0] == {
        "reference": "99",
        "staff_member_id": None,
        "name": "99",
        "subject": None,
        "resolved": False,
    }
    assert empty == [None]

    filtered = client.get("/api/timetables/Class 1/view", params={"staff_id": ravi["id"]}).json()
    assert filtered["staff_filter"] == ravi["id"]
    assert filtered["grid"][0][0] == [None]
    assert filtered["grid"][0][1][0]["name"] == "Ravi Kumar"


def test_import_and_clear_timetable_set(client):
    response = client.put(
        "/api/timetables",
        json={"timetables": {"Class 1": make_grid(days=1, periods=2), "Class 2": "broken"}, "days_per_week": 1},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["timetables"]["Class 1"] == make_grid(days=1, periods=2)
    assert body["timetables"]["Class 2"] == fallback_grid(1, 8)
    assert body["fallback_classes"] == ["Class 2"]

    response = client.delete("/api/timetables")
    assert response.json() == {"success": True, "cleared": True}
    assert client.get("/api/timetables").json() == {"timetables": {}, "fallback_classes": []}


def test_single_flight_rejects_overlapping_generation():
    with single_flight(["Class 2", "Class 1"]):
        with pytest.raises(GenerationInProgressError):
            with single_flight(["Class 1", "Class 2"]):
                pass
        with single_flight(["Class 3"]):
            pass

    with single_flight(["Class 1", "Class 2"]):
        pass


@pytest.mark.parametrize(
    "text, expected",
    [
        ("[503 Service Unavailable]", True),
        ("The model is overloaded. Please try again later.", True),
        ("SERVICE UNAVAILABLE", True),
        ("connection reset by peer", False),
    ],
)
def test_overload_detection(text, expected):
    assert is_overload_error(GenerationTransportError(text)) is expected
