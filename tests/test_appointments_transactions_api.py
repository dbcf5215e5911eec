from datetime import datetime
from decimal import Decimal

from conftest import auth_header

from salon_app.models import Appointment, Client, StaffMember, User


def seed_appointments(db):
    client_user = User(email="jane@salon.test", password="x", role="CLIENT")
    staff_user = User(email="amal@salon.test", password="x", role="STAFF")
    db.add_all([client_user, staff_user])
    db.flush()
    client = Client(user_id=client_user.id, name="Jane Doe", phone="55512345")
    staff = StaffMember(user_id=staff_user.id, name="Amal")
    db.add_all([client, staff])
    db.flush()

    for ref, location_id, day in [
        ("BK-1", "d-ring", datetime(2024, 5, 1, 10, 0)),
        ("BK-2", "muaither", datetime(2024, 5, 1, 14, 0)),
        ("BK-3", "online", datetime(2024, 5, 2, 9, 0)),
        ("BK-4", "home", datetime(2024, 5, 3, 11, 0)),
    ]:
        db.add(
            Appointment(
                booking_reference=ref,
                client_id=client.id,
                staff_id=staff.id,
                location_id=location_id,
                date=day,
                duration=60,
                total_price=Decimal("150.00"),
            )
        )
    db.commit()
    return client_user


def refs(response):
    return [a["bookingReference"] for a in response.json()["appointments"]]


# ============================================================================
# APPOINTMENTS
# ============================================================================


def test_admin_sees_every_appointment(client, db_session, admin_headers):
    seed_appointments(db_session)

    response = client.get("/appointments", headers=admin_headers)

    assert response.status_code == 200
    assert refs(response) == ["BK-1", "BK-2", "BK-3", "BK-4"]
    first = response.json()["appointments"][0]
    assert first["clientName"] == "Jane Doe"
    assert first["staffName"] == "Amal"
    assert first["location"] == "d-ring"
    assert first["price"] == 150.0


def test_staff_sees_only_assigned_location(client, db_session):
    seed_appointments(db_session)

    response = client.get("/appointments", headers=auth_header(role="STAFF", locations=["d-ring", "home"]))

    assert refs(response) == ["BK-1"]


def test_sales_sees_only_online_appointments(client, db_session):
    seed_appointments(db_session)

    response = client.get("/appointments", headers=auth_header(role="SALES", locations=["all"]))

    assert refs(response) == ["BK-3"]


def test_manager_with_all_access_does_not_see_online(client, db_session):
    seed_appointments(db_session)

    response = client.get("/appointments", headers=auth_header(role="MANAGER", locations=["all"]))

    assert refs(response) == ["BK-1", "BK-2", "BK-4"]


def test_appointments_filtered_by_date(client, db_session, admin_headers):
    seed_appointments(db_session)

    response = client.get("/appointments", params={"date": "2024-05-01"}, headers=admin_headers)

    assert refs(response) == ["BK-1", "BK-2"]


# ============================================================================
# TRANSACTIONS
# ============================================================================


def test_transactions_require_authentication(client):
    assert client.get("/transactions").status_code == 401


def test_create_and_list_transactions(client, db_session, admin_headers):
    client_user = seed_appointments(db_session)
    payload = {
        "userId": client_user.id,
        "amount": 75.5,
        "type": "SERVICE_SALE",
        "status": "COMPLETED",
        "method": "CARD",
        "locationId": "d-ring",
        "items": [{"name": "Haircut", "quantity": 1}],
    }

    response = client.post("/transactions", json=payload, headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["transaction"]["amount"] == 75.5
    assert body["transaction"]["items"] == [{"name": "Haircut", "quantity": 1}]

    response = client.get("/transactions", params={"locationId": "d-ring"}, headers=admin_headers)
    assert [t["id"] for t in response.json()["transactions"]] == [body["transaction"]["id"]]

    response = client.get("/transactions", params={"locationId": "muaither"}, headers=admin_headers)
    assert response.json()["transactions"] == []

    # a completed sale counts toward the client's lifetime spend
    clients = client.get("/clients", headers=admin_headers).json()["clients"]
    assert clients[0]["totalSpent"] == 75.5


def test_create_transaction_requires_fields(client, admin_headers):
    response = client.post("/transactions", json={"amount": 10}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields")


def test_create_appointment_with_defaults(client, db_session, admin_headers):
    seed_appointments(db_session)
    salon_client = db_session.query(Client).one()
    staff = db_session.query(StaffMember).one()
    payload = {
        "clientId": salon_client.id,
        "staffId": staff.id,
        "locationId": "d-ring",
        "date": "2024-06-01T10:30:00",
        "duration": 45,
        "totalPrice": 80,
    }

    response = client.post("/appointments", json=payload, headers=admin_headers)

    assert response.status_code == 200
    appointment = response.json()["appointment"]
    assert appointment["bookingReference"].startswith("VH-")
    assert len(appointment["bookingReference"]) == 9
    assert appointment["location"] == "d-ring"
    assert appointment["price"] == 80.0
    assert appointment["status"] == "PENDING"
    assert appointment["clientName"] == "Jane Doe"


def test_create_appointment_prefers_location_over_location_id(client, db_session, admin_headers):
    seed_appointments(db_session)
    salon_client = db_session.query(Client).one()
    staff = db_session.query(StaffMember).one()
    payload = {
        "bookingReference": "BK-9",
        "clientId": salon_client.id,
        "staffId": staff.id,
        "location": "home",
        "locationId": "d-ring",
        "date": "2024-06-01T10:30:00",
        "duration": 30,
        "price": 120,
    }

    appointment = client.post("/appointments", json=payload, headers=admin_headers).json()["appointment"]

    assert appointment["bookingReference"] == "BK-9"
    assert appointment["location"] == "home"
    assert appointment["price"] == 120.0


def test_create_appointment_validation(client, admin_headers):
    assert client.post("/appointments", json={"duration": 30}).status_code == 401

    response = client.post("/appointments", json={"duration": 30}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields")


def test_get_appointment_respects_scope(client, db_session, admin_headers):
    seed_appointments(db_session)
    online = db_session.query(Appointment).filter(Appointment.location_id == "online").one()

    response = client.get(f"/appointments/{online.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["appointment"]["bookingReference"] == "BK-3"

    response = client.get(
        f"/appointments/{online.id}", headers=auth_header(role="STAFF", locations=["d-ring"])
    )
    assert response.status_code == 404


def test_update_and_delete_appointment(client, db_session, admin_headers):
    seed_appointments(db_session)
    appointment = db_session.query(Appointment).filter(Appointment.booking_reference == "BK-1").one()

    response = client.put(
        f"/appointments/{appointment.id}",
        json={"status": "CONFIRMED", "notes": "Window seat", "location": "muaither"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    updated = response.json()["appointment"]
    assert updated["status"] == "CONFIRMED"
    assert updated["notes"] == "Window seat"
    assert updated["location"] == "muaither"
    assert updated["duration"] == 60

    response = client.delete(f"/appointments/{appointment.id}", headers=admin_headers)
    assert response.json() == {"success": True, "message": "Appointment deleted successfully"}
    assert client.get(f"/appointments/{appointment.id}", headers=admin_headers).status_code == 404
