from datetime import datetime, timedelta
from decimal import Decimal

from conftest import auth_header

from salon_app.models import Client, LoyaltyProgram, Transaction, User
from salon_app.security_utils import verify_password_bcrypt


def seed_client(db, name, phone, email=None, created_at=None, tier="Bronze", last_activity=None):
    user = User(email=email or f"{name.split()[0].lower()}@salon.test", password="x", role="CLIENT")
    db.add(user)
    db.flush()
    client = Client(user_id=user.id, name=name, phone=phone)
    if created_at:
        client.created_at = created_at
    db.add(client)
    db.flush()
    loyalty = LoyaltyProgram(client_id=client.id, tier=tier)
    if last_activity:
        loyalty.last_activity = last_activity
    db.add(loyalty)
    db.commit()
    return client


# ============================================================================
# DUPLICATE CHECK
# ============================================================================


def test_duplicate_check_requires_name_or_phone(client, admin_headers):
    response = client.post("/clients/duplicate-check", json={"name": "", "phone": ""}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Name or phone is required"}


def test_duplicate_check_requires_authentication(client):
    response = client.post("/clients/duplicate-check", json={"name": "Jane Doe"})
    assert response.status_code == 401


def test_duplicate_check_name_match(client, db_session, admin_headers):
    existing = seed_client(db_session, "Jane Doe", "55512345", email="jane@salon.test")

    response = client.post("/clients/duplicate-check", json={"name": "jane doe"}, headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["hasDuplicates"] is True
    assert len(body["duplicates"]) == 1
    match = body["duplicates"][0]
    assert match["type"] == "name"
    assert match["client"]["id"] == existing.id
    assert match["client"]["userId"] == existing.user_id
    assert match["client"]["email"] == "jane@salon.test"


def test_duplicate_check_phone_match_ignores_punctuation(client, db_session, admin_headers):
    seed_client(db_session, "Jane Doe", "55512345")

    response = client.post("/clients/duplicate-check", json={"phone": "555-12345"}, headers=admin_headers)

    duplicates = response.json()["duplicates"]
    assert [d["type"] for d in duplicates] == ["phone"]


def test_duplicate_check_same_client_reported_once_as_phone(client, db_session, admin_headers):
    seed_client(db_session, "Jane Doe", "55512345")

    response = client.post(
        "/clients/duplicate-check", json={"name": "jane doe", "phone": "555-12345"}, headers=admin_headers
    )

    duplicates = response.json()["duplicates"]
    assert len(duplicates) == 1
    assert duplicates[0]["type"] == "phone"


def test_duplicate_check_reports_two_different_clients(client, db_session, admin_headers):
    by_phone = seed_client(db_session, "Jane Doe", "55512345")
    by_name = seed_client(db_session, "Mary Major", "66600000", email="mary@salon.test")

    response = client.post(
        "/clients/duplicate-check", json={"name": "MARY MAJOR ", "phone": "5551 2345"}, headers=admin_headers
    )

    duplicates = response.json()["duplicates"]
    assert [(d["type"], d["client"]["id"]) for d in duplicates] == [
        ("phone", by_phone.id),
        ("name", by_name.id),
    ]


def test_duplicate_check_no_match(client, db_session, admin_headers):
    seed_client(db_session, "Jane Doe", "55512345")

    response = client.post(
        "/clients/duplicate-check", json={"name": "John Roe", "phone": "11112222"}, headers=admin_headers
    )

    assert response.json() == {"hasDuplicates": False, "duplicates": []}


# ============================================================================
# CREATE
# ============================================================================


def test_create_client_requires_name_and_phone(client, admin_headers):
    response = client.post("/clients", json={"name": "Amina K."}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Name and phone are required"

    response = client.post("/clients", json={"phone": "5551234"}, headers=admin_headers)
    assert response.status_code == 400


def test_create_then_duplicate_name_end_to_end(client, db_session, admin_headers):
    response = client.post(
        "/clients", json={"name": "Amina K.", "phone": "+974 5551234"}, headers=admin_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Client created successfully"
    created = body["client"]
    assert created["name"] == "Amina K."
    assert created["avatar"] == "AK"
    assert created["segment"] == "New"
    assert created["totalSpent"] == 0
    assert created["email"] == "9745551234@temp.local"
    assert created["currency"] == "QAR"
    assert created["registrationSource"] == "manual"

    user = db_session.query(User).filter(User.id == created["userId"]).one()
    assert user.role == "CLIENT"
    assert user.password != "client123"
    assert verify_password_bcrypt("client123", user.password)
    loyalty = db_session.query(LoyaltyProgram).filter(LoyaltyProgram.client_id == created["id"]).one()
    assert loyalty.points == 0
    assert loyalty.tier == "Bronze"
    assert loyalty.is_active is True

    response = client.post(
        "/clients", json={"name": "Amina K.", "phone": "55512340"}, headers=admin_headers
    )

    assert response.status_code == 409
    conflict = response.json()
    assert conflict["duplicateType"] == "name"
    assert conflict["existingClient"]["id"] == created["id"]
    assert conflict["message"] == 'A client with the name "Amina K." already exists.'
    assert db_session.query(Client).count() == 1


def test_create_rejects_phone_duplicate_regardless_of_name(client, db_session, admin_headers):
    existing = seed_client(db_session, "Jane Doe", "55512345")

    response = client.post(
        "/clients", json={"name": "Someone Else", "phone": "555 123 45"}, headers=admin_headers
    )

    assert response.status_code == 409
    body = response.json()
    assert body["duplicateType"] == "phone"
    assert body["existingClient"]["id"] == existing.id
    assert body["message"] == "A client with phone number 555 123 45 already exists."


def test_create_prefers_phone_when_name_matches_another_client(client, db_session, admin_headers):
    by_phone = seed_client(db_session, "Jane Doe", "55512345")
    seed_client(db_session, "Mary Major", "66600000", email="mary@salon.test")

    response = client.post(
        "/clients", json={"name": "Mary Major", "phone": "55512345"}, headers=admin_headers
    )

    assert response.status_code == 409
    assert response.json()["duplicateType"] == "phone"
    assert response.json()["existingClient"]["id"] == by_phone.id


def test_create_client_with_profile_fields(client, admin_headers):
    payload = {
        "name": "  Layla Hassan ",
        "phone": "3071-2345",
        "email": "Layla@Example.com",
        "address": "Street 12",
        "city": "Doha",
        "birthday": "1990-04-05",
        "preferences": {"allergies": ["latex"]},
        "notes": "Prefers mornings",
        "registrationSource": "client_portal",
        "isAutoRegistered": True,
    }

    response = client.post("/clients", json=payload, headers=admin_headers)

    assert response.status_code == 200
    created = response.json()["client"]
    assert created["name"] == "Layla Hassan"
    assert created["email"] == "layla@example.com"
    assert created["birthday"] == "1990-04-05"
    assert created["preferences"] == {"allergies": ["latex"]}
    assert created["registrationSource"] == "client_portal"
    assert created["isAutoRegistered"] is True

    detail = client.get(f"/clients/{created['id']}", headers=admin_headers).json()["client"]
    assert detail["preferences"] == {"allergies": ["latex"]}
    assert detail["city"] == "Doha"


def test_create_client_treats_blank_birthday_as_unset(client, admin_headers):
    response = client.post(
        "/clients",
        json={"name": "Amina K.", "phone": "5551234", "birthday": "", "email": ""},
        headers=admin_headers,
    )

    assert response.status_code == 200
    created = response.json()["client"]
    assert created["birthday"] == ""
    assert created["email"] == "5551234@temp.local"


def test_create_client_rejects_invalid_email_with_error_body(client, db_session, admin_headers):
    response = client.post(
        "/clients", json={"name": "Bo", "phone": "5551299", "email": "bo@localhost"}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email format"}
    assert db_session.query(Client).count() == 0


def test_malformed_field_uses_error_body(client, admin_headers):
    response = client.post(
        "/clients",
        json={"name": "Amina K.", "phone": "5551234", "birthday": "not-a-date"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"].startswith("Invalid birthday")
    assert body["details"][0]["loc"] == ["body", "birthday"]


# ============================================================================
# LIST / DETAIL
# ============================================================================


def test_list_clients_sums_completed_transactions_only(client, db_session, admin_headers):
    jane = seed_client(db_session, "Jane Doe", "55512345")
    db_session.add_all(
        [
            Transaction(user_id=jane.user_id, amount=Decimal("100.50"), type="SERVICE_SALE", status="COMPLETED", method="CASH"),
            Transaction(user_id=jane.user_id, amount=Decimal("20"), type="PRODUCT_SALE", status="COMPLETED", method="CARD"),
            Transaction(user_id=jane.user_id, amount=Decimal("999"), type="SERVICE_SALE", status="PENDING", method="CARD"),
        ]
    )
    db_session.commit()

    response = client.get("/clients", headers=admin_headers)

    assert response.status_code == 200
    clients = response.json()["clients"]
    assert len(clients) == 1
    assert clients[0]["totalSpent"] == 120.5
    assert clients[0]["avatar"] == "JD"


def test_list_clients_segments(client, db_session, admin_headers):
    old = datetime.utcnow() - timedelta(days=200)
    seed_client(db_session, "Alice New", "1001")
    seed_client(db_session, "Bob Gold", "1002", created_at=old, tier="Gold")
    seed_client(db_session, "Carl Gone", "1003", created_at=old, last_activity=old)
    seed_client(db_session, "Dina Steady", "1004", created_at=old, last_activity=datetime.utcnow())

    clients = client.get("/clients", headers=admin_headers).json()["clients"]

    segments = {c["name"]: c["segment"] for c in clients}
    assert segments == {
        "Alice New": "New",
        "Bob Gold": "VIP",
        "Carl Gone": "At Risk",
        "Dina Steady": "Regular",
    }
    assert [c["name"] for c in clients] == sorted(segments)


def test_list_clients_tolerates_malformed_preferences(client, db_session, admin_headers):
    jane = seed_client(db_session, "Jane Doe", "55512345")
    jane.preferences = "{broken"
    db_session.commit()

    clients = client.get("/clients", headers=admin_headers).json()["clients"]

    assert clients[0]["preferences"]["allergies"] == []
    assert clients[0]["preferences"]["notes"] == ""


def test_get_client_not_found(client, admin_headers):
    response = client.get("/clients/does-not-exist", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Client not found"}


def test_staff_token_can_list_clients(client, db_session):
    seed_client(db_session, "Jane Doe", "55512345")

    response = client.get("/clients", headers=auth_header(role="STAFF", locations=["d-ring"], sub="user-staff"))

    assert response.status_code == 200
    assert [c["name"] for c in response.json()["clients"]] == ["Jane Doe"]
