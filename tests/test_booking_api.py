from datetime import datetime, timedelta, timezone


def create_booking(client, headers, service_id, start, end=None, notes=None):
    payload = {"service_id": service_id, "start_time": start.isoformat()}
    if end is not None:
        payload["end_time"] = end.isoformat()
    if notes is not None:
        payload["notes"] = notes
    return client.post("/api/bookings", json=payload, headers=headers)


def transition(client, headers, booking_id, name):
    return client.post(f"/api/bookings/{booking_id}/transitions", json={"transition": name}, headers=headers)


def parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_booking_requires_a_token(client, marketplace, at):
    response = create_booking(client, {}, marketplace["service_id"], at(11))
    assert response.status_code == 401


def test_invalid_token_is_rejected(client, marketplace, at):
    response = create_booking(client, {"Authorization": "Bearer not-a-jwt"}, marketplace["service_id"], at(11))
    assert response.status_code == 401


def test_availability_and_overlap_scenario(client, marketplace, make_booking, auth_headers, at):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
        status="CONFIRMED",
    )

    response = client.get(
        f"/api/services/{marketplace['service_id']}/availability",
        params={"start": at(0).isoformat(), "end": at(23, 59).isoformat()},
    )
    assert response.status_code == 200
    starts = [parse(slot["start"]) for slot in response.json()]
    assert at(10) not in starts
    assert at(9) in starts and at(11) in starts

    headers = auth_headers(marketplace["customer_id"])
    overlap = create_booking(client, headers, marketplace["service_id"], at(10, 30))
    assert overlap.status_code == 409
    assert overlap.json()["detail"]["code"] == "OVERLAP"

    adjacent = create_booking(client, headers, marketplace["service_id"], at(11), notes="Front yard only")
    assert adjacent.status_code == 201
    body = adjacent.json()
    assert body["status"] == "PENDING"
    assert body["payment_status"] == "UNPAID"
    assert body["provider_id"] == marketplace["provider_id"]
    assert body["customer_id"] == marketplace["customer_id"]
    assert parse(body["end_time"]) == at(12)
    assert body["notes"] == "Front yard only"


def test_availability_is_idempotent_over_http(client, marketplace, at):
    params = {"start": at(0).isoformat(), "end": at(23, 59).isoformat()}
    first = client.get(f"/api/services/{marketplace['service_id']}/availability", params=params)
    second = client.get(f"/api/services/{marketplace['service_id']}/availability", params=params)
    assert first.json() == second.json()
    assert len(first.json()) == 8


def test_availability_for_unknown_service(client, at):
    response = client.get(
        "/api/services/missing/availability",
        params={"start": at(0).isoformat(), "end": at(23).isoformat()},
    )
    assert response.status_code == 404


def test_end_time_must_match_service_duration(client, marketplace, auth_headers, at):
    headers = auth_headers(marketplace["customer_id"])
    response = create_booking(client, headers, marketplace["service_id"], at(11), at(11, 30))
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_DURATION"

    response = create_booking(client, headers, marketplace["service_id"], at(11), at(12))
    assert response.status_code == 201


def test_booking_in_the_past_is_rejected(client, marketplace, auth_headers):
    start = datetime.now(timezone.utc) - timedelta(days=1)
    response = create_booking(client, auth_headers(marketplace["customer_id"]), marketplace["service_id"], start)
    assert response.status_code == 400


def test_inverted_interval_fails_validation(client, marketplace, auth_headers, at):
    response = create_booking(client, auth_headers(marketplace["customer_id"]), marketplace["service_id"], at(12), at(11))
    assert response.status_code == 422


def test_booking_unknown_service(client, marketplace, auth_headers, at):
    response = create_booking(client, auth_headers(marketplace["customer_id"]), "missing", at(11))
    assert response.status_code == 404


def test_confirm_pay_and_confirm_payment_scenario(client, marketplace, auth_headers, at):
    customer = auth_headers(marketplace["customer_id"])
    provider = auth_headers(marketplace["provider_id"], role="PROVIDER")
    booking_id = create_booking(client, customer, marketplace["service_id"], at(13)).json()["id"]

    assert transition(client, provider, booking_id, "CONFIRM").json()["status"] == "CONFIRMED"
    assert transition(client, customer, booking_id, "MARK_PAID").json()["payment_status"] == "CUSTOMER_MARKED_PAID"
    final = transition(client, provider, booking_id, "CONFIRM_PAYMENT")
    assert final.status_code == 200
    assert final.json()["payment_status"] == "PROVIDER_CONFIRMED"

    events = client.get(f"/api/bookings/{booking_id}/events", headers=customer)
    assert events.status_code == 200
    assert [event["action"] for event in events.json()] == ["CREATE", "CONFIRM", "MARK_PAID", "CONFIRM_PAYMENT"]


def test_customer_cannot_confirm_someone_elses_booking(client, marketplace, auth_headers, at):
    booking_id = create_booking(
        client, auth_headers(marketplace["customer_id"]), marketplace["service_id"], at(14)
    ).json()["id"]

    response = transition(client, auth_headers(marketplace["other_customer_id"]), booking_id, "CONFIRM")
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "INVALID_ACTOR"

    # Not even the booking's own customer may confirm it
    response = transition(client, auth_headers(marketplace["customer_id"]), booking_id, "CONFIRM")
    assert response.status_code == 403


def test_provider_booking_another_providers_service_can_pay_and_cancel(
    client, marketplace, make_user, auth_headers, at
):
    make_user("provider-2", role="PROVIDER")
    headers = auth_headers("provider-2", role="PROVIDER")
    booking_id = create_booking(client, headers, marketplace["service_id"], at(9)).json()["id"]

    paid = transition(client, headers, booking_id, "MARK_PAID")
    assert paid.status_code == 200
    assert paid.json()["payment_status"] == "CUSTOMER_MARKED_PAID"

    cancelled = transition(client, headers, booking_id, "CANCEL")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"


def test_cancelled_booking_cannot_be_confirmed(client, marketplace, auth_headers, at):
    customer = auth_headers(marketplace["customer_id"])
    booking_id = create_booking(client, customer, marketplace["service_id"], at(15)).json()["id"]

    assert transition(client, customer, booking_id, "CANCEL").json()["status"] == "CANCELLED"

    response = transition(client, auth_headers(marketplace["provider_id"], role="PROVIDER"), booking_id, "CONFIRM")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INVALID_STATE"

    # The slot is free again
    again = create_booking(client, auth_headers(marketplace["other_customer_id"]), marketplace["service_id"], at(15))
    assert again.status_code == 201


def test_complete_before_and_after_end_time(client, marketplace, make_booking, auth_headers, at):
    provider = auth_headers(marketplace["provider_id"], role="PROVIDER")
    upcoming = make_booking(
        marketplace["service_id"], marketplace["customer_id"], marketplace["provider_id"], at(9), at(10), status="CONFIRMED"
    )
    response = transition(client, provider, upcoming, "COMPLETE")
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "NOT_YET_DUE"

    yesterday = datetime.now(timezone.utc) - timedelta(days=1)
    finished = make_booking(
        marketplace["service_id"],
        marketplace["customer_id"],
        marketplace["provider_id"],
        yesterday,
        yesterday + timedelta(hours=1),
        status="CONFIRMED",
    )
    response = transition(client, provider, finished, "COMPLETE")
    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"


def test_unknown_transition_name_is_rejected(client, marketplace, auth_headers, at):
    customer = auth_headers(marketplace["customer_id"])
    booking_id = create_booking(client, customer, marketplace["service_id"], at(9)).json()["id"]
    assert transition(client, customer, booking_id, "UNPAY").status_code == 422


def test_booking_visibility(client, marketplace, auth_headers, at):
    booking_id = create_booking(
        client, auth_headers(marketplace["customer_id"]), marketplace["service_id"], at(16)
    ).json()["id"]

    assert client.get(f"/api/bookings/{booking_id}", headers=auth_headers(marketplace["customer_id"])).status_code == 200
    assert client.get(
        f"/api/bookings/{booking_id}", headers=auth_headers(marketplace["provider_id"], role="PROVIDER")
    ).status_code == 200
    assert client.get(f"/api/bookings/{booking_id}", headers=auth_headers(marketplace["other_customer_id"])).status_code == 403
    assert client.get("/api/bookings/missing", headers=auth_headers(marketplace["customer_id"])).status_code == 404


def test_payment_info_shows_provider_details(client, marketplace, auth_headers, at):
    customer = auth_headers(marketplace["customer_id"])
    booking_id = create_booking(client, customer, marketplace["service_id"], at(12)).json()["id"]

    response = client.get(f"/api/bookings/{booking_id}/payment-info", headers=customer)
    assert response.status_code == 200
    info = response.json()
    assert info["payment_qr_code"] == "https://example.com/qr/juan"
    assert info["payment_notes"] == "GCash: 09171234567"
    assert info["is_customer"] is True
    assert info["is_provider"] is False
    assert info["base_price"] == 500

    response = client.get(
        f"/api/bookings/{booking_id}/payment-info", headers=auth_headers(marketplace["other_customer_id"])
    )
    assert response.status_code == 403


def test_my_bookings_and_provider_schedule(client, marketplace, auth_headers, at):
    customer = auth_headers(marketplace["customer_id"])
    provider = auth_headers(marketplace["provider_id"], role="PROVIDER")
    first = create_booking(client, customer, marketplace["service_id"], at(9)).json()["id"]
    second = create_booking(client, customer, marketplace["service_id"], at(14)).json()["id"]
    transition(client, provider, second, "CONFIRM")

    mine = client.get("/api/bookings", headers=customer).json()
    assert [booking["id"] for booking in mine] == [second, first]

    confirmed = client.get("/api/bookings", params={"status": "CONFIRMED"}, headers=customer).json()
    assert [booking["id"] for booking in confirmed] == [second]

    schedule = client.get("/api/provider/bookings", headers=provider)
    assert schedule.status_code == 200
    assert [booking["id"] for booking in schedule.json()] == [first, second]

    assert client.get("/api/provider/bookings", headers=customer).status_code == 403


def test_admin_listing_requires_admin(client, marketplace, make_user, auth_headers, at):
    make_user("admin-1", role="ADMIN")
    create_booking(client, auth_headers(marketplace["customer_id"]), marketplace["service_id"], at(10))

    assert client.get("/api/admin/bookings", headers=auth_headers(marketplace["customer_id"])).status_code == 403
    response = client.get(
        "/api/admin/bookings",
        params={"provider_id": marketplace["provider_id"]},
        headers=auth_headers("admin-1", role="ADMIN"),
    )
    assert response.status_code == 200
    assert len(response.json()) == 1
