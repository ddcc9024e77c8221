from datetime import timedelta

import pytest

from services.lifecycle import OrderStatus, PaymentMethod, PaymentStatus, Rating

from factories import (
    NOW,
    OTHER_CUSTOMER,
    build_order,
    build_payment,
    completed,
    in_progress,
    paid_transfer,
)


def _create_payload(**overrides):
    payload = {
        "package_id": 1,
        "payment_method": "CASH",
        "scheduled_at": (NOW + timedelta(days=1)).isoformat(),
        "before_photos": ["before/1.jpg"],
        "extra_services": [{"name": "Setrika", "price": 20000}],
    }
    payload.update(overrides)
    return payload


@pytest.mark.api
class TestCustomerOrders:

    def test_create_order(self, order_client, customer_headers, emitter):
        response = order_client.post("/", json=_create_payload(), headers=customer_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING_CONFIRMATION"
        assert data["customer_id"] == "cust-1"
        assert data["total_price"] == 170000
        assert data["payment"]["status"] == "PENDING"
        assert data["payment"]["amount"] == 170000
        assert data["available_actions"] == ["cancel_order", "change_payment_method"]
        assert data["tip_amount"] is None
        assert emitter.recipients == ["admins"]

    def test_create_without_photo(self, order_client, customer_headers, store):
        response = order_client.post("/", json=_create_payload(before_photos=[]), headers=customer_headers)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "invalid_command"
        assert detail["action"] == "create_order"
        assert store.orders == {}

    def test_create_with_naive_schedule_assumes_utc(self, order_client, customer_headers):
        naive = (NOW + timedelta(days=1)).replace(tzinfo=None).isoformat()
        response = order_client.post("/", json=_create_payload(scheduled_at=naive), headers=customer_headers)
        assert response.status_code == 201

    def test_unknown_package(self, order_client, customer_headers):
        response = order_client.post("/", json=_create_payload(package_id=99), headers=customer_headers)
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_requires_token(self, order_client):
        response = order_client.post("/", json=_create_payload())
        assert response.status_code == 401

    def test_admin_token_rejected_on_customer_routes(self, order_client, admin_headers):
        response = order_client.post("/", json=_create_payload(), headers=admin_headers)
        assert response.status_code == 403

    def test_other_customer_sees_not_found(self, order_client, other_customer_headers, store):
        store.put(build_order(), build_payment())
        response = order_client.get("/1", headers=other_customer_headers)
        assert response.status_code == 404

    def test_get_order_shows_transfer_countdown(self, order_client, customer_headers, store, clock):
        store.put(build_order(), build_payment(method=PaymentMethod.TRANSFER))
        clock.set(NOW + timedelta(minutes=61))

        data = order_client.get("/1", headers=customer_headers).json()

        assert data["transfer_expiring"] is True
        assert data["transfer_seconds_remaining"] == 0
        assert data["status"] == "PENDING_CONFIRMATION"

    def test_after_photo_time_gate(self, order_client, customer_headers, store, clock):
        order = in_progress()
        store.put(order, build_payment())

        clock.set(order.scheduled_at + timedelta(minutes=4, seconds=59))
        early = order_client.post("/1/after-photo", json={"photos": ["after/1.jpg"]}, headers=customer_headers)
        assert early.status_code == 400
        assert early.json()["detail"]["error"] == "time_gate_rejected"
        assert early.json()["detail"]["status"] == "IN_PROGRESS"

        clock.set(order.scheduled_at + timedelta(minutes=5, seconds=1))
        ok = order_client.post("/1/after-photo", json={"photos": ["after/1.jpg"]}, headers=customer_headers)
        assert ok.status_code == 200
        assert ok.json()["after_photos"] == ["after/1.jpg"]
        assert "complete_order" in ok.json()["available_actions"]

    def test_after_photo_needs_paid_transfer(self, order_client, customer_headers, store, clock):
        order = in_progress()
        store.put(order, build_payment(method=PaymentMethod.TRANSFER))
        clock.set(order.scheduled_at + timedelta(minutes=10))

        response = order_client.post("/1/after-photo", json={"photos": ["after/1.jpg"]}, headers=customer_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "payment_not_ready"

    def test_complete_then_rate_and_tip(self, order_client, customer_headers, admin_headers, store, emitter):
        store.put(in_progress(after_photos=("after/1.jpg",)), paid_transfer())

        assert order_client.post("/1/complete", headers=customer_headers).status_code == 200
        second = order_client.post("/admin/1/complete", headers=admin_headers)
        assert second.status_code == 409
        assert second.json()["detail"]["error"] == "invalid_transition"

        rated = order_client.post("/1/rating", json={"rating": 5, "review": "Rapi"}, headers=customer_headers)
        assert rated.status_code == 200
        assert rated.json()["rating"] == 5
        again = order_client.post("/1/rating", json={"rating": 4}, headers=customer_headers)
        assert again.status_code == 409
        assert again.json()["detail"]["error"] == "already_rated"

        skipped = order_client.post("/1/tip/skip", headers=customer_headers)
        assert skipped.status_code == 200
        assert skipped.json()["tip_amount"] == 0
        assert skipped.json()["tip_skipped"] is True
        assert order_client.post("/1/tip", json={"amount": 5000}, headers=customer_headers).status_code == 409

        # complete, rating, skipped tip
        assert len(emitter.sent) == 3

    def test_cancel_with_reason(self, order_client, customer_headers, store):
        store.put(build_order(), build_payment())
        response = order_client.post("/1/cancel", json={"reason": "Ada urusan"}, headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["cancelled_by"] == "CUSTOMER"
        assert response.json()["cancel_reason"] == "Ada urusan"

    def test_cancel_completed_conflicts(self, order_client, customer_headers, store):
        store.put(completed(), build_payment())
        response = order_client.post("/1/cancel", headers=customer_headers)
        assert response.status_code == 409
        assert store.orders[1].status == OrderStatus.COMPLETED

    def test_list_rate_filter(self, order_client, customer_headers, store, clock):
        store.put(completed(id=1), build_payment())
        store.put(build_order(id=2), build_payment())
        store.put(build_order(id=3, customer_id=OTHER_CUSTOMER.id), build_payment())
        # In progress and more than an hour past the schedule
        store.put(in_progress(id=4, scheduled_at=NOW - timedelta(hours=2)), build_payment())

        data = order_client.get("/", params={"status": "rate"}, headers=customer_headers).json()

        assert sorted(item["id"] for item in data["items"]) == [1, 4]
        assert data["pagination"]["total"] == 2

    def test_list_pagination_defaults(self, order_client, customer_headers, store):
        for order_id in range(1, 10):
            store.put(build_order(id=order_id, created_at=NOW + timedelta(minutes=order_id)), build_payment())

        data = order_client.get("/", headers=customer_headers).json()

        assert len(data["items"]) == 7
        assert data["items"][0]["id"] == 9
        assert data["pagination"] == {"page": 1, "limit": 7, "total": 9, "total_pages": 2, "has_next": True}

    def test_list_limit_is_capped(self, order_client, customer_headers, store):
        store.put(build_order(), build_payment())
        data = order_client.get("/", params={"limit": 500}, headers=customer_headers).json()
        assert data["pagination"]["limit"] == 50

    def test_change_payment_method(self, order_client, customer_headers, store, emitter):
        store.put(build_order(), build_payment(method=PaymentMethod.TRANSFER, gateway_reference="MID-2"))

        response = order_client.patch("/1/payment-method", json={"payment_method": "CASH"}, headers=customer_headers)

        assert response.status_code == 200
        assert response.json()["payment"]["method"] == "CASH"
        assert store.payments[1].gateway_reference is None
        assert emitter.recipients == ["admins"]

    def test_change_payment_method_after_confirm_conflicts(self, order_client, customer_headers, store):
        store.put(in_progress(), build_payment())
        response = order_client.patch("/1/payment-method", json={"payment_method": "CARD"}, headers=customer_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["action"] == "change_payment_method"
        assert store.payments[1].method == PaymentMethod.CASH

    def test_change_payment_method_unknown_value(self, order_client, customer_headers, store):
        store.put(build_order(), build_payment())
        response = order_client.patch("/1/payment-method", json={"payment_method": "BITCOIN"}, headers=customer_headers)
        assert response.status_code == 422

    def test_english_notices(self, order_client, customer_headers, emitter):
        headers = {**customer_headers, "Accept-Language": "en-US,en;q=0.9"}
        order_client.post("/", json=_create_payload(), headers=headers)
        assert emitter.titles == ["New Order"]


@pytest.mark.api
class TestAdminOrders:

    def test_confirm_and_assign(self, order_client, admin_headers, store, emitter):
        store.put(build_order(), build_payment())

        response = order_client.patch("/admin/1/confirm", json={"staff_id": "staff-7"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "IN_PROGRESS"
        assert response.json()["assigned_staff_id"] == "staff-7"
        assert emitter.recipients == ["cust-1"]

    def test_confirm_without_staff(self, order_client, admin_headers, store):
        store.put(build_order(), build_payment())
        response = order_client.patch("/admin/1/confirm", json={}, headers=admin_headers)
        assert response.status_code == 422
        assert store.orders[1].status == OrderStatus.PENDING_CONFIRMATION

    def test_customer_token_rejected(self, order_client, customer_headers, store):
        store.put(build_order(), build_payment())
        response = order_client.patch("/admin/1/confirm", json={"staff_id": "x"}, headers=customer_headers)
        assert response.status_code == 403

    def test_list_hides_unpaid_online_orders(self, order_client, admin_headers, store):
        store.put(build_order(id=1), build_payment())
        store.put(build_order(id=2), build_payment(method=PaymentMethod.TRANSFER))
        store.put(build_order(id=3), paid_transfer())

        data = order_client.get("/admin/", headers=admin_headers).json()

        assert sorted(item["id"] for item in data["items"]) == [1, 3]
        assert "confirm_and_assign" in data["items"][0]["available_actions"]

    def test_pending_count(self, order_client, admin_headers, store):
        store.put(build_order(id=1), build_payment())
        store.put(build_order(id=2), build_payment(method=PaymentMethod.CARD))
        store.put(in_progress(id=3), build_payment())

        response = order_client.get("/admin/pending-count", headers=admin_headers)

        assert response.json() == {"count": 1}

    def test_delete_order(self, order_client, admin_headers, store):
        store.put(completed(), build_payment(status=PaymentStatus.PAID))

        response = order_client.delete("/admin/1", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Order deleted", "order_id": 1}
        assert order_client.get("/admin/1", headers=admin_headers).status_code == 404

    def test_health(self, order_client):
        assert order_client.get("/health").json()["status"] == "running"

    def test_bulk_delete(self, order_client, admin_headers, store, emitter):
        for order_id in (1, 2, 3):
            store.put(build_order(id=order_id), build_payment())

        response = order_client.post("/admin/bulk-delete", json={"ids": [3, 1]}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Orders deleted", "order_ids": [1, 3]}
        assert sorted(store.orders) == [2]
        assert len(emitter.sent) == 2

    def test_bulk_delete_is_all_or_nothing(self, order_client, admin_headers, store, emitter):
        store.put(build_order(id=1), build_payment())

        response = order_client.post("/admin/bulk-delete", json={"ids": [1, 42]}, headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["order_id"] == 42
        assert 1 in store.orders
        assert emitter.sent == []

    def test_bulk_delete_needs_ids(self, order_client, admin_headers):
        response = order_client.post("/admin/bulk-delete", json={"ids": []}, headers=admin_headers)
        assert response.status_code == 422


def _rated(order_id, value, minutes, package_id=1):
    rating = Rating(value=value, review=f"review {order_id}", created_at=NOW + timedelta(minutes=minutes))
    return completed(id=order_id, package_id=package_id, rating=rating)


@pytest.mark.api
class TestAdminRatings:

    @pytest.fixture
    def rated_store(self, store):
        store.put(_rated(1, 5, minutes=10), build_payment())
        store.put(_rated(2, 3, minutes=20), build_payment())
        store.put(_rated(3, 5, minutes=30, package_id=2), build_payment())
        store.put(_rated(4, 1, minutes=40), build_payment())
        store.put(completed(id=5), build_payment())
        return store

    def test_recent_first_by_default(self, order_client, admin_headers, rated_store):
        data = order_client.get("/admin/ratings", headers=admin_headers).json()

        assert [item["order_id"] for item in data["items"]] == [4, 3, 2, 1]
        assert data["items"][0]["review"] == "review 4"
        assert data["pagination"]["limit"] == 20
        assert data["pagination"]["total"] == 4

    def test_sort_highest_and_lowest(self, order_client, admin_headers, rated_store):
        highest = order_client.get("/admin/ratings", params={"sort": "highest"}, headers=admin_headers).json()
        lowest = order_client.get("/admin/ratings", params={"sort": "lowest"}, headers=admin_headers).json()

        assert [item["rating"] for item in highest["items"]] == [5, 5, 3, 1]
        # Ties keep the most recent first.
        assert [item["order_id"] for item in highest["items"]][:2] == [3, 1]
        assert [item["rating"] for item in lowest["items"]] == [1, 3, 5, 5]

    def test_filters(self, order_client, admin_headers, rated_store):
        by_package = order_client.get("/admin/ratings", params={"package_id": 2}, headers=admin_headers).json()
        by_value = order_client.get("/admin/ratings", params={"rating_value": 5}, headers=admin_headers).json()
        by_date = order_client.get(
            "/admin/ratings",
            params={
                "start_date": (NOW + timedelta(minutes=15)).isoformat(),
                "end_date": (NOW + timedelta(minutes=35)).isoformat(),
            },
            headers=admin_headers,
        ).json()

        assert [item["order_id"] for item in by_package["items"]] == [3]
        assert sorted(item["order_id"] for item in by_value["items"]) == [1, 3]
        assert [item["order_id"] for item in by_date["items"]] == [3, 2]

    def test_unknown_sort_rejected(self, order_client, admin_headers):
        response = order_client.get("/admin/ratings", params={"sort": "best"}, headers=admin_headers)
        assert response.status_code == 422

    def test_paging(self, order_client, admin_headers, rated_store):
        data = order_client.get("/admin/ratings", params={"page": 2, "limit": 3}, headers=admin_headers).json()
        assert [item["order_id"] for item in data["items"]] == [1]
        assert data["pagination"]["has_next"] is False

    def test_summary(self, order_client, admin_headers, rated_store):
        data = order_client.get("/admin/ratings/summary", headers=admin_headers).json()

        assert data["total_ratings"] == 4
        assert data["average_rating"] == 3.5
        assert data["five_star_percentage"] == 50.0
        assert data["distribution"] == {"5": 2, "4": 0, "3": 1, "2": 0, "1": 1}

    def test_summary_without_ratings(self, order_client, admin_headers):
        data = order_client.get("/admin/ratings/summary", headers=admin_headers).json()

        assert data == {
            "average_rating": 0,
            "total_ratings": 0,
            "five_star_percentage": 0,
            "distribution": {"5": 0, "4": 0, "3": 0, "2": 0, "1": 0},
        }

    def test_customer_token_rejected(self, order_client, customer_headers):
        assert order_client.get("/admin/ratings/summary", headers=customer_headers).status_code == 403
