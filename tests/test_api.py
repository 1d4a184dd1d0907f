import re
from datetime import timedelta

from smart_waste.db.models import PickupStatus, UserType
from smart_waste.utils.datetime_utils import naive_utc_now

from conftest import TEST_PASSWORD, auth_headers


def pickup_payload(**overrides) -> dict:
    payload = {
        "wasteType": "e-waste",
        "pickupDate": (naive_utc_now() + timedelta(days=1)).isoformat(),
        "timeSlot": "afternoon",
        "address": "4 Market Road",
        "estimatedWeight": 6.5,
    }
    payload.update(overrides)
    return payload


class TestEnvelope:
    """Test the shared response envelope and middlewares."""

    def test_health_is_public(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "success"
        assert body["data"]["status"] == "healthy"
        assert body["path"] == "/health"
        assert body["requestId"] == response.headers["X-Request-ID"]
        assert "timestamp" in body

    def test_prefixed_health(self, client):
        assert client.get("/api/health").status_code == 200

    def test_request_id_is_echoed(self, client):
        request_id = "1b4e28ba-2fa1-11d2-883f-0016d3cca427"

        response = client.get("/health", headers={"X-Request-ID": request_id})

        assert response.headers["X-Request-ID"] == request_id
        assert response.json()["requestId"] == request_id

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_missing_token(self, client):
        response = client.get("/api/pickup/my-pickups")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "UNAUTHORIZED"
        assert body["message"] == "Not authorized, no token"
        assert body.get("data") is None

    def test_invalid_token(self, client):
        response = client.get(
            "/api/pickup/my-pickups", headers={"Authorization": "Bearer nonsense"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, token failed"

    def test_wrong_role(self, client, citizen):
        response = client.post(
            "/api/rewards/award-points",
            json={"userId": citizen.id, "points": 50},
            headers=auth_headers(citizen),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "INSUFFICIENT_PERMISSIONS"

    def test_request_validation_error(self, client, citizen):
        response = client.post(
            "/api/pickup/schedule",
            json=pickup_payload(wasteType="furniture"),
            headers=auth_headers(citizen),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["errors"]


class TestAuthRoutes:
    """Test registration, login and the reset flow over HTTP."""

    def test_register_and_login(self, client):
        register = client.post(
            "/api/auth/register",
            json={
                "name": "Kiran",
                "email": "kiran@example.com",
                "password": "secret123",
                "userType": "pickup_agent",
            },
        )
        assert register.status_code == 201
        user = register.json()["data"]["user"]
        assert user["userType"] == "pickup_agent"
        assert "password" not in user and "passwordHash" not in user

        login = client.post(
            "/api/auth/login", json={"email": "kiran@example.com", "password": "secret123"}
        )
        assert login.status_code == 200
        token = login.json()["data"]["token"]

        profile = client.get(
            "/api/auth/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert profile.json()["data"]["email"] == "kiran@example.com"

    def test_duplicate_registration(self, client, citizen):
        response = client.post(
            "/api/auth/register",
            json={"name": "Dup", "email": citizen.email, "password": "secret123"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "EMAIL_TAKEN"

    def test_bad_credentials(self, client, citizen):
        response = client.post(
            "/api/auth/login", json={"email": citizen.email, "password": "wrong-one"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CREDENTIALS"

    def test_reset_flow(self, client, citizen):
        forgot = client.post("/api/auth/forgot-password", json={"email": citizen.email})
        token = forgot.json()["data"]["resetToken"]

        reset = client.post(
            f"/api/auth/reset-password/{token}", json={"password": "fresh-pass"}
        )

        assert reset.status_code == 200
        login = client.post(
            "/api/auth/login", json={"email": citizen.email, "password": "fresh-pass"}
        )
        assert login.status_code == 200
        old = client.post(
            "/api/auth/login", json={"email": citizen.email, "password": TEST_PASSWORD}
        )
        assert old.status_code == 401


class TestPickupRoutes:
    """Test the pickup lifecycle over HTTP."""

    def test_schedule_complete_rate(self, client, citizen, pickup_agent):
        scheduled = client.post(
            "/api/pickup/schedule", json=pickup_payload(), headers=auth_headers(citizen)
        )
        assert scheduled.status_code == 201
        data = scheduled.json()["data"]
        pickup = data["pickup"]
        assert data.get("trackingId") is None
        assert pickup["wasteType"] == "e-waste"
        assert pickup["pointsAwarded"] == 10
        assert re.match(r"^[A-Z0-9]{6}$", pickup["verificationCode"])

        completed = client.put(
            f"/api/pickup/{pickup['id']}/complete",
            json={"actualWeight": 7.9},
            headers=auth_headers(pickup_agent),
        )
        assert completed.status_code == 200
        assert completed.json()["data"]["pointsAwarded"] == 27
        assert completed.json()["data"]["pickup"]["status"] == "completed"

        rated = client.put(
            f"/api/pickup/{pickup['id']}/rate",
            json={"rating": 5},
            headers=auth_headers(citizen),
        )
        assert rated.json()["data"]["rating"] == 5

        profile = client.get("/api/user/profile", headers=auth_headers(citizen))
        assert profile.json()["data"]["points"] == 37
        assert profile.json()["data"]["completedPickups"] == 1

    def test_citizen_cannot_complete(self, client, citizen, make_pickup):
        pickup = make_pickup(citizen)

        response = client.put(
            f"/api/pickup/{pickup.id}/complete", headers=auth_headers(citizen)
        )

        assert response.status_code == 403

    def test_cancel_without_body(self, client, citizen, make_pickup):
        pickup = make_pickup(citizen)

        response = client.put(
            f"/api/pickup/{pickup.id}/cancel", headers=auth_headers(citizen)
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["pickup"]["status"] == "cancelled"
        assert data["trackingUpdated"] is False

    def test_cancel_completed_is_rejected(self, client, citizen, make_pickup):
        pickup = make_pickup(citizen, status=PickupStatus.COMPLETED)

        response = client.put(
            f"/api/pickup/{pickup.id}/cancel",
            json={"reason": "too late"},
            headers=auth_headers(citizen),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "PICKUP_NOT_CANCELLABLE"

    def test_my_pickups_pagination(self, client, citizen, make_pickup):
        for _ in range(3):
            make_pickup(citizen)

        response = client.get(
            "/api/pickup/my-pickups?page=2&limit=2", headers=auth_headers(citizen)
        )

        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "currentPage": 2,
            "perPage": 2,
            "total": 3,
            "totalPages": 2,
            "hasNext": False,
            "hasPrev": True,
        }

    def test_industry_schedule_is_trackable(self, client, industry):
        scheduled = client.post(
            "/api/pickup/schedule",
            json=pickup_payload(wasteType="hazardous"),
            headers=auth_headers(industry),
        )
        tracking_id = scheduled.json()["data"]["trackingId"]
        assert re.match(r"^WM-\d{4}-\d{6}$", tracking_id)

        tracked = client.get(f"/api/waste-tracking/track/{tracking_id}")

        assert tracked.status_code == 200
        data = tracked.json()["data"]
        assert data["wasteManifest"]["hazardLevel"] == "High"
        assert data["statusHistory"][0]["status"] == "Scheduled"


class TestPublicRoutes:
    """Test the unauthenticated lookups."""

    def test_guide_search(self, client):
        response = client.get("/api/waste/search", params={"q": "bottle"})

        assert response.status_code == 200
        results = response.json()["data"]["results"]
        assert any("matchingItems" in result for result in results)

    def test_blank_guide_search(self, client):
        response = client.get("/api/waste/search")

        assert response.status_code == 400
        assert response.json()["error"] == "SEARCH_QUERY_REQUIRED"

    def test_unknown_tracking_id(self, client):
        response = client.get("/api/waste-tracking/track/WM-1999-000001")

        assert response.status_code == 404
        assert response.json()["error"] == "TRACKING_NOT_FOUND"

    def test_unknown_declaration(self, client):
        response = client.get("/api/industry/waste/track/IW199901-AAAAAA")

        assert response.status_code == 404


class TestOtherRoutes:
    """Test role gates and camelCase payloads on the remaining resources."""

    def test_declaration_flow(self, client, industry, admin):
        declared = client.post(
            "/api/industry/waste/declare",
            json={
                "declarationPeriod": {"month": 4, "year": naive_utc_now().year},
                "wasteCategories": [
                    {"category": "Chemical", "quantity": {"amount": 750, "unit": "kg"}}
                ],
            },
            headers=auth_headers(industry),
        )
        assert declared.status_code == 201
        declaration = declared.json()["data"]
        assert declaration["totalWasteGenerated"] == {"amount": 0.75, "unit": "tons"}

        forbidden = client.put(
            f"/api/industry/waste/{declaration['id']}/review",
            json={"status": "Approved"},
            headers=auth_headers(industry),
        )
        assert forbidden.status_code == 403

        approved = client.put(
            f"/api/industry/waste/{declaration['id']}/review",
            json={"status": "Approved"},
            headers=auth_headers(admin),
        )
        assert approved.json()["data"]["status"] == "Approved"

        certificate = client.get(
            f"/api/industry/waste/certificate/{declaration['id']}",
            headers=auth_headers(industry),
        )
        assert certificate.status_code == 200
        assert certificate.json()["data"]["trackingId"] == declaration["trackingId"]

    def test_citizen_cannot_declare(self, client, citizen):
        response = client.post(
            "/api/industry/waste/declare",
            json={
                "declarationPeriod": {"month": 4, "year": naive_utc_now().year},
                "wasteCategories": [
                    {"category": "Other", "quantity": {"amount": 1, "unit": "tons"}}
                ],
            },
            headers=auth_headers(citizen),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "INDUSTRY_ONLY"

    def test_notifications_meta(self, client, citizen):
        client.post("/api/pickup/schedule", json=pickup_payload(), headers=auth_headers(citizen))

        listed = client.get("/api/notifications", headers=auth_headers(citizen))
        assert listed.json()["meta"]["unreadCount"] == 1
        notification_id = listed.json()["data"][0]["id"]

        read = client.put(
            f"/api/notifications/{notification_id}/read", headers=auth_headers(citizen)
        )
        assert read.json()["data"]["unreadCount"] == 0
        assert read.json()["data"]["notification"]["read"] is True

    def test_feedback_respond_is_admin_only(self, client, citizen, admin):
        submitted = client.post(
            "/api/feedback/submit",
            json={"type": "suggestion", "subject": "More bins", "description": "Near the park"},
            headers=auth_headers(citizen),
        )
        assert submitted.status_code == 201
        feedback_id = submitted.json()["data"]["id"]

        denied = client.put(
            f"/api/feedback/{feedback_id}/respond",
            json={"response": "Self-approved"},
            headers=auth_headers(citizen),
        )
        assert denied.status_code == 403

        responded = client.put(
            f"/api/feedback/{feedback_id}/respond",
            json={"response": "Added two bins"},
            headers=auth_headers(admin),
        )
        assert responded.json()["data"]["status"] == "in_review"

    def test_tracking_admin_listing(self, client, admin, industry):
        client.post(
            "/api/pickup/schedule", json=pickup_payload(), headers=auth_headers(industry)
        )

        listed = client.get(
            "/api/waste-tracking/all",
            params={"industryId": industry.id},
            headers=auth_headers(admin),
        )
        denied = client.get("/api/waste-tracking/all", headers=auth_headers(industry))

        assert listed.json()["pagination"]["total"] == 1
        assert denied.status_code == 403

    def test_classify_and_stats(self, client, make_user):
        agent = make_user(UserType.CITIZEN)
        client.post(
            "/api/waste/classify",
            json={"wasteType": "glass jar"},
            headers=auth_headers(agent),
        )

        stats = client.get("/api/waste/stats", headers=auth_headers(agent))

        data = stats.json()["data"]
        assert data["totalClassifications"] == 1
        assert data["segregationRate"] == "100%"
