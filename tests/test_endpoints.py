"""Tests for auth and employee endpoints."""

from fastapi.testclient import TestClient

from beztern.api.app import NOT_FOUND_MESSAGE, create_app
from beztern.api.guards import ACCESS_TOKEN_COOKIE
from beztern.domain.location import LocationErrorKind
from beztern.domain.models import AuthUser
from beztern.domain.verification import VerificationKind
from beztern.services.location import INSECURE_CONTEXT_MESSAGE, MAX_RETRIES_MESSAGE
from tests.conftest import make_fix, make_profile

DESKTOP_UA = "Mozilla/5.0 (X11; Linux x86_64) Firefox/125.0"
IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Safari/604.1"
LOCATION = {"latitude": 12.97, "longitude": 77.59}


def _signed_in(container, auth_gateway, profile_repository) -> TestClient:
    user = auth_gateway.add_user("asha@example.com", "secret1", token="user-token")
    profile_repository.profiles[user.id] = make_profile(id=user.id, username="asha")
    client = TestClient(create_app(container))
    client.headers["Authorization"] = "Bearer user-token"
    return client


def test_health_endpoint(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_route_returns_not_found_json(container) -> None:
    client = TestClient(create_app(container))

    missing = client.get("/no-such-page")
    explicit = client.get("/404")

    assert missing.status_code == explicit.status_code == 404
    assert missing.json()["message"] == NOT_FOUND_MESSAGE
    assert explicit.json() == missing.json()


def test_root_redirects_to_login(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_employee_pages_redirect_anonymous_callers(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/attendance", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_sign_up_and_login(container, auth_gateway, profile_repository) -> None:
    client = TestClient(create_app(container))

    signed_up = client.post(
        "/signup",
        json={
            "full_name": "Ravi Kumar",
            "email": "ravi@example.com",
            "password": "longenough",
            "confirm_password": "longenough",
        },
    )
    logged_in = client.post(
        "/login", json={"identifier": "ravi@example.com", "password": "longenough"}
    )

    assert signed_up.status_code == 200
    assert signed_up.json()["redirect_to"] == "/login?verified=pending"
    assert logged_in.status_code == 200
    body = logged_in.json()
    assert body["redirect_to"] == "/attendance"
    assert body["profile"]["full_name"] == "Ravi Kumar"
    assert body["access_token"] in auth_gateway.tokens


def test_login_validation_errors(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/login", json={"identifier": "", "password": "x"})

    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"identifier", "password"}


def test_login_unknown_user(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/login", json={"identifier": "ghost", "password": "secret1"})

    assert response.status_code == 400
    assert response.json()["message"] == "User not found. Please check your credentials."


def test_verify_endpoint_consumes_email_code(
    container, auth_gateway, profile_repository
) -> None:
    client = TestClient(create_app(container))
    client.post(
        "/signup",
        json={
            "full_name": "Ravi Kumar",
            "email": "ravi@example.com",
            "password": "longenough",
            "confirm_password": "longenough",
        },
    )
    (code,) = container.verification_service.repository.codes

    verified = client.post("/verify", json={"email_code": code.code})
    replayed = client.post("/verify", json={"email_code": code.code})
    empty = client.post("/verify", json={})

    assert verified.status_code == 200
    assert profile_repository.updates[-1] == (code.user_id, {"email_verified": True})
    assert replayed.status_code == 400
    assert empty.status_code == 400


def test_verify_endpoint_rejects_pair_with_one_bad_code(
    container, profile_repository
) -> None:
    client = TestClient(create_app(container))
    client.post(
        "/signup",
        json={
            "full_name": "Ravi Kumar",
            "email": "ravi@example.com",
            "phone": "+919876543210",
            "password": "longenough",
            "confirm_password": "longenough",
        },
    )
    repository = container.verification_service.repository
    codes = {code.kind: code for code in repository.codes}
    email_code = codes[VerificationKind.EMAIL].code
    phone = codes[VerificationKind.PHONE].code
    wrong_phone = "000000" if phone != "000000" else "111111"
    updates_before = list(profile_repository.updates)

    rejected = client.post(
        "/verify", json={"email_code": email_code, "phone_code": wrong_phone}
    )
    retried = client.post(
        "/verify",
        json={
            "email_code": email_code,
            "phone_code": codes[VerificationKind.PHONE].code,
        },
    )

    assert rejected.status_code == 400
    assert retried.status_code == 200
    assert profile_repository.updates[len(updates_before) :] == [
        (codes[VerificationKind.EMAIL].user_id, {"email_verified": True}),
        (codes[VerificationKind.PHONE].user_id, {"phone_verified": True}),
    ]
    assert repository.codes == []


def test_oauth_callback_sets_session_cookie(container, auth_gateway) -> None:
    auth_gateway.oauth_codes["abc"] = AuthUser(id="g-1", email="ravi@example.com")
    client = TestClient(create_app(container))

    response = client.get("/auth/callback", params={"code": "abc"}, follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/attendance"
    assert ACCESS_TOKEN_COOKIE in response.cookies


def test_oauth_callback_error_goes_to_login(container) -> None:
    client = TestClient(create_app(container))

    response = client.get(
        "/auth/callback", params={"error": "access_denied"}, follow_redirects=False
    )

    assert response.headers["location"] == "/login"


def test_session_reports_cookie_identity(
    container, auth_gateway, profile_repository
) -> None:
    user = auth_gateway.add_user("asha@example.com", "secret1", token="cookie-token")
    profile_repository.profiles[user.id] = make_profile(id=user.id)
    client = TestClient(create_app(container))

    response = client.get(
        "/session", headers={"Cookie": f"{ACCESS_TOKEN_COOKIE}=cookie-token"}
    )

    assert response.json()["is_authenticated"] is True
    assert response.json()["is_admin"] is False


def test_logout_revokes_token(container, auth_gateway, profile_repository) -> None:
    client = _signed_in(container, auth_gateway, profile_repository)

    response = client.post("/logout")

    assert response.status_code == 200
    assert auth_gateway.signed_out == ["user-token"]


def test_attendance_submission_flow(
    container, auth_gateway, profile_repository, photo_storage, photo_data_url
) -> None:
    client = _signed_in(container, auth_gateway, profile_repository)

    blocked = client.post(
        "/attendance",
        json={"photo": photo_data_url, "location": LOCATION, "kilometers": ""},
    )
    submitted = client.post(
        "/attendance",
        json={"photo": photo_data_url, "location": LOCATION, "kilometers": "42"},
    )
    listed = client.get("/attendance")

    assert blocked.status_code == 422
    assert blocked.json()["errors"] == {
        "kilometers": "Please enter bike kilometer reading"
    }
    assert submitted.status_code == 200
    record = submitted.json()["record"]
    assert record["notes"] == "Bike reading: 42 km. Employee: asha"
    assert record["type_label"] == "Check In"
    assert len(photo_storage.uploads) == 1
    assert listed.json()["records"][0]["id"] == record["id"]


def test_shop_visit_submission(
    container, auth_gateway, profile_repository, photo_data_url
) -> None:
    client = _signed_in(container, auth_gateway, profile_repository)

    response = client.post(
        "/shop-visit",
        json={
            "photo": photo_data_url,
            "location": LOCATION,
            "shop_name": "Sharma Kirana",
            "owner_name": "R. Sharma",
            "owner_email": "owner@shop.in",
            "visit_successful": "yes",
        },
    )

    assert response.status_code == 200
    assert response.json()["record"]["shop_name"] == "Sharma Kirana"
    assert response.json()["record"]["visit_date"] == "2024-05-15"


def test_location_endpoint(
    container, auth_gateway, profile_repository, geolocation_provider
) -> None:
    geolocation_provider.results.append(make_fix(12.5, 77.25))
    client = _signed_in(container, auth_gateway, profile_repository)

    desktop = client.get("/location", headers={"User-Agent": DESKTOP_UA})
    mobile = client.get("/location", headers={"User-Agent": IPHONE_UA})

    assert desktop.json()["location"] == "Lat: 12.5, Lng: 77.25"
    assert desktop.json()["accuracy_label"] == "Very High"
    assert mobile.json()["coordinates"] is None
    assert mobile.json()["error"] == INSECURE_CONTEXT_MESSAGE
    assert geolocation_provider.calls == 1


def test_location_retries_are_bounded_per_user(
    container, auth_gateway, profile_repository, geolocation_provider
) -> None:
    geolocation_provider.results.extend([LocationErrorKind.TIMEOUT] * 4)
    client = _signed_in(container, auth_gateway, profile_repository)
    client.headers["User-Agent"] = DESKTOP_UA

    first = client.get("/location")
    retries = [client.get("/location", params={"retry": "true"}) for _ in range(3)]
    refused = client.get("/location", params={"retry": "true"})

    assert first.json()["retries_left"] == 3
    assert [response.status_code for response in retries] == [200, 200, 200]
    assert [response.json()["retries_left"] for response in retries] == [2, 1, 0]
    assert all(response.json()["coordinates"] is None for response in retries)
    assert refused.status_code == 400
    assert refused.json()["message"] == MAX_RETRIES_MESSAGE
    assert geolocation_provider.calls == 4


def test_location_success_restores_retry_budget(
    container, auth_gateway, profile_repository, geolocation_provider
) -> None:
    geolocation_provider.results.extend(
        [LocationErrorKind.TIMEOUT, LocationErrorKind.TIMEOUT, make_fix()]
    )
    client = _signed_in(container, auth_gateway, profile_repository)
    client.headers["User-Agent"] = DESKTOP_UA

    client.get("/location")
    client.get("/location", params={"retry": "true"})
    fixed = client.get("/location", params={"retry": "true"})

    assert fixed.json()["location"] == "Lat: 12.9716, Lng: 77.5946"
    assert fixed.json()["retries_left"] == 3


def test_profile_endpoints(
    container, auth_gateway, profile_repository, photo_data_url
) -> None:
    client = _signed_in(container, auth_gateway, profile_repository)

    page = client.get("/profile")
    updated = client.patch("/profile", json={"bio": "Field rep"})
    preferences = client.put("/profile/preferences", json={"dark_mode": True})
    avatar = client.post("/profile/avatar", json={"image": photo_data_url})
    password = client.post(
        "/profile/password",
        json={
            "current_password": "secret1",
            "new_password": "new-secret",
            "confirm_password": "new-secret",
        },
    )

    assert page.json()["profile"]["display_name"] == "asha"
    assert page.json()["preferences"]["language"] == "english"
    assert updated.json() == {"level": "success", "message": "Profile updated successfully"}
    assert preferences.json()["preferences"]["dark_mode"] is True
    assert avatar.json()["avatar_url"].startswith("https://cdn.example.com/avatars/")
    assert password.status_code == 200
