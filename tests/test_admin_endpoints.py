"""Tests for admin endpoints."""

from fastapi.testclient import TestClient

from beztern.api.app import create_app
from beztern.domain.models import Role
from tests.conftest import InMemoryAdminRepository, make_profile


def _client(container, auth_gateway, profile_repository, role: Role) -> TestClient:
    user = auth_gateway.add_user("boss@example.com", "secret1", token="admin-token")
    profile_repository.profiles[user.id] = make_profile(
        role=role, id=user.id, username="boss"
    )
    client = TestClient(create_app(container))
    client.headers["Authorization"] = "Bearer admin-token"
    return client


def _seed(container) -> InMemoryAdminRepository:
    repository = container.admin_service.repository
    assert isinstance(repository, InMemoryAdminRepository)
    repository.profiles.append(
        {
            "id": "u-1",
            "full_name": "Asha Rao",
            "email": "asha@example.com",
            "username": "asha",
            "role": "user",
            "active": True,
            "created_at": "2024-05-01T08:00:00+00:00",
        }
    )
    repository.shop_visits.append(
        {
            "id": "s-1",
            "user_id": "u-1",
            "shop_name": 'O\'Brien\'s Shop, "Best"',
            "location": "Lat: 1.0, Lng: 2.0",
            "photos": ["https://cdn/s-1.jpg"],
            "notes": "",
            "created_at": "2024-05-15T08:00:00+00:00",
        }
    )
    return repository


def test_dashboard_requires_sign_in(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/admin-dashboard", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_dashboard_redirects_non_admin_to_default(
    container, auth_gateway, profile_repository
) -> None:
    client = _client(container, auth_gateway, profile_repository, Role.USER)

    response = client.get("/admin-dashboard", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/attendance"


def test_dashboard_lists_filtered_rows(
    container, auth_gateway, profile_repository
) -> None:
    _seed(container)
    client = _client(container, auth_gateway, profile_repository, Role.ADMIN)

    response = client.get(
        "/admin-dashboard", params={"tab": "visits", "search": "o'brien"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["counts"] == {
        "employees": 1,
        "attendance": 0,
        "shop_visits": 1,
        "photos": 1,
    }
    assert data["rows"][0]["user_name"] == "asha"


def test_export_tab_quotes_fields(container, auth_gateway, profile_repository) -> None:
    _seed(container)
    client = _client(container, auth_gateway, profile_repository, Role.ADMIN)

    response = client.get("/admin-dashboard/export", params={"tab": "visits"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="shop_visits.csv"' in response.headers["content-disposition"]
    assert '"O\'Brien\'s Shop, ""Best"""' in response.text


def test_export_empty_collection_is_refused(
    container, auth_gateway, profile_repository
) -> None:
    client = _client(container, auth_gateway, profile_repository, Role.ADMIN)

    response = client.get("/admin-dashboard/export", params={"tab": "attendance"})

    assert response.status_code == 400
    assert response.json() == {"level": "error", "message": "No data to export"}


def test_complete_report_download(container, auth_gateway, profile_repository) -> None:
    _seed(container)
    client = _client(container, auth_gateway, profile_repository, Role.ADMIN)

    response = client.get("/admin-dashboard/report")

    assert response.status_code == 200
    assert "Beztern_Complete_Report_2024-05-15.csv" in response.headers[
        "content-disposition"
    ]
    assert response.text.endswith("Total Photos: 1")


def test_update_and_delete_profile(container, auth_gateway, profile_repository) -> None:
    repository = _seed(container)
    client = _client(container, auth_gateway, profile_repository, Role.ADMIN)

    updated = client.patch(
        "/admin-dashboard/profiles/u-1", json={"role": "admin", "active": False}
    )
    rejected = client.patch("/admin-dashboard/profiles/u-1", json={"role": "manager"})
    deleted = client.delete("/admin-dashboard/profiles/u-1")

    assert updated.status_code == 200
    assert updated.json()["profile"]["role"] == "admin"
    assert rejected.status_code == 422
    assert deleted.json()["message"] == "User deleted successfully"
    assert repository.profiles == []
