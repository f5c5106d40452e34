from sqlalchemy import select

from ateleslie.models.user import User, UserRole
from ateleslie.services import auth_service

from conftest import create_user, fetch_fresh


async def test_list_users_requires_manage_permission(client, member_headers):
    response = await client.get("/api/users", headers=member_headers)
    assert response.status_code == 403
    assert response.json()["success"] is False


async def test_list_users_requires_authentication(client):
    response = await client.get("/api/users")
    assert response.status_code == 401


async def test_list_users_paginates(client, db, admin_headers, member):
    for i in range(3):
        await create_user(db, f"extra_{i}", f"extra{i}@example.com")

    response = await client.get("/api/users", headers=admin_headers, params={"page": 2, "limit": 2})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"] == {"currentPage": 2, "totalPages": 3, "totalItems": 5, "limit": 2}
    assert len(data["items"]) == 2


async def test_list_users_search(client, admin_headers, member):
    response = await client.get("/api/users", headers=admin_headers, params={"search": "MEMB"})
    usernames = [u["username"] for u in response.json()["data"]["items"]]
    assert usernames == ["member"]


async def test_get_user(client, admin_headers, member):
    response = await client.get(f"/api/users/{member.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "member@example.com"

    missing = await client.get("/api/users/9999", headers=admin_headers)
    assert missing.status_code == 404


async def test_promote_user_updates_permissions(client, admin_headers, member):
    response = await client.put(
        f"/api/users/{member.id}", headers=admin_headers, json={"role": "admin"}
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["role"] == "admin"
    assert "user:manage" in data["permissions"]


async def test_deactivate_user(client, admin_headers, member, db):
    response = await client.put(
        f"/api/users/{member.id}", headers=admin_headers, json={"isActive": False}
    )
    assert response.status_code == 200
    assert response.json()["data"]["isActive"] is False


async def test_last_admin_cannot_be_demoted(client, admin, admin_headers):
    response = await client.put(
        f"/api/users/{admin.id}", headers=admin_headers, json={"role": "user"}
    )
    assert response.status_code == 400


async def test_inactive_admin_can_be_demoted(client, db, admin, admin_headers):
    retired = await create_user(db, "retired", "retired@example.com", role=UserRole.ADMIN, is_active=False)
    response = await client.put(
        f"/api/users/{retired.id}", headers=admin_headers, json={"role": "user"}
    )
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "user"


async def test_admin_update_rejects_taken_email(client, admin_headers, admin, member):
    response = await client.put(
        f"/api/users/{member.id}", headers=admin_headers, json={"email": "admin@example.com"}
    )
    assert response.status_code == 409


async def test_admin_sets_user_password(client, db, admin_headers, member):
    response = await client.put(
        f"/api/users/{member.id}/password",
        headers=admin_headers,
        json={"newPassword": "Adm1n!Chosen", "confirmNewPassword": "Adm1n!Chosen"},
    )
    assert response.status_code == 200

    stored = await fetch_fresh(db, select(User).where(User.id == member.id))
    assert auth_service.verify_password("Adm1n!Chosen", stored.hashed_password)
