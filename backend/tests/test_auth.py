"""
Tests for authentication endpoints: registration, login, logout and profile.
"""

import pytest
from httpx import AsyncClient

REGISTRATION = {
    "email": "new@example.com",
    "username": "NewUser",
    "emp_id": "JMD042",
    "designation": "Analyst",
    "password": "securepassword123",
}


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns user data with a lowercased username."""
    response = await client.post("/api/v1/auth/register", json=REGISTRATION)
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["username"] == "newuser"
    assert data["emp_id"] == "JMD042"
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/register", json={
        **REGISTRATION,
        "email": "test@example.com",
    })
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_duplicate_username_case_insensitive(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/register", json={
        **REGISTRATION,
        "username": "TestUser",
    })
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_invalid_emp_id(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        **REGISTRATION,
        "emp_id": "ABC123",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        **REGISTRATION,
        "password": "short",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_sets_token_and_cookie(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    set_cookie = response.headers["set-cookie"]
    assert f"token={data['access_token']}" in set_cookie
    assert "httponly" in set_cookie.lower()


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_nonexistent_email(client: AsyncClient):
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_with_bearer(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "testuser"


@pytest.mark.asyncio
async def test_me_with_cookie_then_logout(client: AsyncClient, test_user):
    login = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    token = login.json()["access_token"]

    me = await client.get("/api/v1/users/me", headers={"Cookie": f"token={token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "test@example.com"

    logout = await client.post("/api/v1/auth/logout")
    assert logout.status_code == 200
    assert "token=" in logout.headers["set-cookie"]


@pytest.mark.asyncio
async def test_me_unauthenticated(client: AsyncClient):
    response = await client.get("/api/v1/users/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_invalid_token(client: AsyncClient):
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
