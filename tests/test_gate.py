# tests/test_gate.py

from repairhub.config import settings

def test_preflight_gets_cors_headers(client):
    response = client.options("/api/repairs", headers={"Origin": "http://localhost:5173"})
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert "PUT" in response.headers["Access-Control-Allow-Methods"]
    assert response.headers["Access-Control-Allow-Credentials"] == "true"

def test_public_routes_need_no_token(client):
    assert client.get("/").status_code == 200
    assert client.get("/login").status_code == 200
    assert client.get("/register").status_code == 200

def test_static_assets_pass_through(client):
    response = client.get("/static/css/app.css")
    assert response.status_code == 200

def test_api_without_token_is_401(client):
    response = client.get("/api/repairs")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}

def test_api_with_bad_token_is_401(client):
    response = client.get("/api/repairs", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}

def test_page_without_token_redirects_to_login(client):
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login?redirect=%2Fdashboard"

def test_page_with_bad_cookie_redirects_and_clears_it(client):
    headers = {"Cookie": "token=nonsense"}
    response = client.get("/technician/messages", headers=headers, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login?redirect=%2Ftechnician%2Fmessages"
    assert 'token=""' in response.headers["set-cookie"]

def test_customer_kept_out_of_technician_section(client, customer):
    response = client.get("/technician/available", headers=customer["headers"], follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"

def test_staff_sent_to_technician_section(client, technician, admin):
    for user in (technician, admin):
        response = client.get("/dashboard", headers=user["headers"], follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/technician"

def test_login_page_with_session_goes_to_landing_page(client, technician):
    headers = {"Cookie": f"token={technician['token']}"}
    response = client.get("/login", headers=headers, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/technician"

def test_security_headers_on_responses(client, customer):
    response = client.get("/api/repairs", headers=customer["headers"])
    assert response.status_code == 200
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert response.headers["X-Content-Type-Options"] == "nosniff"

def test_spoofed_identity_headers_are_ignored(client, customer, make_user, make_repair):
    other = make_user("customer")
    make_repair(other, title="Not yours")

    response = client.get("/api/repairs", headers={"X-User-Id": other["id"], "X-User-Role": "admin"})
    assert response.status_code == 401

    response = client.get(
        "/api/repairs",
        headers={**customer["headers"], "X-User-Id": other["id"], "X-User-Role": "admin"},
    )
    assert response.status_code == 200
    assert response.json() == []

def test_dev_bypass_passes_gate_but_grants_no_identity(client, monkeypatch):
    monkeypatch.setattr(settings, "DEV_BYPASS_TOKEN", "dev-token")
    response = client.get("/api/repairs", headers={"Authorization": "Bearer dev-token"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}

def test_dev_bypass_ignored_in_production(client, monkeypatch):
    monkeypatch.setattr(settings, "DEV_BYPASS_TOKEN", "dev-token")
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    response = client.get("/api/repairs", headers={"Authorization": "Bearer dev-token"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}
