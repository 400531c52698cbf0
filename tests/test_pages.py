# tests/test_pages.py

def test_home_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "RepairHub" in response.text

def test_customer_dashboard_lists_repairs(client, customer, make_repair):
    make_repair(customer, title="Tablet - Galaxy Tab")
    response = client.get("/dashboard", headers=customer["headers"])
    assert response.status_code == 200
    assert "Tablet - Galaxy Tab" in response.text
    assert 'data-poll="/api/repairs"' in response.text
    assert 'data-poll-interval="30000"' in response.text

def test_technician_pages(client, technician, repair):
    response = client.get("/technician/available", headers=technician["headers"])
    assert response.status_code == 200
    assert repair["title"] in response.text

    response = client.get("/technician", headers=technician["headers"])
    assert response.status_code == 200

def test_messages_page_shows_unread_badge(client, customer, claimed_repair):
    response = client.get("/dashboard/messages", headers=customer["headers"])
    assert response.status_code == 200
    assert claimed_repair["title"] in response.text
    assert '<span class="badge">1</span>' in response.text

def test_profile_page(client, technician):
    response = client.get("/technician/profile", headers=technician["headers"])
    assert response.status_code == 200
    assert technician["email"] in response.text

def test_login_page_ignores_offsite_redirect(client):
    response = client.get("/login", params={"redirect": "//evil.example.com"})
    assert response.status_code == 200
    assert "evil.example.com" not in response.text
