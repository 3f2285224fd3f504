API = "/api"


def _create(client, headers, **body):
    res = client.post(f"{API}/suppliers", json=body, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def test_supplier_name_and_email_are_unique(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    _create(client, manager, name="Acme Wholesale", email="Orders@Acme.example")

    same_name = client.post(f"{API}/suppliers", json={"name": "ACME wholesale"}, headers=manager)
    assert same_name.status_code == 409
    assert same_name.json()["message"] == "Supplier name already exists"

    same_email = client.post(
        f"{API}/suppliers",
        json={"name": "Acme Retail", "email": "orders@acme.example"},
        headers=manager,
    )
    assert same_email.status_code == 409
    assert same_email.json()["message"] == "Supplier email already exists"

    # Suppliers without an email never clash with each other.
    _create(client, manager, name="No Email One")
    _create(client, manager, name="No Email Two")


def test_supplier_invalid_email_is_validation_error(test_context, role_headers):
    client, _ = test_context
    res = client.post(
        f"{API}/suppliers",
        json={"name": "Broken", "email": "not-an-email"},
        headers=role_headers["MANAGER"],
    )
    assert res.status_code == 422
    body = res.json()
    assert body["success"] is False
    assert body["error"]["details"][0]["field"] == "email"


def test_supplier_search_needs_two_characters(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    _create(client, manager, name="Lagos Foods", contact_person="Ada Obi")
    _create(client, manager, name="Abuja Drinks", email="sales@abuja.example")

    short = client.get(f"{API}/suppliers/search/query?q=a", headers=manager)
    assert short.status_code == 200
    assert short.json()["data"] == []

    by_contact = client.get(f"{API}/suppliers/search/query?q=obi", headers=manager)
    assert [s["name"] for s in by_contact.json()["data"]] == ["Lagos Foods"]

    by_email = client.get(f"{API}/suppliers/search/query?q=sales@", headers=manager)
    assert [s["name"] for s in by_email.json()["data"]] == ["Abuja Drinks"]


def test_supplier_lifecycle_and_stats(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    admin = role_headers["ADMIN"]
    active = _create(client, manager, name="Active Co")
    _create(client, manager, name="Paused Co", is_active=False)
    gone = _create(client, manager, name="Gone Co")

    updated = client.patch(
        f"{API}/suppliers/{active['id']}", json={"phone": " +2348000000000 "}, headers=manager
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["phone"] == "+2348000000000"

    null_name = client.patch(f"{API}/suppliers/{active['id']}", json={"name": None}, headers=manager)
    assert null_name.status_code == 422

    assert client.delete(f"{API}/suppliers/{gone['id']}", headers=manager).status_code == 200

    stats = client.get(f"{API}/suppliers/stats/overview", headers=manager).json()["data"]
    assert stats == {"total": 3, "active": 1, "inactive": 1, "deleted": 1}

    listed = client.get(f"{API}/suppliers/active/list", headers=role_headers["STAFF"]).json()["data"]
    assert [s["name"] for s in listed] == ["Active Co"]

    restored = client.post(f"{API}/suppliers/{gone['id']}/restore", headers=admin)
    assert restored.status_code == 200, restored.text
    assert restored.json()["data"]["deleted_at"] is None
