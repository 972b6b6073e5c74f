from conftest import make_item, make_user


def _place(client, customer_id, vendor_id, item_id, quantity=1):
    return client.post(
        "/api/orders",
        json={
            "customer": customer_id,
            "vendor": vendor_id,
            "items": [{"menuItem": item_id, "quantity": quantity}],
        },
    )


def test_home_and_health(client):
    home = client.get("/").get_json()
    assert home["success"] is True
    assert home["endpoints"]["orders"] == "/api/orders"

    health = client.get("/health").get_json()
    assert health["status"] == "OK"
    assert health["environment"] == "testing"
    assert health["timestamp"].endswith("Z")


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json() == {
        "success": False,
        "message": "Route not found",
        "path": "/api/nothing-here",
    }


def test_register_and_login_flow(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "kiran@example.com", "password": "secret123", "name": "Kiran", "role": "vendor"},
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["token"]
    vendor_id = body["user"]["id"]

    response = client.post("/api/auth/login", json={"email": "kiran@example.com", "password": "secret123"})
    assert response.status_code == 403
    assert response.get_json()["errorType"] == "VENDOR_PENDING_APPROVAL"

    pending = client.get("/api/auth/pending-vendors").get_json()
    assert pending["count"] == 1

    response = client.put(f"/api/auth/approve-vendor/{vendor_id}")
    assert response.status_code == 200
    assert response.get_json()["vendor"]["isApproved"] is True

    response = client.post("/api/auth/login", json={"email": "kiran@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.get_json()["user"]["role"] == "vendor"


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert response.status_code == 404
    body = response.get_json()
    assert body["success"] is False
    assert body["errorType"] == "EMAIL_NOT_FOUND"


def test_register_missing_fields(client):
    response = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert response.status_code == 400
    body = response.get_json()
    assert body["errorType"] == "VALIDATION_ERROR"
    assert body["details"] == {"missing": ["password", "name"]}


def test_user_management_routes(client, vendor_id):
    make_item(vendor_id, name="Chaat")

    users = client.get("/api/auth/users?role=vendor").get_json()
    assert users["count"] == 1

    response = client.put(f"/api/auth/user/{vendor_id}", json={"name": "Renamed"})
    assert response.get_json()["user"]["name"] == "Renamed"

    response = client.put(
        f"/api/auth/user/{vendor_id}/password",
        json={"currentPassword": "secret123", "newPassword": "another123"},
    )
    assert response.status_code == 200

    response = client.delete(f"/api/auth/user/{vendor_id}")
    body = response.get_json()
    assert body["user"]["isActive"] is False
    assert body["deletedMenuItemsCount"] == 1

    assert client.get("/api/auth/user/9999").status_code == 404


def test_reject_vendor_route(client):
    vendor_id = make_user("vendor", email="late@example.com", approved=False)
    make_item(vendor_id)

    response = client.delete(f"/api/auth/reject-vendor/{vendor_id}")
    assert response.status_code == 200
    assert response.get_json()["deletedMenuItemsCount"] == 1
    assert client.get(f"/api/auth/user/{vendor_id}").status_code == 404


def test_menu_crud(client, vendor_id):
    response = client.post(
        "/api/menu",
        json={"vendor": vendor_id, "name": "Pav Bhaji", "price": 90, "category": "Snacks", "stock": 3},
    )
    assert response.status_code == 201
    item = response.get_json()["item"]
    assert item["vendor"]["restaurantName"] == "Test Kitchen"

    duplicate = client.post(
        "/api/menu",
        json={"vendor": vendor_id, "name": "Pav Bhaji", "price": 90, "category": "Snacks"},
    )
    assert duplicate.status_code == 409
    assert duplicate.get_json()["errorType"] == "DUPLICATE_ITEM_NAME"

    response = client.put(f"/api/menu/{item['id']}", json={"price": 99})
    assert response.get_json()["item"]["price"] == 99

    response = client.put(f"/api/menu/{item['id']}/stock", json={"quantity": 3, "operation": "subtract"})
    assert response.get_json()["item"]["available"] is False

    response = client.put(f"/api/menu/{item['id']}/toggle")
    assert response.status_code == 400
    assert response.get_json()["errorType"] == "OUT_OF_STOCK"

    response = client.put(f"/api/menu/{item['id']}/stock", json={"quantity": 2, "operation": "add"})
    assert response.get_json()["item"]["stock"] == 2

    response = client.put(f"/api/menu/{item['id']}/rating", json={"rating": 5})
    assert response.get_json()["item"]["rating"] == {"average": 5.0, "count": 1}

    assert client.delete(f"/api/menu/{item['id']}").get_json()["item"]["isActive"] is False
    assert client.get("/api/menu").get_json()["totalItems"] == 0

    response = client.put(f"/api/menu/{item['id']}/restore")
    assert response.get_json()["item"]["isActive"] is True

    assert client.get(f"/api/menu/{item['id']}").get_json()["item"]["name"] == "Pav Bhaji"
    assert client.get("/api/menu/424242").status_code == 404


def test_menu_listing_pagination(client, vendor_id):
    for index in range(5):
        make_item(vendor_id, name=f"Dish {index}", price=10 + index)

    body = client.get("/api/menu?sortBy=price-low&page=2&limit=2").get_json()
    assert body["totalItems"] == 5
    assert body["totalPages"] == 3
    assert body["currentPage"] == 2
    assert [item["name"] for item in body["items"]] == ["Dish 2", "Dish 3"]

    assert client.get("/api/menu?limit=0").status_code == 400
    assert client.get("/api/menu/categories").get_json()["categories"] == ["Main Course"]

    vendor_menu = client.get(f"/api/menu/vendor/{vendor_id}").get_json()
    assert vendor_menu["count"] == 5


def test_order_lifecycle(client, customer_id, vendor_id):
    item_id = make_item(vendor_id, name="Thali", price=120, stock=2)

    response = _place(client, customer_id, vendor_id, item_id, quantity=2)
    assert response.status_code == 201
    order = response.get_json()["order"]
    assert order["tokenId"] == 1
    assert order["totalAmount"] == 240
    assert order["customer"]["email"] == "customer@example.com"

    response = _place(client, customer_id, vendor_id, item_id)
    assert response.status_code == 400
    body = response.get_json()
    assert body["errorType"] == "INSUFFICIENT_STOCK"
    assert body["details"][0]["available"] == 0

    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "preparing", "notes": "Started"})
    assert response.get_json()["order"]["notes"]["vendor"] == "Started"

    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "boiling"})
    assert response.status_code == 400
    assert response.get_json()["errorType"] == "INVALID_STATUS"

    response = client.patch(f"/api/orders/{order['id']}/cancel", json={"reason": "changed mind"})
    cancelled = response.get_json()["order"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["notes"]["customer"] == "Cancelled by customer: changed mind"

    response = client.patch(f"/api/orders/{order['id']}/cancel", json={})
    assert response.status_code == 409
    assert response.get_json()["errorType"] == "ORDER_FINALIZED"

    menu_item = client.get(f"/api/menu/{item_id}").get_json()["item"]
    assert menu_item["stock"] == 2
    assert menu_item["available"] is True


def test_order_queries_and_analytics(client, customer_id, vendor_id):
    item_id = make_item(vendor_id, stock=10)
    order = _place(client, customer_id, vendor_id, item_id).get_json()["order"]
    _place(client, customer_id, vendor_id, item_id)

    listing = client.get(f"/api/orders?vendor={vendor_id}&limit=1").get_json()
    assert listing["totalOrders"] == 2
    assert listing["totalPages"] == 2
    assert listing["count"] == 1

    assert client.get(f"/api/orders/customer/{customer_id}").get_json()["count"] == 2
    assert client.get(f"/api/orders/vendor/{vendor_id}?status=ordered").get_json()["count"] == 2
    assert client.get(f"/api/orders/{order['id']}").get_json()["order"]["id"] == order["id"]

    response = client.put(f"/api/orders/{order['id']}", json={"estimatedTime": 20})
    assert response.get_json()["order"]["estimatedTime"] == 20

    client.put(f"/api/orders/{order['id']}/status", json={"status": "completed"})
    response = client.put(f"/api/orders/{order['id']}/rating", json={"food": 5, "service": 5, "overall": 4})
    assert response.get_json()["order"]["rating"]["overall"] == 4

    report = client.get(f"/api/orders/analytics/{vendor_id}?days=7").get_json()
    assert report["analytics"]["totalOrders"] == 1
    assert report["popularItems"][0]["totalQuantity"] == 1

    response = client.delete(f"/api/orders/{order['id']}")
    assert response.get_json() == {"success": True, "message": "Order deleted successfully"}
    assert client.get(f"/api/orders/{order['id']}").status_code == 404
