import pytest


async def _buy(api, user, **payload):
    resp = await api.rpc("process_credit_purchase", payload, user)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def test_packages_are_listed_with_savings(client):
    packages = (await client.get("/api/v1/me/credits/packages")).json()

    assert [p["credits"] for p in packages] == [50, 100, 200, 500]
    popular = [p for p in packages if p["popular"]]
    assert len(popular) == 1
    assert popular[0]["savings"] == 10


async def test_card_purchase_adds_credits(api):
    user = await api.register(credits=5)

    body = await _buy(api, user, package_id=3, payment_method="card")

    assert body["success"] is True
    assert body["credits_added"] == 200
    assert body["new_balance"] == 205
    assert await api.credits_of(user["id"]) == 205

    history = (await api.client.get("/api/v1/me/credits/purchases", headers=user["headers"])).json()
    assert len(history) == 1
    assert history[0]["status"] == "completed"
    assert history[0]["transaction_id"].startswith("KOB-")

    notes = (await api.client.get("/api/v1/notifications", headers=user["headers"])).json()
    assert notes["items"][0]["type"] == "credits"


async def test_mobile_money_needs_a_phone_number(api):
    user = await api.register()

    without = await _buy(api, user, package_id=1, payment_method="evc")
    with_phone = await _buy(api, user, package_id=1, payment_method="zaad", phone_number="+252634000000")

    assert without == {
        "success": False,
        "purchase_id": None,
        "credits_added": 0,
        "new_balance": None,
        "error": "Phone number is required",
    }
    assert with_phone["success"] is True
    assert with_phone["new_balance"] == 50


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"package_id": 99, "payment_method": "card"}, "Invalid package"),
        ({"package_id": 1, "payment_method": "bitcoin"}, "Invalid payment method"),
    ],
)
async def test_invalid_purchases_change_nothing(api, payload, error):
    user = await api.register(credits=7)

    body = await _buy(api, user, **payload)

    assert body["success"] is False
    assert body["error"] == error
    assert await api.credits_of(user["id"]) == 7


async def test_bought_credits_pay_for_an_enrollment(api):
    course = await api.seed_course(price=90)
    user = await api.register()

    await _buy(api, user, package_id=2, payment_method="sahal", phone_number="+252615000000")
    enrolled = (await api.rpc("enroll_with_credits", {"course_id": str(course["id"])}, user)).json()

    assert enrolled["success"] is True
    assert enrolled["credits_remaining"] == 10
