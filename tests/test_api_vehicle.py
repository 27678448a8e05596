from datetime import datetime, timedelta, timezone
from decimal import Decimal

from trotropay.src.db import Transaction, sessionMaker
from trotropay.src.urls import (
    URL_ACCOUNT,
    URL_FLEET_EARNINGS,
    URL_PAYMENT_PROCESS,
    URL_VEHICLE,
    URL_VEHICLE_ALIGHT,
    URL_VEHICLE_BOARD,
    URL_VEHICLE_CREW,
    URL_VEHICLE_DAILY_EARNINGS,
    URL_VEHICLE_EARNINGS,
    URL_VEHICLE_ID,
    URL_VEHICLE_ROUTE,
    URL_VEHICLE_TRANSACTIONS,
)
from conftest import (
    CIRCLE_VEHICLE,
    DRIVER_PHONE,
    MATE_PHONE,
    OWNER_PHONE,
    PASSENGER_PHONE,
    TEMA_VEHICLE,
    accountId,
    fetchVehicle,
    login,
    routeId,
)

API = "/api"


def setCrew(client, headers, vehicleId=CIRCLE_VEHICLE, **fields):
    return client.put(
        API + URL_VEHICLE_CREW.format(vehicleId=vehicleId), headers=headers, json=fields
    )


def board(client, headers, count, vehicleId=CIRCLE_VEHICLE):
    return client.post(
        API + URL_VEHICLE_BOARD.format(vehicleId=vehicleId),
        headers=headers,
        json={"count": count},
    )


def alight(client, headers, count, vehicleId=CIRCLE_VEHICLE):
    return client.post(
        API + URL_VEHICLE_ALIGHT.format(vehicleId=vehicleId),
        headers=headers,
        json={"count": count},
    )


def pay(client, headers, amount, vehicleId=CIRCLE_VEHICLE):
    response = client.post(
        API + URL_PAYMENT_PROCESS,
        headers=headers,
        json={"vehicleId": vehicleId, "destination": "Lapaz", "amount": amount},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_fetch_vehicle_by_code(client, seed):
    response = client.get(API + URL_VEHICLE_ID.format(vehicleId=CIRCLE_VEHICLE))
    assert response.status_code == 200
    assert response.json()["routeName"] == "Circle - Lapaz"
    assert response.json()["isActive"] is True


def test_unknown_vehicle(client, seed):
    response = client.get(API + URL_VEHICLE_ID.format(vehicleId="GT-0000-00"))
    assert response.status_code == 404
    assert response.headers["X-Error"] == "VehicleNotFound"


def test_list_own_vehicles(client, mate_headers):
    response = client.get(API + URL_VEHICLE, headers=mate_headers)
    assert [v["vehicleId"] for v in response.json()] == [CIRCLE_VEHICLE, TEMA_VEHICLE]


def test_owner_registers_vehicle(client, owner_headers):
    response = client.post(
        API + URL_VEHICLE,
        headers=owner_headers,
        json={
            "vehicleId": "GE-4455-21",
            "routeName": "Tema - Accra",
            "driverId": accountId(DRIVER_PHONE),
            "maxCapacity": 15,
        },
    )
    assert response.status_code == 201
    vehicle = response.json()
    assert vehicle["passengerCount"] == 0
    assert vehicle["mateId"] is None


def test_vehicle_crew_must_hold_role(client, owner_headers):
    response = client.post(
        API + URL_VEHICLE,
        headers=owner_headers,
        json={"vehicleId": "GE-4455-21", "driverId": accountId(MATE_PHONE)},
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InvalidCrewMember"


def test_driver_changes_route(client, driver_headers):
    response = client.put(
        API + URL_VEHICLE_ROUTE.format(vehicleId=CIRCLE_VEHICLE),
        headers=driver_headers,
        json={"routeId": routeId("Tema - Accra")},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Route updated successfully"
    assert data["vehicle"]["routeName"] == "Tema - Accra"
    assert data["route"]["stops"][0] == "Tema"


def test_route_change_needs_assigned_driver(client, mate_headers):
    response = client.put(
        API + URL_VEHICLE_ROUTE.format(vehicleId=CIRCLE_VEHICLE),
        headers=mate_headers,
        json={"routeId": routeId("Tema - Accra")},
    )
    assert response.status_code == 403
    assert response.headers["X-Error"] == "NotAssignedToVehicle"
    assert fetchVehicle(CIRCLE_VEHICLE).route_name == "Circle - Lapaz"


def test_crew_update_by_owner(client, owner_headers):
    response = setCrew(client, owner_headers, mateId=None, isActive=False, maxCapacity=12)
    assert response.status_code == 200
    vehicle = response.json()
    assert vehicle["isActive"] is False
    assert vehicle["maxCapacity"] == 12
    assert vehicle["mateId"] == accountId(MATE_PHONE)


def test_crew_update_needs_owner(client, driver_headers):
    response = setCrew(client, driver_headers, isActive=False)
    assert response.status_code == 403
    assert response.headers["X-Error"] == "NoPermission"


def test_board_and_alight_are_clamped(client, owner_headers, mate_headers):
    setCrew(client, owner_headers, maxCapacity=5)

    assert board(client, mate_headers, 3).json()["passengerCount"] == 3
    assert board(client, mate_headers, 4).json()["passengerCount"] == 5
    assert alight(client, mate_headers, 2).json()["passengerCount"] == 3
    assert alight(client, mate_headers, 10).json()["passengerCount"] == 0


def test_board_without_capacity(client, mate_headers):
    assert board(client, mate_headers, 40).json()["passengerCount"] == 40


def test_lower_capacity_clamps_current_count(client, owner_headers, mate_headers):
    board(client, mate_headers, 10)
    response = setCrew(client, owner_headers, maxCapacity=6)
    assert response.json()["passengerCount"] == 6


def test_board_needs_crew(client, seed):
    headers = login(client, PASSENGER_PHONE)
    response = board(client, headers, 1)
    assert response.status_code == 403
    assert response.headers["X-Error"] == "NotAssignedToVehicle"


def test_board_count_must_be_positive(client, mate_headers):
    assert board(client, mate_headers, 0).status_code == 422


def test_earnings_and_transactions(client, passenger_headers, driver_headers):
    for amount in ("3.50", "6.50"):
        response = client.post(
            API + URL_PAYMENT_PROCESS,
            headers=passenger_headers,
            json={"vehicleId": CIRCLE_VEHICLE, "destination": "Lapaz", "amount": amount},
        )
        assert response.status_code == 200

    response = client.get(
        API + URL_VEHICLE_EARNINGS.format(vehicleId=CIRCLE_VEHICLE),
        headers=driver_headers,
    )
    assert response.status_code == 200
    assert response.json() == {
        "vehicleId": CIRCLE_VEHICLE,
        "transactions": 2,
        "grossEarnings": "10.00",
        "driverShare": "1.50",
        "mateShare": "1.00",
        "platformFee": "0.50",
        "ownerNet": "7.00",
    }

    response = client.get(
        API + URL_VEHICLE_TRANSACTIONS.format(vehicleId=CIRCLE_VEHICLE),
        headers=driver_headers,
    )
    amounts = [Decimal(t["amount"]) for t in response.json()]
    assert amounts == [Decimal("6.50"), Decimal("3.50")]


def test_earnings_of_other_vehicle_are_private(client, owner_headers, seed):
    client.post(
        API + URL_VEHICLE,
        headers=owner_headers,
        json={"vehicleId": "GE-4455-21"},
    )
    headers = login(client, DRIVER_PHONE)
    response = client.get(
        API + URL_VEHICLE_EARNINGS.format(vehicleId="GE-4455-21"), headers=headers
    )
    assert response.status_code == 403


def test_transactions_keep_crew_of_payment_time(
    client, passenger_headers, owner_headers
):
    pay(client, passenger_headers, "3.50")
    response = client.post(
        API + URL_ACCOUNT,
        json={
            "fullName": "Kofi Boateng",
            "phoneNumber": "0271234567",
            "pin": "4321",
            "role": 3,
        },
    )
    assert response.status_code == 201
    newDriverId = response.json()["id"]

    response = setCrew(client, owner_headers, driverId=newDriverId)
    assert response.json()["driverId"] == newDriverId

    response = client.get(
        API + URL_VEHICLE_TRANSACTIONS.format(vehicleId=CIRCLE_VEHICLE),
        headers=owner_headers,
    )
    [transaction] = response.json()
    assert transaction["driverId"] == accountId(DRIVER_PHONE)
    assert transaction["mateId"] == accountId(MATE_PHONE)
    assert fetchVehicle(CIRCLE_VEHICLE).driver_id == newDriverId


def test_daily_earnings(client, passenger_headers, mate_headers):
    pay(client, passenger_headers, "3.50")
    pay(client, passenger_headers, "6.50")
    with sessionMaker() as session:
        older = session.query(Transaction).order_by(Transaction.id.asc()).first()
        older.created_on = datetime.now(timezone.utc) - timedelta(days=2)
        session.commit()

    response = client.get(
        API + URL_VEHICLE_DAILY_EARNINGS.format(vehicleId=CIRCLE_VEHICLE),
        headers=mate_headers,
        params={"days": 3},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["vehicleId"] == CIRCLE_VEHICLE
    today = datetime.now(timezone.utc).date()
    assert [day["day"] for day in data["days"]] == [
        (today - timedelta(days=2)).isoformat(),
        (today - timedelta(days=1)).isoformat(),
        today.isoformat(),
    ]
    assert [day["transactions"] for day in data["days"]] == [1, 0, 1]
    assert [day["grossEarnings"] for day in data["days"]] == ["3.50", "0.00", "6.50"]


def test_daily_earnings_default_to_a_week(client, driver_headers):
    response = client.get(
        API + URL_VEHICLE_DAILY_EARNINGS.format(vehicleId=CIRCLE_VEHICLE),
        headers=driver_headers,
    )
    assert len(response.json()["days"]) == 7


def test_daily_earnings_window_is_bounded(client, driver_headers):
    url = API + URL_VEHICLE_DAILY_EARNINGS.format(vehicleId=CIRCLE_VEHICLE)
    assert client.get(url, headers=driver_headers, params={"days": 0}).status_code == 422
    assert client.get(url, headers=driver_headers, params={"days": 32}).status_code == 422


def test_daily_earnings_need_crew(client, seed):
    headers = login(client, PASSENGER_PHONE)
    response = client.get(
        API + URL_VEHICLE_DAILY_EARNINGS.format(vehicleId=CIRCLE_VEHICLE),
        headers=headers,
    )
    assert response.status_code == 403
    assert response.headers["X-Error"] == "NotAssignedToVehicle"


def test_fleet_earnings(client, passenger_headers, owner_headers):
    pay(client, passenger_headers, "10.00")
    pay(client, passenger_headers, "3.50", vehicleId=TEMA_VEHICLE)

    response = client.get(API + URL_FLEET_EARNINGS, headers=owner_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["ownerId"] == accountId(OWNER_PHONE)
    assert [v["vehicleId"] for v in data["vehicles"]] == [CIRCLE_VEHICLE, TEMA_VEHICLE]
    assert data["vehicles"][0]["ownerNet"] == "7.00"
    assert data["vehicles"][1]["ownerNet"] == "2.45"
    assert data["transactions"] == 2
    assert data["totalEarnings"] == "13.50"
    assert data["commissions"] == "4.06"
    assert data["netProfit"] == "9.45"


def test_fleet_earnings_without_payments(client, owner_headers):
    data = client.get(API + URL_FLEET_EARNINGS, headers=owner_headers).json()
    assert len(data["vehicles"]) == 2
    assert data["totalEarnings"] == "0.00"
    assert data["netProfit"] == "0.00"


def test_fleet_earnings_need_owner(client, driver_headers):
    response = client.get(API + URL_FLEET_EARNINGS, headers=driver_headers)
    assert response.status_code == 403
    assert response.headers["X-Error"] == "NoPermission"
