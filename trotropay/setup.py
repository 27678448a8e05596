import argparse
from decimal import Decimal
from http import HTTPStatus
from requests import post

from trotropay.src import argon2
from trotropay.src.constants import API_PREFIX, PASSENGER_STARTING_BALANCE
from trotropay.src.enums import AccountRole
from trotropay.src.fare_table import FareTable, newTable
from trotropay.src.urls import (
    URL_ACCOUNT_TOKEN,
    URL_PAYMENT_PROCESS,
    URL_ROUTE_CALCULATE_FARE,
)
from trotropay.src.db import (
    Account,
    Commission,
    Route,
    Vehicle,
    Wallet,
    sessionMaker,
    engine,
    ORMbase,
)


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables():
    session = sessionMaker()
    ORMbase.metadata.drop_all(engine)
    session.commit()
    print("* All tables deleted")
    session.close()


def createTables():
    session = sessionMaker()
    ORMbase.metadata.create_all(engine)
    session.commit()
    print("* All tables created")
    session.close()


def addAccount(session, phoneNumber: str, fullName: str, role: AccountRole, pin: str):
    account = Account(
        phone_number=phoneNumber,
        pin=argon2.makePin(pin),
        role=role,
        full_name=fullName,
    )
    session.add(account)
    session.flush()
    balance = PASSENGER_STARTING_BALANCE if role == AccountRole.PASSENGER else 0
    session.add(Wallet(account_id=account.id, balance=balance))
    session.flush()
    return account


def addRoute(session, name: str, stops: list, fares: list):
    table = newTable(stops, FareTable.parseFares(fares))
    stops, fares = table.encode()
    route = Route(
        name=name, start_point=stops[0], end_point=stops[-1], stops=stops, fares=fares
    )
    session.add(route)
    session.flush()
    return route


def initDB():
    session = sessionMaker()

    passenger = addAccount(
        session, "0245678901", "Kwame Asante", AccountRole.PASSENGER, "1234"
    )
    mate = addAccount(session, "0234567890", "Kofi Mate", AccountRole.MATE, "1234")
    driver = addAccount(session, "0223456789", "John Mensah", AccountRole.DRIVER, "1234")
    owner = addAccount(session, "0212345678", "Mary Owner", AccountRole.OWNER, "1234")
    print("* Created accounts")

    circle = addRoute(
        session,
        "Circle - Lapaz",
        ["Circle", "37 Station", "Achimota", "Lapaz"],
        ["Circle:0.00", "37 Station:2.00", "Achimota:2.50", "Lapaz:3.50"],
    )
    tema = addRoute(
        session,
        "Tema - Accra",
        ["Tema", "Ashaiman", "Teshie", "Accra"],
        ["Tema:0.00", "Ashaiman:2.50", "Teshie:3.00", "Accra:4.00"],
    )
    print("* Created routes")

    for vehicleId, route in (("GT-1234-20", circle), ("GT-5678-19", tema)):
        session.add(
            Vehicle(
                vehicle_id=vehicleId,
                route_name=route.name,
                owner_id=owner.id,
                driver_id=driver.id,
                mate_id=mate.id,
                is_active=True,
            )
        )
    print("* Created vehicles")

    session.add(
        Commission(
            owner_id=owner.id,
            driver_commission=Decimal("15.00"),
            mate_commission=Decimal("10.00"),
            platform_fee=Decimal("5.00"),
        )
    )
    session.commit()
    print("* Created commission")
    print("* Test accounts (PIN 1234):")
    print(f"  - Passenger: {passenger.phone_number}")
    print(f"  - Mate: {mate.phone_number}")
    print(f"  - Driver: {driver.phone_number}")
    print(f"  - Owner: {owner.phone_number}")
    print("* Initialization completed")
    session.close()


def POST(URL: str, header: dict = {}, status_code: int = HTTPStatus.CREATED, **kwargs):
    response = post(URL, headers=header, **kwargs)
    assert response.status_code == status_code, response.text
    return response


def testDB():
    # Base URL
    BASE_URL = f"http://127.0.0.1:8080{API_PREFIX}"

    # Create passenger token
    credentials = {"phoneNumber": "0245678901", "pin": "1234"}
    response = POST((BASE_URL + URL_ACCOUNT_TOKEN), json=credentials)
    print("* Created token for passenger")
    accessToken = {"Authorization": f"Bearer {response.json()['accessToken']}"}

    # Price a trip on the first route
    quote = POST(
        BASE_URL + URL_ROUTE_CALCULATE_FARE.format(routeId=1),
        json={"boardingStop": "37 Station", "alightingStop": "Lapaz"},
        status_code=HTTPStatus.OK,
    ).json()
    print(f"* Fare for {quote['route']}: {quote['amount']}")

    # Pay for it
    payment = POST(
        BASE_URL + URL_PAYMENT_PROCESS,
        header=accessToken,
        json={
            "vehicleId": "GT-1234-20",
            "boardingStop": "37 Station",
            "destination": "Lapaz",
        },
        status_code=HTTPStatus.OK,
    ).json()
    print(f"* Paid {payment['transaction']['amount']}, balance {payment['newBalance']}")


# Setup database
if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    # remove tables
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-init", action="store_true", help="add seed data")
    parser.add_argument("-test", action="store_true", help="pay a test fare on a running server")
    args = parser.parse_args()

    if args.cr:
        createTables()
    if args.init:
        initDB()
    if args.test:
        testDB()
    if args.rm:
        removeTables()
