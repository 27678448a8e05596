from secrets import token_hex
from sqlalchemy import (
    JSON,
    TEXT,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    func,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from trotropay.src.constants import (
    DB_URL,
    DEFAULT_DRIVER_COMMISSION,
    DEFAULT_MATE_COMMISSION,
    DEFAULT_PAYMENT_METHOD,
    DEFAULT_PLATFORM_FEE,
)
from trotropay.src.enums import (
    AccountRole,
    AccountStatus,
    PlatformType,
    TransactionStatus,
)


# Global DBMS variables
engine = create_engine(url=DB_URL, echo=False)
sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)
ORMbase = declarative_base()


# ----------------------------------- Account DB Models ---------------------------------------#
class Account(ORMbase):
    """
    Represents any user of the platform: passengers, mates (conductors), drivers
    and vehicle owners share this table and are told apart by `role`.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the account.

        phone_number (String(16)):
            Mobile money phone number used to log in, e.g. 0245678901.
            Must be unique and not null.

        pin (TEXT):
            Argon2 hash of the account PIN.
            Plaintext should never be stored here.

        role (Integer):
            Mapped from the `AccountRole` enum.

        full_name (String(64)):
            Display name of the account holder.

        status (Integer):
            Indicates the account status.
            Mapped from the `AccountStatus` enum. Defaults to `AccountStatus.ACTIVE`.

        updated_on (DateTime):
            Timestamp automatically updated whenever the account is modified.

        created_on (DateTime):
            Timestamp of when the account was created.
    """

    __tablename__ = "account"

    id = Column(Integer, primary_key=True)
    phone_number = Column(String(16), nullable=False, unique=True)
    pin = Column(TEXT, nullable=False)
    role = Column(Integer, nullable=False, default=AccountRole.PASSENGER)
    full_name = Column(String(64), nullable=False)
    status = Column(Integer, nullable=False, default=AccountStatus.ACTIVE)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class AccountToken(ORMbase):
    """
    Represents an access token issued to an account after a successful
    phone number and PIN check.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the token.

        account_id (Integer):
            Foreign key referencing the owning account.
            Deleting the account removes its tokens.

        access_token (String(64)):
            Random hexadecimal bearer token. Unique and indexed.

        expires_in (Integer):
            Lifetime of the token in seconds.

        expires_at (DateTime):
            Moment after which the token is rejected.

        platform_type (Integer):
            Mapped from the `PlatformType` enum.

        client_details (TEXT):
            Optional free-form client description (user agent, device).

        updated_on (DateTime):
            Timestamp automatically updated whenever the token is modified.

        created_on (DateTime):
            Timestamp of when the token was issued.
    """

    __tablename__ = "account_token"

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_token = Column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        default=lambda: token_hex(32),
    )
    expires_in = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    platform_type = Column(Integer, nullable=False, default=PlatformType.OTHER)
    client_details = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Wallet(ORMbase):
    """
    Represents the spendable mobile money balance of an account.

    - Every account owns exactly one wallet.
    - The balance is only changed through the wallet ledger (debit, credit).
    - A database check keeps the balance from ever going negative.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the wallet.

        account_id (Integer):
            Foreign key referencing the owning account. Unique.

        balance (Numeric(10, 2)):
            The current balance of the wallet, two decimal places.

        updated_on (DateTime):
            The timestamp of the last balance update.

        created_on (DateTime):
            The timestamp when the wallet was created.
    """

    __tablename__ = "wallet"
    __table_args__ = (CheckConstraint("balance >= 0", name="wallet_balance_positive"),)

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    balance = Column(Numeric(10, 2), nullable=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Commission(ORMbase):
    """
    Per-owner commission configuration used to split the gross fares collected
    by the owner's vehicles.

    Percentages need not add up to 100, the remainder is the owner's net.

    Columns:
        id (Integer):
            Primary key.

        owner_id (Integer):
            Foreign key referencing the owner account. Unique.

        driver_commission (Numeric(5, 2)):
            Driver share in percent. Defaults to 15.00.

        mate_commission (Numeric(5, 2)):
            Mate share in percent. Defaults to 10.00.

        platform_fee (Numeric(5, 2)):
            Platform fee in percent. Defaults to 5.00.

        updated_on (DateTime):
            Timestamp automatically updated whenever the rates change.

        created_on (DateTime):
            Timestamp of when the configuration was created.
    """

    __tablename__ = "commission"

    id = Column(Integer, primary_key=True)
    owner_id = Column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    driver_commission = Column(
        Numeric(5, 2), nullable=False, default=DEFAULT_DRIVER_COMMISSION
    )
    mate_commission = Column(
        Numeric(5, 2), nullable=False, default=DEFAULT_MATE_COMMISSION
    )
    platform_fee = Column(Numeric(5, 2), nullable=False, default=DEFAULT_PLATFORM_FEE)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Transport DB Models -------------------------------------#
class Route(ORMbase):
    """
    Represents a trotro route with its ordered stops and cumulative fare table.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the route.

        name (String(128)):
            Human-readable name, unique. ex:- Circle - Lapaz
            Vehicles refer to their route by this name.

        start_point (String(64)):
            Label of the starting terminal.

        end_point (String(64)):
            Label of the final terminal.

        stops (JSON):
            Ordered list of stop names, unique within the route, at least two.

        fares (JSON):
            List of "stop:amount" strings positionally aligned with `stops`.
            The amount is the cumulative fare from the first stop, which is always 0.00.
            Decoded into a `FareTable` before use and encoded back on write.

        updated_on (DateTime):
            Timestamp automatically updated when the route is modified.

        created_on (DateTime):
            Timestamp indicating when the route was created.
    """

    __tablename__ = "route"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False, unique=True)
    start_point = Column(String(64), nullable=False)
    end_point = Column(String(64), nullable=False)
    stops = Column(JSON, nullable=False)
    fares = Column(JSON, nullable=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Vehicle(ORMbase):
    """
    Represents a trotro and its crew.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the vehicle.

        vehicle_id (String(16)):
            Human-readable plate-style code printed on the vehicle QR sticker,
            e.g. GT-1234-20. Unique.

        route_name (String(128)):
            Name of the route currently served. Null until a route is selected.

        owner_id (Integer):
            Foreign key referencing the owner account.

        driver_id (Integer):
            Foreign key referencing the assigned driver account. Nullable.

        mate_id (Integer):
            Foreign key referencing the assigned mate account. Nullable.

        is_active (Boolean):
            Whether the vehicle is accepting payments.

        passenger_count (Integer):
            Passengers currently aboard, clamped to [0, max_capacity].

        max_capacity (Integer):
            Seat capacity. Null means no upper clamp.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the vehicle was registered.
    """

    __tablename__ = "vehicle"

    id = Column(Integer, primary_key=True)
    vehicle_id = Column(String(16), nullable=False, unique=True, index=True)
    route_name = Column(String(128))
    owner_id = Column(Integer, ForeignKey("account.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("account.id", ondelete="SET NULL"))
    mate_id = Column(Integer, ForeignKey("account.id", ondelete="SET NULL"))
    is_active = Column(Boolean, nullable=False, default=True)
    passenger_count = Column(Integer, nullable=False, default=0)
    max_capacity = Column(Integer)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Transaction(ORMbase):
    """
    Represents a completed fare payment. Rows are append-only.

    The crew columns are a snapshot copied from the vehicle at the moment of
    payment, so reassigning the crew later does not rewrite history.

    Columns:
        id (Integer):
            Primary key.

        passenger_id (Integer):
            Foreign key referencing the paying account.

        vehicle_id (Integer):
            Foreign key referencing the vehicle paid for.

        mate_id, driver_id, owner_id (Integer):
            Crew of the vehicle at payment time. Nullable when unassigned.

        amount (Numeric(10, 2)):
            Gross amount paid for all passengers in the payment.

        passenger_count (Integer):
            Number of passengers covered. Defaults to 1.

        boarding_stop (String(64)):
            Boarding stop when the fare was priced from the route. Nullable.

        destination (String(64)):
            Alighting stop name.

        route (String(128)):
            Route name snapshot.

        status (String(16)):
            Mapped from `TransactionStatus`. Defaults to completed.

        payment_method (String(16)):
            Payment method tag. Defaults to momo.

        created_on (DateTime):
            Timestamp of the payment.
    """

    __tablename__ = "payment_transaction"

    id = Column(Integer, primary_key=True)
    passenger_id = Column(Integer, ForeignKey("account.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicle.id"), nullable=False, index=True)
    mate_id = Column(Integer, ForeignKey("account.id"))
    driver_id = Column(Integer, ForeignKey("account.id"))
    owner_id = Column(Integer, ForeignKey("account.id"))
    amount = Column(Numeric(10, 2), nullable=False)
    passenger_count = Column(Integer, nullable=False, default=1)
    boarding_stop = Column(String(64))
    destination = Column(String(64), nullable=False)
    route = Column(String(128), nullable=False)
    status = Column(
        String(16), nullable=False, default=TransactionStatus.COMPLETED.value
    )
    payment_method = Column(String(16), nullable=False, default=DEFAULT_PAYMENT_METHOD)
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())
