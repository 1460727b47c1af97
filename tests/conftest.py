"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from khata_gateway.api.main import create_app
from khata_gateway.infrastructure.database.models import Base
from khata_gateway.infrastructure.database.session import get_db
from khata_gateway.domain.models import (
    CollateralItem,
    CollateralType,
    EntityType,
    EntryType,
    LedgerEntry,
    Loan,
    Party,
    RepaymentType,
    TransactionType,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SHOP_ID = "shop_ahmedabad_01"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app(db: Session):
    """FastAPI app wired to the test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    """Create FastAPI test client with test database"""
    return TestClient(app)


@pytest.fixture
def customer() -> Party:
    return Party(id="p-cust", shop_id=SHOP_ID, name="Ramesh Patel", entity_type=EntityType.CUSTOMER, phone="9876543210")


@pytest.fixture
def supplier() -> Party:
    return Party(id="p-supp", shop_id=SHOP_ID, name="Shree Bullion", entity_type=EntityType.SUPPLIER)


@pytest.fixture
def gold_chain() -> CollateralItem:
    return CollateralItem(
        item_type=CollateralType.GOLD,
        item_name="Gold chain",
        gross_weight=Decimal("25.500"),
        net_weight=Decimal("24.000"),
        purity="22K",
        estimated_value=Decimal("150000.00"),
    )


@pytest.fixture
def emi_loan(gold_chain: CollateralItem) -> Loan:
    """100000 at 12% over 12 months, EMI 8884.88"""
    return Loan(
        id="loan-1",
        shop_id=SHOP_ID,
        loan_number="GL-001",
        customer_id="p-cust",
        principal_amount=Decimal("100000.00"),
        interest_rate=Decimal("12"),
        repayment_type=RepaymentType.EMI,
        start_date=date(2024, 1, 15),
        tenure_months=12,
        emi_amount=Decimal("8884.88"),
        end_date=date(2025, 1, 15),
        collateral=[gold_chain],
    )


@pytest.fixture
def interest_only_loan(gold_chain: CollateralItem) -> Loan:
    return Loan(
        id="loan-2",
        shop_id=SHOP_ID,
        loan_number="GL-002",
        customer_id="p-cust",
        principal_amount=Decimal("100000.00"),
        interest_rate=Decimal("24"),
        repayment_type=RepaymentType.INTEREST_ONLY,
        start_date=date(2024, 1, 31),
        collateral=[gold_chain],
    )


def _make_entry(
    amount: str,
    entry_type: EntryType,
    transaction_date: date,
    sequence: int,
    party_id: str = "p-cust",
    transaction_type: TransactionType = TransactionType.ADJUSTMENT,
    is_deleted: bool = False,
) -> LedgerEntry:
    """Build a persisted-looking entry for pure engine tests"""
    return LedgerEntry(
        id=str(sequence),
        party_id=party_id,
        amount=Decimal(amount),
        entry_type=entry_type,
        transaction_type=transaction_type,
        transaction_date=transaction_date,
        sequence=sequence,
        is_deleted=is_deleted,
    )


@pytest.fixture
def make_entry():
    """Factory for LedgerEntry objects with explicit sequence"""
    return _make_entry


@pytest.fixture
def party_payload() -> dict:
    return {
        "shop_id": SHOP_ID,
        "name": "Ramesh Patel",
        "entity_type": "CUSTOMER",
        "phone": "9876543210",
    }


@pytest.fixture
def loan_payload() -> dict:
    """EMI loan request body; caller fills customer_id"""
    return {
        "shop_id": SHOP_ID,
        "loan_number": "GL-001",
        "principal_amount": "100000",
        "interest_rate": "12",
        "repayment_type": "emi",
        "tenure_months": 12,
        "start_date": date.today().isoformat(),
        "collateral": [
            {
                "item_type": "gold",
                "item_name": "Gold bangles (pair)",
                "gross_weight": "32.000",
                "net_weight": "30.500",
                "purity": "22K",
                "estimated_value": "180000",
            }
        ],
    }
