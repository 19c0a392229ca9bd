"""Pytest fixtures for testing"""

import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from typing import Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from card_ledger.api.dependencies import get_auth_client
from card_ledger.api.main import create_app
from card_ledger.domain.exceptions import InvalidInputError, NotAuthenticatedError
from card_ledger.domain.models import AccessLevel, Principal
from card_ledger.infrastructure.clients.auth import AuthenticatedUser
from card_ledger.infrastructure.database.models import (
    Base,
    BankAccount,
    Category,
    CreditCard,
    LinkedUser,
)
from card_ledger.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "user_owner"
OTHER_OWNER_ID = "user_other"
VIEWER_ID = "user_viewer"
DELEGATE_ID = "user_delegate"

# token -> user id understood by the fake auth service
TOKENS: Dict[str, str] = {
    "owner-token": OWNER_ID,
    "other-token": OTHER_OWNER_ID,
    "viewer-token": VIEWER_ID,
    "delegate-token": DELEGATE_ID,
}


class FakeAuthClient:
    """Stands in for the hosted auth service; created accounts log in with <email>-token"""

    def __init__(self):
        self.tokens: Dict[str, str] = dict(TOKENS)
        self.accounts: Dict[str, str] = {}
        self.deleted: List[str] = []

    async def get_user(self, token: str) -> AuthenticatedUser:
        if token not in self.tokens:
            raise NotAuthenticatedError("Invalid or expired token")
        return AuthenticatedUser(id=self.tokens[token], email=f"{self.tokens[token]}@example.com")

    async def create_user(self, email: str, password: str, name: str, phone: Optional[str] = None) -> AuthenticatedUser:
        if email in self.accounts:
            raise InvalidInputError("A user with this email address has already been registered")
        user_id = f"user_{uuid.uuid4().hex[:8]}"
        self.accounts[email] = user_id
        self.tokens[f"{email}-token"] = user_id
        return AuthenticatedUser(id=user_id, email=email)

    async def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)
        self.tokens = {token: uid for token, uid in self.tokens.items() if uid != user_id}


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
def auth_service() -> FakeAuthClient:
    return FakeAuthClient()


@pytest.fixture
def client(db: Session, linked_users, auth_service: FakeAuthClient) -> TestClient:
    """Create FastAPI test client with test database and fake auth service"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: auth_service
    return TestClient(app)


@pytest.fixture
def owner() -> Principal:
    return Principal(user_id=OWNER_ID, owner_id=OWNER_ID, access_level=AccessLevel.FULL_ACCESS)


@pytest.fixture
def other_owner() -> Principal:
    return Principal(user_id=OTHER_OWNER_ID, owner_id=OTHER_OWNER_ID, access_level=AccessLevel.FULL_ACCESS)


@pytest.fixture
def viewer() -> Principal:
    """Linked user with read-only access to the owner's data"""
    return Principal(user_id=VIEWER_ID, owner_id=OWNER_ID, access_level=AccessLevel.VIEW_ONLY)


@pytest.fixture
def linked_users(db: Session) -> list[LinkedUser]:
    links = [
        LinkedUser(main_user_id=OWNER_ID, linked_user_id=VIEWER_ID, permission_type="view_only", is_active=True),
        LinkedUser(main_user_id=OWNER_ID, linked_user_id=DELEGATE_ID, permission_type="full_access", is_active=True),
    ]
    db.add_all(links)
    db.commit()
    return links


@pytest.fixture
def card(db: Session) -> CreditCard:
    """Card closing on the 10th, due on the 15th"""
    card = CreditCard(
        user_id=OWNER_ID,
        name="Gold",
        brand="visa",
        card_limit_cents=500_000,
        closing_day=10,
        due_day=15,
        is_default=True,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    return card


@pytest.fixture
def other_card(db: Session) -> CreditCard:
    card = CreditCard(
        user_id=OTHER_OWNER_ID,
        name="Someone Else",
        card_limit_cents=100_000,
        closing_day=5,
        due_day=12,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    return card


@pytest.fixture
def bank_account(db: Session) -> BankAccount:
    account = BankAccount(user_id=OWNER_ID, name="Checking", is_default=True, is_active=True)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def expense_category(db: Session) -> Category:
    category = Category(user_id=OWNER_ID, name="Card payments", type="expense")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def income_category(db: Session) -> Category:
    category = Category(user_id=OWNER_ID, name="Salary", type="income")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def savings_account(db: Session) -> BankAccount:
    account = BankAccount(user_id=OWNER_ID, name="Savings", is_default=False, is_active=True)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account
