import os

os.environ.setdefault('JWT_SECRET', 'test-jwt-secret-with-enough-length-for-hs256')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from typing import Dict, Optional

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from main import app, get_payment_gateway
from account.account_model import Role, UserRecord
from account.authentication import get_identity_provider
from account.jwt_manager import create_jwt
from config.config import settings
from database.db_manager import get_db
from payment.payment_model import Charge
from utils.common_models import utc_now


class FakeFirebaseUser:
    def __init__(self, uid: str):
        self.uid = uid


class FakeIdentityProvider:
    """In-memory stand-in for the Firebase admin API"""

    def __init__(self):
        self.tokens: Dict[str, dict] = {}
        self.created = []
        self.updated = []
        self.deleted = []

    def register_token(self, token: str, uid: str, email: str, name: Optional[str] = None):
        self.tokens[token] = {'uid': uid, 'email': email, 'name': name}

    def verify_id_token(self, id_token: str) -> dict:
        if id_token not in self.tokens:
            raise ValueError("Invalid ID token")
        return self.tokens[id_token]

    def create_user(self, email, password, display_name=None, photo_url=None):
        self.created.append(email)
        return FakeFirebaseUser(uid=f"fb-{len(self.created)}")

    def update_user(self, uid, **fields):
        self.updated.append((uid, fields))

    def delete_user(self, uid):
        self.deleted.append(uid)


class FakeGateway:
    """Records charges and reports whatever status the test assigns"""

    def __init__(self):
        self.charges: Dict[str, Charge] = {}

    def create_charge(self, amount_minor_units: int, currency: str, metadata: Dict[str, str]) -> Charge:
        charge_id = f"pi_test_{len(self.charges) + 1}"
        charge = Charge(charge_id=charge_id, status='requires_payment_method', amount=amount_minor_units,
                        currency=currency, client_secret=f"{charge_id}_secret", metadata=metadata)
        self.charges[charge_id] = charge
        return charge

    def retrieve_charge(self, charge_id: str) -> Charge:
        return self.charges[charge_id]

    def succeed(self, charge_id: str):
        self.charges[charge_id].status = 'succeeded'


@pytest.fixture
def db():
    return mongomock.MongoClient()[settings.Database.NAME]


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, identity_provider, gateway):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert a user record and return it with bearer headers for a backend JWT"""
    def _make_user(role: Role = Role.USER, uid: Optional[str] = None, email: Optional[str] = None,
                   is_fraud: bool = False):
        uid = uid or f"{Role(role).value}-{ObjectId()}"
        email = email or f"{uid}@example.com"
        record = UserRecord.new(uid=uid, email=email, display_name=uid, role=role)
        record.is_fraud = is_fraud
        db[settings.Database.USERS_COLLECTION_NAME].insert_one(record.to_document())
        headers = {'Authorization': f"Bearer {create_jwt(uid=uid, email=email, role=Role(role).value)}"}
        return record, headers
    return _make_user


@pytest.fixture
def make_property(db):
    """Insert a listing; pass `_id` to store it under a free-form string id"""
    def _make_property(agent: UserRecord, _id=None, verification_status='verified', status='active',
                       min_price=100000, title='Lake House', location='Austin, TX', is_advertised=False):
        document = {
            'title': title,
            'location': location,
            'image': 'https://img.example.com/house.jpg',
            'priceRange': {'min': min_price, 'max': min_price * 2},
            'agentUid': agent.uid,
            'agentName': agent.display_name,
            'agentEmail': agent.email,
            'verificationStatus': verification_status,
            'isAdvertised': is_advertised,
            'status': status,
            'createdAt': utc_now(),
        }
        if _id is not None:
            document['_id'] = _id
        result = db[settings.Database.PROPERTIES_COLLECTION_NAME].insert_one(document)
        return str(result.inserted_id)
    return _make_property


@pytest.fixture
def make_offer(db):
    """Insert an offer directly, bypassing the submission checks"""
    def _make_offer(property_id: str, buyer: UserRecord, agent: UserRecord, status='pending', amount=500000,
                    **extra):
        document = {
            'propertyId': property_id,
            'propertyTitle': 'Lake House',
            'agentUid': agent.uid,
            'agentEmail': agent.email,
            'buyerUid': buyer.uid,
            'buyerEmail': buyer.email,
            'buyerName': buyer.display_name,
            'offeredAmount': amount,
            'status': status,
            'createdAt': utc_now(),
            **extra,
        }
        result = db[settings.Database.OFFERS_COLLECTION_NAME].insert_one(document)
        return str(result.inserted_id)
    return _make_offer
