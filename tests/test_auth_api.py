import os

import jwt

from account.account_model import Role
from account.authentication import get_identity_provider
from account.jwt_manager import create_jwt, verify_jwt
from config.config import settings
from main import app


def users_collection(db):
    return db[settings.Database.USERS_COLLECTION_NAME]


def test_missing_token_is_unauthorized(client):
    response = client.get('/api/auth/me')

    assert response.status_code == 401
    assert response.json()['code'] == 'UNAUTHORIZED_NO_TOKEN'


def test_backend_jwt_for_deleted_user_is_not_found(client):
    token = create_jwt(uid='ghost', email='ghost@example.com', role='user')

    response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 404
    assert response.json()['code'] == 'USER_NOT_FOUND'


def test_unknown_firebase_token_is_forbidden(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-real-token'})

    assert response.status_code == 403
    assert response.json()['code'] == 'FORBIDDEN_INVALID_TOKEN'


def test_firebase_token_without_provider_is_unavailable(client):
    app.dependency_overrides[get_identity_provider] = lambda: None

    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer firebase-token'})

    assert response.status_code == 503
    assert response.json()['code'] == 'AUTH_SERVICE_UNAVAILABLE'


def test_firebase_token_registers_new_user_with_default_role(client, db, identity_provider):
    identity_provider.register_token('fb-token', uid='fb-new', email='new@example.com', name='New Person')

    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer fb-token'})

    assert response.status_code == 200
    assert response.json()['user']['role'] == 'user'
    assert users_collection(db).find_one({'uid': 'fb-new'})['email'] == 'new@example.com'


def test_role_comes_from_store_not_token(client, make_user):
    user, _ = make_user(Role.USER)
    forged = create_jwt(uid=user.uid, email=user.email, role='admin')

    response = client.get('/api/users', headers={'Authorization': f'Bearer {forged}'})

    assert response.status_code == 403
    assert response.json()['code'] == 'FORBIDDEN_ROLE'


def test_login_issues_backend_token_and_keeps_role(client, db, make_user, identity_provider):
    agent, _ = make_user(Role.AGENT, email='agent@example.com')
    identity_provider.register_token('agent-login', uid='fb-agent', email='agent@example.com')

    response = client.post('/api/auth/login', json={'idToken': 'agent-login'})

    assert response.status_code == 200
    body = response.json()
    assert body['user']['role'] == 'agent'
    payload = verify_jwt(body['token'])
    assert payload['uid'] == 'fb-agent'
    assert payload['role'] == 'agent'
    assert users_collection(db).count_documents({'email': 'agent@example.com'}) == 1


def test_login_with_invalid_token(client):
    response = client.post('/api/auth/login', json={'idToken': 'nope'})

    assert response.status_code == 401
    assert response.json()['code'] == 'INVALID_ID_TOKEN'


def test_register_creates_plain_user(client, db, identity_provider):
    response = client.post('/api/auth/register', json={
        'email': 'fresh@example.com', 'password': 'secret1', 'displayName': 'Fresh', 'role': 'admin',
    })

    assert response.status_code == 201
    assert response.json()['user']['role'] == 'user'
    assert identity_provider.created == ['fresh@example.com']
    assert users_collection(db).find_one({'email': 'fresh@example.com'})['uid'] == 'fb-1'


def test_register_existing_email_conflicts(client, make_user, identity_provider):
    make_user(Role.USER, email='taken@example.com')

    response = client.post('/api/auth/register', json={'email': 'taken@example.com', 'password': 'secret1'})

    assert response.status_code == 409
    assert response.json()['code'] == 'EMAIL_ALREADY_EXISTS'
    assert identity_provider.created == []


def test_register_validates_body(client):
    response = client.post('/api/auth/register', json={'email': 'not-an-email', 'password': '123'})

    assert response.status_code == 422
    assert response.json()['code'] == 'VALIDATION_ERROR'


def test_logout(client, make_user):
    _, headers = make_user(Role.USER)

    response = client.post('/api/auth/logout', headers=headers)

    assert response.json() == {'message': 'Logout successful'}


def test_expired_backend_token_is_not_trusted():
    token = jwt.encode({'uid': 'someone', 'exp': 0}, os.environ['JWT_SECRET'], algorithm=settings.Authentication.JWT_ALGORITHM)

    assert verify_jwt(token) is None
