from bson import ObjectId

from account.account_model import Role
from config.config import settings
from property.property_model import PropertyModel, price_range_text


def test_public_listing_hides_unverified_sold_and_fraud(client, make_user, make_property):
    agent, _ = make_user(Role.AGENT)
    fraud, _ = make_user(Role.FRAUD, is_fraud=True)
    visible = make_property(agent)
    make_property(agent, verification_status='pending')
    make_property(agent, verification_status='rejected')
    make_property(agent, status='sold')
    make_property(fraud)

    response = client.get('/api/properties/public')

    assert response.status_code == 200
    assert [p['id'] for p in response.json()] == [visible]


def test_public_listing_search_is_case_insensitive_and_literal(client, make_user, make_property):
    agent, _ = make_user(Role.AGENT)
    austin = make_property(agent, location='Austin, TX')
    make_property(agent, location='Boston, MA')
    make_property(agent, location='A.stin')

    found = client.get('/api/properties/public', params={'search': 'austin'}).json()
    literal = client.get('/api/properties/public', params={'search': 'a.stin'}).json()

    assert [p['id'] for p in found] == [austin]
    assert [p['location'] for p in literal] == ['A.stin']


def test_public_listing_sorted_by_price(client, db, make_user, make_property):
    agent, _ = make_user(Role.AGENT)
    make_property(agent, min_price=300000, title='mid')
    make_property(agent, min_price=100000, title='low')
    make_property(agent, min_price=900000, title='high')
    db[settings.Database.PROPERTIES_COLLECTION_NAME].insert_one({
        'title': 'unpriced', 'location': 'Austin', 'agentUid': agent.uid,
        'verificationStatus': 'verified', 'status': 'active',
    })

    ascending = client.get('/api/properties/public', params={'sort': 'priceAsc'}).json()
    descending = client.get('/api/properties/public', params={'sort': 'priceDesc'}).json()

    assert [p['title'] for p in ascending] == ['low', 'mid', 'high', 'unpriced']
    assert [p['title'] for p in descending] == ['high', 'mid', 'low', 'unpriced']


def test_details_resolve_string_and_object_ids(client, make_user, make_property):
    agent, headers = make_user(Role.AGENT)
    make_property(agent, _id='property1', title='Legacy')
    modern = make_property(agent, title='Modern')

    legacy_response = client.get('/api/properties/property1', headers=headers)
    modern_response = client.get(f'/api/properties/{modern}', headers=headers)

    assert legacy_response.json()['title'] == 'Legacy'
    assert modern_response.json()['title'] == 'Modern'
    assert client.get(f'/api/properties/{ObjectId()}', headers=headers).status_code == 404


def test_listing_endpoints_require_authentication(client):
    response = client.get('/api/properties')

    assert response.status_code == 401
    assert response.json()['code'] == 'UNAUTHORIZED_NO_TOKEN'


def test_agent_adds_property_pending_verification(client, make_user):
    agent, headers = make_user(Role.AGENT)

    response = client.post('/api/properties', headers=headers, json={
        'title': 'New Build', 'location': 'Denver, CO', 'minPrice': 250000, 'maxPrice': 300000,
        'verificationStatus': 'verified',
    })

    assert response.status_code == 201
    property = response.json()['property']
    assert property['verificationStatus'] == 'pending'
    assert property['agentUid'] == agent.uid
    assert property['priceRange'] == {'min': 250000, 'max': 300000}


def test_fraud_agent_cannot_add_property(client, make_user):
    _, headers = make_user(Role.FRAUD, is_fraud=True)

    response = client.post('/api/properties', headers=headers, json={'title': 'x', 'location': 'y'})

    assert response.status_code == 403
    assert response.json()['code'] == 'FRAUD_AGENT'


def test_user_cannot_add_property(client, make_user):
    _, headers = make_user(Role.USER)

    response = client.post('/api/properties', headers=headers, json={'title': 'x', 'location': 'y'})

    assert response.status_code == 403
    assert response.json()['code'] == 'UNAUTHORIZED_AGENT'


def test_agent_updates_own_property_with_price_text(client, make_user, make_property):
    agent, headers = make_user(Role.AGENT)
    property_id = make_property(agent)

    response = client.put(f'/api/properties/{property_id}', headers=headers,
                          json={'title': 'Renamed', 'minPrice': 200000, 'maxPrice': 0})

    assert response.status_code == 200
    property = response.json()['property']
    assert property['title'] == 'Renamed'
    assert property['priceRange'] == 'From $200,000'


def test_agent_cannot_touch_foreign_property(client, make_user, make_property):
    owner, _ = make_user(Role.AGENT)
    _, other_headers = make_user(Role.AGENT)
    property_id = make_property(owner)

    updated = client.patch(f'/api/properties/{property_id}', headers=other_headers, json={'title': 'Mine'})
    deleted = client.delete(f'/api/properties/{property_id}', headers=other_headers)

    assert updated.json()['code'] == 'UNAUTHORIZED_UPDATE'
    assert deleted.json()['code'] == 'UNAUTHORIZED_DELETE'


def test_rejected_property_cannot_be_updated(client, make_user, make_property):
    agent, headers = make_user(Role.AGENT)
    property_id = make_property(agent, verification_status='rejected')

    response = client.patch(f'/api/properties/{property_id}', headers=headers, json={'title': 'Again'})

    assert response.status_code == 403
    assert response.json()['code'] == 'REJECTED_PROPERTY'


def test_admin_verifies_property(client, make_user, make_property):
    agent, _ = make_user(Role.AGENT)
    _, admin_headers = make_user(Role.ADMIN)
    property_id = make_property(agent, verification_status='pending')

    invalid = client.patch(f'/api/properties/verify/{property_id}', headers=admin_headers, json={'status': 'maybe'})
    valid = client.patch(f'/api/properties/verify/{property_id}', headers=admin_headers, json={'status': 'verified'})

    assert invalid.status_code == 400
    assert invalid.json()['code'] == 'INVALID_STATUS'
    assert valid.json()['property']['verificationStatus'] == 'verified'


def test_non_admin_cannot_verify(client, make_user, make_property):
    agent, agent_headers = make_user(Role.AGENT)
    property_id = make_property(agent, verification_status='pending')

    response = client.patch(f'/api/properties/verify/{property_id}', headers=agent_headers,
                            json={'status': 'verified'})

    assert response.status_code == 403
    assert response.json()['code'] == 'FORBIDDEN_ROLE'


def test_advertise_requires_boolean(client, make_user, make_property):
    agent, _ = make_user(Role.AGENT)
    _, admin_headers = make_user(Role.ADMIN)
    property_id = make_property(agent)

    coerced = client.patch(f'/api/properties/admin/advertise/{property_id}', headers=admin_headers,
                           json={'isAdvertised': 'true'})
    advertised = client.patch(f'/api/properties/admin/advertise/{property_id}', headers=admin_headers,
                              json={'isAdvertised': True})

    assert coerced.status_code == 422
    assert advertised.json()['property']['isAdvertised'] is True
    assert [p['id'] for p in client.get('/api/properties/advertisements').json()] == [property_id]


def test_search_requires_location(client):
    response = client.get('/api/properties/search')

    assert response.status_code == 400
    assert response.json()['code'] == 'MISSING_LOCATION'


def test_my_properties_lists_every_status(client, make_user, make_property):
    agent, headers = make_user(Role.AGENT)
    make_property(agent)
    make_property(agent, verification_status='pending')
    make_property(agent, status='sold')

    response = client.get('/api/properties/agent/my-properties', headers=headers)

    assert response.json()['total'] == 3


def test_price_range_text():
    on_request = 'Price on request'
    assert price_range_text(100, 200, on_request) == '$100 - $200'
    assert price_range_text(0, 200, on_request) == 'Up to $200'
    assert price_range_text(0, 0, on_request) == on_request


def test_effective_min_price_prefers_structured_range():
    structured = PropertyModel(title='a', location='b', price_range={'min': 5, 'max': 9}, min_price=7)
    text = PropertyModel(title='a', location='b', price_range='From $7', min_price=7)

    assert structured.effective_min_price == 5
    assert text.effective_min_price == 7
