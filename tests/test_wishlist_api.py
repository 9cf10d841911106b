import pytest
from bson import ObjectId

from account.account_model import Role
from config.config import settings


@pytest.fixture
def shopper(make_user, make_property):
    agent, _ = make_user(Role.AGENT)
    user, headers = make_user(Role.USER)
    return {'agent': agent, 'user': user, 'headers': headers, 'property_id': make_property(agent)}


def add(client, shopper, property_id=None):
    return client.post('/api/wishlist', headers=shopper['headers'],
                       json={'propertyId': property_id or shopper['property_id']})


def test_add_and_list_wishlist(client, shopper):
    response = add(client, shopper)

    assert response.status_code == 201
    items = client.get('/api/wishlist', headers=shopper['headers']).json()
    assert len(items) == 1
    assert items[0]['propertyTitle'] == 'Lake House'
    assert items[0]['propertyDetails']['id'] == shopper['property_id']
    assert items[0]['isSold'] is False


def test_adding_twice_conflicts(client, db, shopper):
    add(client, shopper)

    response = add(client, shopper)

    assert response.status_code == 409
    assert response.json()['code'] == 'ALREADY_IN_WISHLIST'
    assert db[settings.Database.WISHLISTS_COLLECTION_NAME].count_documents({}) == 1


def test_adding_missing_property(client, shopper):
    response = add(client, shopper, property_id=str(ObjectId()))

    assert response.status_code == 404


def test_sold_and_deleted_properties_are_skipped(client, db, make_property, shopper):
    sold = make_property(shopper['agent'], status='sold')
    add(client, shopper)
    add(client, shopper, property_id=sold)
    db[settings.Database.WISHLISTS_COLLECTION_NAME].insert_one({'userId': shopper['user'].uid, 'propertyId': 'gone'})

    items = client.get('/api/wishlist', headers=shopper['headers']).json()

    assert [item['propertyId'] for item in items] == [shopper['property_id']]


def test_only_owner_removes_entry(client, make_user, shopper):
    entry_id = add(client, shopper).json()['wishlist']['id']
    _, stranger_headers = make_user(Role.USER)

    refused = client.delete(f'/api/wishlist/{entry_id}', headers=stranger_headers)
    removed = client.delete(f'/api/wishlist/{entry_id}', headers=shopper['headers'])
    missing = client.delete(f'/api/wishlist/{entry_id}', headers=shopper['headers'])

    assert refused.status_code == 403
    assert removed.status_code == 200
    assert missing.json()['code'] == 'WISHLIST_ITEM_NOT_FOUND'
