from bson import ObjectId

from database.repository.base_repository import id_candidates, reference_filter
from database.repository.offer_repository import OfferRepository
from database.repository.property_repository import PropertyRepository


def test_id_candidates_order():
    oid = ObjectId()

    assert id_candidates('property1') == ['property1']
    assert id_candidates(str(oid)) == [str(oid), oid]
    assert id_candidates(oid) == [oid, str(oid)]


def test_reference_filter_matches_both_forms():
    oid = ObjectId()

    assert reference_filter('propertyId', 'property1') == {'propertyId': 'property1'}
    assert reference_filter('propertyId', str(oid)) == {'propertyId': {'$in': [str(oid), oid]}}


def test_get_by_id_resolves_string_and_object_ids(db):
    collection = db[PropertyRepository.collection_name]
    collection.insert_one({'_id': 'property1', 'title': 'Legacy', 'location': 'Austin'})
    oid = collection.insert_one({'title': 'Modern', 'location': 'Dallas'}).inserted_id
    repository = PropertyRepository(db)

    assert repository.get_by_id('property1').title == 'Legacy'
    assert repository.get_by_id(str(oid)).title == 'Modern'
    assert repository.get_by_id(str(oid)).id == str(oid)
    assert repository.get_by_id(str(ObjectId())) is None


def test_hex_string_id_stored_as_string_wins(db):
    oid = ObjectId()
    collection = db[PropertyRepository.collection_name]
    collection.insert_one({'_id': str(oid), 'title': 'String keyed', 'location': 'A'})
    collection.insert_one({'_id': oid, 'title': 'ObjectId keyed', 'location': 'B'})

    assert PropertyRepository(db).get_by_id(str(oid)).title == 'String keyed'


def test_conditional_update_only_applies_when_filter_holds(db):
    collection = db[OfferRepository.collection_name]
    offer_id = str(collection.insert_one({
        'propertyId': 'property1', 'buyerUid': 'b', 'offeredAmount': 10, 'status': 'rejected',
    }).inserted_id)
    repository = OfferRepository(db)

    assert repository.find_one_and_update_by_id(offer_id, {'status': 'accepted'},
                                                extra_filter={'status': 'pending'}) is None
    assert repository.update_by_id(offer_id, {'status': 'accepted'}, extra_filter={'status': 'pending'}) == 0
    assert repository.get_by_id(offer_id).status == 'rejected'


def test_sum_and_count(db):
    collection = db[OfferRepository.collection_name]
    collection.insert_many([
        {'propertyId': 'p', 'buyerUid': 'b', 'agentUid': 'a', 'offeredAmount': 100, 'status': 'bought'},
        {'propertyId': 'p', 'buyerUid': 'b', 'agentUid': 'a', 'offeredAmount': 250, 'status': 'bought'},
        {'propertyId': 'p', 'buyerUid': 'b', 'agentUid': 'a', 'offeredAmount': 999, 'status': 'pending'},
    ])
    repository = OfferRepository(db)

    assert repository.sum({'status': 'bought'}, 'offeredAmount') == 350
    assert repository.sum({'status': 'rejected'}, 'offeredAmount') == 0
    assert repository.count({'status': 'pending'}) == 1


def test_reject_competitors_spares_the_winner(db):
    collection = db[OfferRepository.collection_name]
    winner = collection.insert_one({'propertyId': 'p', 'buyerUid': 'a', 'offeredAmount': 1, 'status': 'accepted'})
    collection.insert_one({'propertyId': 'p', 'buyerUid': 'b', 'offeredAmount': 1, 'status': 'pending'})
    collection.insert_one({'propertyId': 'p', 'buyerUid': 'c', 'offeredAmount': 1, 'status': 'bought'})

    rejected = OfferRepository(db).reject_competitors('p', str(winner.inserted_id), ['pending', 'accepted'])

    assert rejected == 1
    assert collection.count_documents({'status': 'rejected'}) == 1
    assert collection.find_one({'_id': winner.inserted_id})['status'] == 'accepted'
