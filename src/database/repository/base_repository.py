from typing import Generic, TypeVar, Type, Optional, List, Dict, Any, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from utils.common_models import MarketplaceDocument
from logger import logger

ModelType = TypeVar("ModelType", bound=MarketplaceDocument)


def id_candidates(id: Any) -> List[Any]:
    """
    Identifier forms to try for a lookup, in order.

    Historical documents carry free-form string identifiers while newer ones carry
    ObjectIds; a 24 hex character string may denote either, so the literal string is
    tried first and the ObjectId form second.
    """
    if isinstance(id, ObjectId):
        return [id, str(id)]
    candidates = [id]
    if isinstance(id, str) and ObjectId.is_valid(id):
        candidates.append(ObjectId(id))
    return candidates


def reference_filter(field: str, value: Any) -> Dict[str, Any]:
    """Match a reference field stored either as the string or the ObjectId form"""
    candidates = id_candidates(value)
    if len(candidates) == 1:
        return {field: candidates[0]}
    return {field: {'$in': candidates}}


class BaseRepository(Generic[ModelType]):
    """Base repository class with common CRUD operations over a single collection"""

    collection_name: str = ''

    def __init__(self, model: Type[ModelType], db: Database):
        self.model = model
        self.db = db
        self.collection: Collection = db[self.collection_name]

    def _log_name(self) -> str:
        return self.__class__.__name__

    def create(self, entity: ModelType) -> ModelType:
        """Insert a new document and return the entity carrying its assigned id"""
        try:
            result = self.collection.insert_one(entity.to_document())
            entity.id = str(result.inserted_id)
            logger.info(f"[{self._log_name()}] Created {self.model.__name__} with id: {entity.id}")
            return entity
        except PyMongoError as e:
            logger.exception(f"[{self._log_name()}] Failed to create {self.model.__name__}: {e}")
            raise

    def find_raw_by_id(self, id: Any, extra_filter: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        for candidate in id_candidates(id):
            query = {'_id': candidate, **(extra_filter or {})}
            document = self.collection.find_one(query)
            if document is not None:
                return document
        return None

    def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get document by id, trying the string form before the ObjectId form"""
        document = self.find_raw_by_id(id)
        if document is None:
            logger.warning(f"[{self._log_name()}] {self.model.__name__} not found with id: {id}")
            return None
        logger.debug(f"[{self._log_name()}] Found {self.model.__name__} with id: {id}")
        return self.model.from_document(document)

    def get_one(self, query: Dict[str, Any]) -> Optional[ModelType]:
        return self.model.from_document(self.collection.find_one(query))

    def get_by_filter(self, query: Optional[Dict[str, Any]] = None,
                      sort: Optional[List[Tuple[str, int]]] = None,
                      limit: Optional[int] = None) -> List[ModelType]:
        """Get documents by filter criteria"""
        cursor = self.collection.find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        results = [self.model.from_document(document) for document in cursor]
        logger.debug(f"[{self._log_name()}] Found {len(results)} {self.model.__name__} records with filter: {query}")
        return results

    def update_by_id(self, id: Any, fields: Dict[str, Any],
                     extra_filter: Optional[Dict[str, Any]] = None) -> int:
        """
        Set fields on the document with the given id.

        When `extra_filter` is given the update only applies if the document still
        satisfies it, which makes the update a check-and-set. Returns the matched count.
        """
        try:
            for candidate in id_candidates(id):
                query = {'_id': candidate, **(extra_filter or {})}
                result = self.collection.update_one(query, {'$set': fields})
                if result.matched_count:
                    logger.info(f"[{self._log_name()}] Updated {self.model.__name__} with id: {id}")
                    return result.matched_count
            return 0
        except PyMongoError as e:
            logger.exception(f"[{self._log_name()}] Failed to update {self.model.__name__} with id {id}: {e}")
            raise

    def find_one_and_update_by_id(self, id: Any, fields: Dict[str, Any],
                                  extra_filter: Optional[Dict[str, Any]] = None) -> Optional[ModelType]:
        """Conditional update returning the updated entity, None when nothing matched"""
        for candidate in id_candidates(id):
            query = {'_id': candidate, **(extra_filter or {})}
            document = self.collection.find_one_and_update(
                query, {'$set': fields}, return_document=ReturnDocument.AFTER
            )
            if document is not None:
                logger.info(f"[{self._log_name()}] Updated {self.model.__name__} with id: {id}")
                return self.model.from_document(document)
        return None

    def update_many(self, query: Dict[str, Any], fields: Dict[str, Any]) -> int:
        try:
            result = self.collection.update_many(query, {'$set': fields})
            logger.info(f"[{self._log_name()}] Updated {result.modified_count} {self.model.__name__} records")
            return result.modified_count
        except PyMongoError as e:
            logger.exception(f"[{self._log_name()}] Failed to update {self.model.__name__} records: {e}")
            raise

    def delete_by_id(self, id: Any, extra_filter: Optional[Dict[str, Any]] = None) -> bool:
        """Delete document by id, honouring an optional additional condition"""
        try:
            for candidate in id_candidates(id):
                query = {'_id': candidate, **(extra_filter or {})}
                result = self.collection.delete_one(query)
                if result.deleted_count:
                    logger.info(f"[{self._log_name()}] Deleted {self.model.__name__} with id: {id}")
                    return True
            return False
        except PyMongoError as e:
            logger.exception(f"[{self._log_name()}] Failed to delete {self.model.__name__} with id {id}: {e}")
            raise

    def delete_many(self, query: Dict[str, Any]) -> int:
        try:
            result = self.collection.delete_many(query)
            logger.info(f"[{self._log_name()}] Deleted {result.deleted_count} {self.model.__name__} records")
            return result.deleted_count
        except PyMongoError as e:
            logger.exception(f"[{self._log_name()}] Failed to delete {self.model.__name__} records: {e}")
            raise

    def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(query or {})

    def exists(self, id: Any) -> bool:
        return self.find_raw_by_id(id) is not None

    def sum(self, query: Dict[str, Any], field: str) -> float:
        """Server-side sum of a numeric field over the matching documents"""
        pipeline = [
            {'$match': query},
            {'$group': {'_id': None, 'total': {'$sum': f'${field}'}}},
        ]
        results = list(self.collection.aggregate(pipeline))
        return results[0]['total'] if results else 0
