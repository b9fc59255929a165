import logging
from datetime import datetime
from enum import Enum
from typing import (
    Any,
    AsyncGenerator,
    ClassVar,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from google.cloud.firestore_v1 import SERVER_TIMESTAMP, AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from .enums import BatchOperation, FirestoreOperators, OrderByDirection
from .firestore_client import FirestoreDB
from .firestore_fields import QueryField

# Alias for the first element in order-by tuple
FieldType = Union[str, QueryField]
# Alias for field ordering tuples
FieldOrderType = Tuple[FieldType, OrderByDirection]
FilterType = Tuple[FieldType, Union[FirestoreOperators, str], Any]
ParentType = Union["BaseFirestoreModel", str, None]
# (operation, model) or (operation, model, alias-keyed changes)
WriteOperation = Union[
    Tuple[BatchOperation, "BaseFirestoreModel"],
    Tuple[BatchOperation, "BaseFirestoreModel", Dict[str, Any]],
]

# Firestore rejects batches above this many writes.
MAX_BATCH_WRITES = 500

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class BaseFirestoreModel(BaseModel):
    """
    Base document model with asynchronous Firestore operations.

    Stored field names are the camelCase aliases of the Python attributes
    (``owner_id`` is persisted as ``ownerId``). A model whose ``Settings``
    declares ``parent`` lives in a subcollection and needs a parent document
    path (``users/u1``) or a parent model to be located.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Default field (document ID)
    # --------------------------------------------------------------------------
    id: Optional[str] = Field(default=None)

    # --------------------------------------------------------------------------
    # Injected FirestoreDB and per-instance location/version
    # --------------------------------------------------------------------------
    _db: ClassVar[Optional[FirestoreDB]] = None
    _parent_path: Optional[str] = PrivateAttr(default=None)
    _update_time: Optional[datetime] = PrivateAttr(default=None)

    # --------------------------------------------------------------------------
    # Collection definition
    # --------------------------------------------------------------------------
    class Settings:
        name: str = "BaseCollection"  # Override in subclasses
        parent = None  # owning model for subcollections
        timestamps = False  # server-set createdAt / updatedAt
        stamp = None  # single server-set field written on create

    @classmethod
    def initialize_fields(cls) -> None:
        for field_name, field_info in cls.model_fields.items():
            stored_name = (
                FieldPath.document_id() if field_name == "id"
                else (field_info.alias or field_name)
            )
            setattr(cls, field_name, QueryField(stored_name, field_name))

    @classmethod
    def initialize_db(cls, db: FirestoreDB):
        """
        Inject the FirestoreDB instance to be used for all operations.
        """
        cls._db = db

    @classmethod
    def _client(cls) -> AsyncClient:
        if not cls._db:
            raise RuntimeError("Database must be initialized before using the model.")
        return cls._db.client

    # --------------------------------------------------------------------------
    # Location helpers
    # --------------------------------------------------------------------------
    @classmethod
    def get_collection_name(cls) -> str:
        if hasattr(cls, "Settings") and hasattr(cls.Settings, "name"):
            return cls.Settings.name
        return cls.__name__

    @property
    def collection_name(self) -> str:
        return self.get_collection_name()

    @classmethod
    def parent_model(cls) -> Optional[Type["BaseFirestoreModel"]]:
        return getattr(cls.Settings, "parent", None)

    @classmethod
    def uses_timestamps(cls) -> bool:
        return bool(getattr(cls.Settings, "timestamps", False))

    @classmethod
    def collection_path(cls, parent_path: Optional[str] = None) -> str:
        name = cls.get_collection_name()
        return f"{parent_path}/{name}" if parent_path else name

    @classmethod
    def path_for(cls, doc_id: str, parent: ParentType = None) -> str:
        """Full document path, usable as the ``parent`` of a subcollection."""
        return f"{cls.collection_path(cls._resolve_parent_path(parent))}/{doc_id}"

    @property
    def document_path(self) -> str:
        if not self.id:
            raise ValueError(f"{type(self).__name__} has no ID yet.")
        return f"{self.collection_path(self._parent_path)}/{self.id}"

    @classmethod
    def _resolve_parent_path(
        cls, parent: ParentType, stored: Optional[str] = None
    ) -> Optional[str]:
        if cls.parent_model() is None:
            return None
        if parent is None:
            if stored:
                return stored
            raise RuntimeError(
                f"{cls.__name__} is a subcollection and requires a parent."
            )
        if isinstance(parent, str):
            return parent.strip("/")
        return parent.document_path

    def with_parent(self, parent: ParentType) -> "BaseFirestoreModel":
        """Bind this (unsaved) document to its parent document."""
        self._parent_path = self._resolve_parent_path(parent)
        return self

    def reserve_id(self, parent: ParentType = None) -> str:
        """Draw an auto-generated ID before the document is written."""
        if not self.id:
            parent_path = self._own_parent_path(parent)
            self.id = self._client().collection(self.collection_path(parent_path)).document().id
        return self.id

    def _own_parent_path(self, parent: ParentType = None) -> Optional[str]:
        path = self._resolve_parent_path(parent, stored=self._parent_path)
        self._parent_path = path
        return path

    def subcollection(self, child_cls: Type["BaseFirestoreModel"]):
        from .subcollection_accessor import SubCollectionAccessor

        return SubCollectionAccessor(self, child_cls)

    # --------------------------------------------------------------------------
    # Serialization
    # --------------------------------------------------------------------------
    def to_document(self, exclude_none: bool = True, creating: bool = True) -> Dict[str, Any]:
        """Alias-keyed payload ready to be written, minus the ID."""
        data = {
            key: _plain(value)
            for key, value in self.model_dump(
                exclude={"id"}, exclude_none=exclude_none, by_alias=True
            ).items()
        }
        stamp = getattr(self.Settings, "stamp", None)
        if creating and stamp:
            data.setdefault(stamp, SERVER_TIMESTAMP)
        if self.uses_timestamps():
            if creating:
                data.setdefault("createdAt", SERVER_TIMESTAMP)
            data["updatedAt"] = SERVER_TIMESTAMP
        return data

    def to_api(self) -> Dict[str, Any]:
        """JSON-friendly view returned by the HTTP layer."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def field_updates(cls, touch: bool = True, **changes: Any) -> Dict[str, Any]:
        """
        Translate Python attribute names into stored names for partial
        updates. Values may be Firestore transforms such as ``Increment``.
        ``touch=False`` leaves ``updatedAt`` alone (counters).
        """
        fields = cls.model_fields
        updates = {}
        for name, value in changes.items():
            stored = fields[name].alias or name if name in fields else name
            updates[stored] = _plain(value)
        if touch and cls.uses_timestamps():
            updates.setdefault("updatedAt", SERVER_TIMESTAMP)
        return updates

    @classmethod
    def from_snapshot(cls, snapshot, parent_path: Optional[str] = None) -> "BaseFirestoreModel":
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        instance = cls.model_validate(data)
        instance._parent_path = parent_path
        instance._update_time = getattr(snapshot, "update_time", None)
        return instance

    # --------------------------------------------------------------------------
    # CRUD operations: create/update/delete
    # --------------------------------------------------------------------------
    async def save(self, parent: ParentType = None, exclude_none: bool = True) -> "BaseFirestoreModel":
        """
        Create the document. An explicit ID that already exists is an error.
        """
        db_client = self._client()
        parent_path = self._own_parent_path(parent)
        collection_ref = db_client.collection(self.collection_path(parent_path))

        if not self.id:
            doc_ref = collection_ref.document()
            self.id = doc_ref.id
        else:
            doc_ref = collection_ref.document(self.id)
            if (await doc_ref.get()).exists:
                raise RuntimeError("Error creating object: provided ID already exists.")

        await doc_ref.set(self.to_document(exclude_none=exclude_none))
        return self

    async def upsert(self, parent: ParentType = None, merge: bool = False) -> "BaseFirestoreModel":
        """Write the document under its ID whether or not it exists."""
        if not self.id:
            raise ValueError("Cannot upsert a document without an ID.")
        db_client = self._client()
        parent_path = self._own_parent_path(parent)
        doc_ref = db_client.collection(self.collection_path(parent_path)).document(self.id)
        await doc_ref.set(self.to_document(), merge=merge)
        return self

    async def update(
        self,
        include: Optional[set] = None,
        parent: ParentType = None,
        exclude_none: bool = True,
    ) -> "BaseFirestoreModel":
        """
        Write the model's fields (or only ``include``) onto the stored document.
        """
        if not self.id:
            raise ValueError("Cannot update a document without an ID.")
        db_client = self._client()
        parent_path = self._own_parent_path(parent)
        doc_ref = db_client.collection(self.collection_path(parent_path)).document(self.id)

        updates = self.model_dump(
            exclude={"id"},
            include=include,
            exclude_none=exclude_none,
            by_alias=True,
        )
        updates = {key: _plain(value) for key, value in updates.items()}
        if self.uses_timestamps():
            updates.pop("createdAt", None)
            updates["updatedAt"] = SERVER_TIMESTAMP

        logger.debug(f"Update: {self.collection_name} - id={self.id}, updates={updates}")
        if updates:
            await doc_ref.update(updates)
        return self

    async def patch(self, changes: Dict[str, Any], parent: ParentType = None) -> None:
        """Apply alias-keyed ``changes`` (see :meth:`field_updates`)."""
        if not self.id:
            raise ValueError("Cannot update a document without an ID.")
        db_client = self._client()
        parent_path = self._own_parent_path(parent)
        doc_ref = db_client.collection(self.collection_path(parent_path)).document(self.id)
        await doc_ref.update(changes)

    async def delete(self, parent: ParentType = None) -> None:
        if not self.id:
            raise ValueError("Cannot delete a document without an ID.")
        db_client = self._client()
        parent_path = self._own_parent_path(parent)
        doc_ref = db_client.collection(self.collection_path(parent_path)).document(self.id)
        await doc_ref.delete()

    # --------------------------------------------------------------------------
    # Reads
    # --------------------------------------------------------------------------
    @classmethod
    async def get(cls, doc_id: str, parent: ParentType = None) -> Optional["BaseFirestoreModel"]:
        """
        Retrieve a document by its ID, or None.
        """
        if not doc_id:
            return None
        db_client = cls._client()
        parent_path = cls._resolve_parent_path(parent)
        doc_snap = await db_client.collection(cls.collection_path(parent_path)).document(doc_id).get()
        if doc_snap.exists:
            return cls.from_snapshot(doc_snap, parent_path)
        return None

    @classmethod
    async def exists(cls, doc_id: str, parent: ParentType = None) -> bool:
        db_client = cls._client()
        parent_path = cls._resolve_parent_path(parent)
        doc_snap = await db_client.collection(cls.collection_path(parent_path)).document(doc_id).get()
        return doc_snap.exists

    @classmethod
    async def count(cls, filters: Optional[List[FilterType]] = None, parent: ParentType = None) -> int:
        """
        Number of documents matching ``filters``. Falls back to fetching
        empty projections when the SDK has no aggregation support.
        """
        db_client = cls._client()
        parent_path = cls._resolve_parent_path(parent)
        query = cls._build_query(db_client, filters or [], parent_path=parent_path)
        try:
            count_snapshot = await query.count().get()
            return count_snapshot[0][0].value
        except AttributeError:
            logger.warning("Firestore: Performing count by fetching all items with empty select")
            docs = await query.select([]).get()
            return len(docs)

    @classmethod
    async def find(
        cls,
        filters: Optional[List[FilterType]] = None,
        projection: Optional[Type[BaseModel]] = None,
        order_by: Optional[
            Union[List[Union[FieldType, FieldOrderType]], Union[FieldType, FieldOrderType]]
        ] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        parent: ParentType = None,
    ) -> AsyncGenerator[Union["BaseFirestoreModel", BaseModel], None]:
        """
        Asynchronously yield documents matching ``filters``.
        """
        db_client = cls._client()
        parent_path = cls._resolve_parent_path(parent)
        query = cls._build_query(db_client, filters or [], projection, parent_path)

        if order_by:
            if not isinstance(order_by, list):
                order_by = [order_by]
            for order_by_field in order_by:
                if isinstance(order_by_field, tuple):
                    field, direction = order_by_field
                    query = query.order_by(str(field), direction=str(direction))
                else:
                    query = query.order_by(str(order_by_field))

        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async for doc in query.stream():
            if projection is None:
                yield cls.from_snapshot(doc, parent_path)
            else:
                data = doc.to_dict()
                data["id"] = doc.id
                yield projection(**data)

    @classmethod
    async def find_all(cls, *args, **kwargs) -> List["BaseFirestoreModel"]:
        return [doc async for doc in cls.find(*args, **kwargs)]

    @classmethod
    async def find_one(
        cls,
        filters: Optional[List[FilterType]] = None,
        projection: Optional[Type[BaseModel]] = None,
        order_by: Optional[Union[FieldType, FieldOrderType]] = None,
        parent: ParentType = None,
    ) -> Optional["BaseFirestoreModel"]:
        async for obj in cls.find(
            filters=filters, projection=projection, order_by=order_by, limit=1, parent=parent
        ):
            return obj
        return None

    @classmethod
    def _build_query(
        cls,
        db_client: AsyncClient,
        filters: List[FilterType],
        projection: Optional[Type[BaseModel]] = None,
        parent_path: Optional[str] = None,
    ):
        query = db_client.collection(cls.collection_path(parent_path))

        for (field_name, op, value) in filters:
            query = query.where(filter=FieldFilter(str(field_name), _plain(op), _plain(value)))

        if projection:
            select_fields = list(projection.model_fields.keys())
            logger.debug(f"Build Query: select fields: {select_fields}")
            query = query.select(select_fields)

        return query

    # --------------------------------------------------------------------------
    # Batch operations
    # --------------------------------------------------------------------------
    @classmethod
    async def batch_write(cls, operations: Sequence[WriteOperation]) -> None:
        """
        Commit create/set/update/delete operations as one atomic write.

        ``UPDATE_IF_UNCHANGED`` only applies when the stored document still has
        the ``update_time`` it had when the model was read; otherwise the whole
        batch fails with ``FailedPrecondition`` and nothing is written.
        """
        if len(operations) > MAX_BATCH_WRITES:
            raise ValueError(f"A batch holds at most {MAX_BATCH_WRITES} writes.")
        db_client = cls._client()
        batch = db_client.batch()

        for operation in operations:
            op, model_instance, *rest = operation
            changes = rest[0] if rest else None

            if not model_instance.id and op != BatchOperation.CREATE:
                raise ValueError(f"Cannot {op} without an ID assigned on {model_instance}.")

            parent_path = model_instance._own_parent_path()
            collection_ref = db_client.collection(model_instance.collection_path(parent_path))
            doc_ref = (
                collection_ref.document(model_instance.id)
                if model_instance.id
                else collection_ref.document()
            )

            if op == BatchOperation.CREATE:
                if not model_instance.id:
                    model_instance.id = doc_ref.id
                batch.create(doc_ref, model_instance.to_document())

            elif op == BatchOperation.SET:
                if changes is not None:
                    batch.set(doc_ref, changes, merge=True)
                else:
                    batch.set(doc_ref, model_instance.to_document())

            elif op == BatchOperation.UPDATE:
                data = changes if changes is not None else model_instance.to_document(creating=False)
                batch.update(doc_ref, data)

            elif op == BatchOperation.UPDATE_IF_UNCHANGED:
                if model_instance._update_time is None:
                    raise ValueError(f"{model_instance} was not read from the store.")
                data = changes if changes is not None else model_instance.to_document(creating=False)
                option = db_client.write_option(last_update_time=model_instance._update_time)
                batch.update(doc_ref, data, option=option)

            elif op == BatchOperation.DELETE:
                batch.delete(doc_ref)

        await batch.commit()

    @classmethod
    async def batch_delete(cls, models: Sequence["BaseFirestoreModel"]) -> int:
        """Delete ``models`` in as many atomic batches as the write cap needs."""
        for start in range(0, len(models), MAX_BATCH_WRITES):
            chunk = models[start:start + MAX_BATCH_WRITES]
            await cls.batch_write([(BatchOperation.DELETE, m) for m in chunk])
        return len(models)
