"""
Bound query helper: ``user.subcollection(Notification).find()`` is sugar for
``Notification.find(parent=user)``.

This is NOT a pydantic field, only a runtime accessor.
"""

from typing import TYPE_CHECKING, AsyncGenerator, List, Optional, Type

if TYPE_CHECKING:
    from .firestore_model import BaseFirestoreModel


class SubCollectionAccessor:
    """
    Query accessor for one subcollection under one parent document.

    Example:
        inbox = user.subcollection(Notification)
        async for note in inbox.find([Notification.is_read == False]):
            print(note.title)
    """

    def __init__(self, parent: "BaseFirestoreModel", child_cls: Type["BaseFirestoreModel"]):
        self._parent = parent
        self._child_cls = child_cls

        if child_cls.parent_model() is not type(parent):
            raise ValueError(
                f"{child_cls.__name__} does not declare "
                f"Settings.parent = {type(parent).__name__}"
            )

    async def add(self, doc: "BaseFirestoreModel") -> "BaseFirestoreModel":
        return await doc.save(parent=self._parent)

    async def put(self, doc: "BaseFirestoreModel", merge: bool = False) -> "BaseFirestoreModel":
        return await doc.upsert(parent=self._parent, merge=merge)

    async def get(self, doc_id: str) -> Optional["BaseFirestoreModel"]:
        return await self._child_cls.get(doc_id, parent=self._parent)

    async def find(self, filters=None, **kwargs) -> AsyncGenerator:
        async for doc in self._child_cls.find(filters=filters, parent=self._parent, **kwargs):
            yield doc

    async def find_all(self, filters=None, **kwargs) -> List["BaseFirestoreModel"]:
        return [doc async for doc in self.find(filters, **kwargs)]

    async def find_one(self, filters=None, **kwargs):
        return await self._child_cls.find_one(filters=filters or [], parent=self._parent, **kwargs)

    async def count(self, filters=None) -> int:
        return await self._child_cls.count(filters=filters or [], parent=self._parent)

    async def exists(self, doc_id: str) -> bool:
        return await self._child_cls.exists(doc_id, parent=self._parent)

    async def delete(self, doc: "BaseFirestoreModel") -> None:
        await doc.delete(parent=self._parent)
