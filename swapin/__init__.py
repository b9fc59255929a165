from typing import List, Type

from .enums import BatchOperation, FirestoreOperators, OrderByDirection
from .firestore_client import FirestoreDB
from .firestore_fields import QueryField
from .firestore_model import BaseFirestoreModel


def init_firestore_odm(database: FirestoreDB, document_models: List[Type[BaseFirestoreModel]]):
    for model in document_models:
        model.initialize_db(database)
        model.initialize_fields()


__all__ = [
    "BaseFirestoreModel",
    "QueryField",
    "FirestoreDB",
    "BatchOperation",
    "FirestoreOperators",
    "OrderByDirection",
    "init_firestore_odm",
]
