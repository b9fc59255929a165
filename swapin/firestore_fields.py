from typing import Any, List, Optional, Tuple

from .enums import FirestoreOperators, OrderByDirection


class QueryField:
    """
    Class-level stand-in for a model field, used to spell store queries.

    ``Item.owner_id == "u1"`` evaluates to ``("ownerId", "==", "u1")`` because
    the descriptor knows the stored (aliased) name of the field. On an
    instance the descriptor steps aside and the model value is returned.
    """

    def __init__(self, field_name: str, attr_name: Optional[str] = None):
        self.field_name = field_name
        self.attr_name = attr_name or field_name

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return instance.__dict__.get(self.attr_name)

    def __str__(self) -> str:  # noqa: DunderStr
        return self.field_name

    __repr__ = __str__

    def __hash__(self) -> int:  # noqa: DunderHash
        return hash(self.field_name)

    # Filters -------------------------------------------------------------

    def __eq__(self, other):  # type: ignore[override]
        return (self.field_name, FirestoreOperators.EQ, other)

    def __ne__(self, other):  # type: ignore[override]
        return (self.field_name, FirestoreOperators.NE, other)

    def __lt__(self, other):
        return (self.field_name, FirestoreOperators.LT, other)

    def __le__(self, other):
        return (self.field_name, FirestoreOperators.LTE, other)

    def __gt__(self, other):
        return (self.field_name, FirestoreOperators.GT, other)

    def __ge__(self, other):
        return (self.field_name, FirestoreOperators.GTE, other)

    def in_(self, values: List[Any]) -> tuple:
        return (self.field_name, FirestoreOperators.IN, values)

    def not_in_(self, values: List[Any]) -> tuple:
        return (self.field_name, FirestoreOperators.NOT_IN, values)

    def array_contains(self, value: Any) -> tuple:
        return (self.field_name, FirestoreOperators.ARRAY_CONTAINS, value)

    def array_contains_any(self, values: List[Any]) -> tuple:
        return (self.field_name, FirestoreOperators.ARRAY_CONTAINS_ANY, values)

    # Ordering ------------------------------------------------------------

    def asc(self) -> Tuple[str, OrderByDirection]:
        return (self.field_name, OrderByDirection.ASCENDING)

    def desc(self) -> Tuple[str, OrderByDirection]:
        return (self.field_name, OrderByDirection.DESCENDING)
