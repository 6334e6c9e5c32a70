from functools import lru_cache
from typing import Iterable, Type, TypeVar

from pydantic import BaseModel, TypeAdapter

T = TypeVar("T", bound=BaseModel)


@lru_cache(maxsize=None)
def _list_adapter(schema: Type[BaseModel]) -> TypeAdapter:
    return TypeAdapter(list[schema])


class ORMMapper:
    """Turns ORM rows into the response models the routes return."""

    @staticmethod
    def one(row, schema: Type[T]) -> T:
        return schema.model_validate(row, from_attributes=True)

    @staticmethod
    def many(rows: Iterable, schema: Type[T]) -> list[T]:
        return _list_adapter(schema).validate_python(list(rows), from_attributes=True)
