from datetime import datetime, timezone
from typing import TypeVar
from uuid import uuid4

T = TypeVar("T")


def not_none(value: T | None, value_name: str | None = None) -> T:
    value_name_str = f" '{value_name}'" if value_name else ""
    if value is None:
        raise ValueError(f"Value{value_name_str} is None, which is unexpected")
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())
