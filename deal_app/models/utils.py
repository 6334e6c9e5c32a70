from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
