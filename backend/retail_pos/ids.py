import uuid


def new_id() -> str:
    """Opaque primary key assigned when an entity is created, before it is persisted."""
    return str(uuid.uuid4())
