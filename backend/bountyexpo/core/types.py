"""Column types shared by the models"""
import uuid

from sqlalchemy import String, TypeDecorator


def generate_uuid() -> str:
    return str(uuid.uuid4())


class GUID(TypeDecorator):
    """
    UUID keys kept as 36-character strings on every backend, so ids are plain
    str in Python whether the database is SQLite or PostgreSQL.
    """
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else str(value)

    @property
    def python_type(self):
        return str
