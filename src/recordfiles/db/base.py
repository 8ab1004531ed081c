from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for models owning record files."""
    pass
