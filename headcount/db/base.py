"""
Declarative base shared by every ORM model.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models use the classic ``attr: type = Column(...)`` style.
    __allow_unmapped__ = True
