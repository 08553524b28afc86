"""SQLAlchemy declarative base and model imports for Alembic."""
from caresim.db.session import Base

# Import all models so Alembic can see them
from caresim.models.certificate import Certificate  # noqa: F401
from caresim.models.progress import ProgressDocument  # noqa: F401

__all__ = ["Base", "Certificate", "ProgressDocument"]
