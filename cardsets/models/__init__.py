"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table when create_all() runs at startup
  2. Other modules can import from cardsets.models directly
"""

from cardsets.models.user import User  # noqa: F401
from cardsets.models.card import Card  # noqa: F401
from cardsets.models.preset import Preset, PresetCard  # noqa: F401
from cardsets.models.session import SessionRecord  # noqa: F401
