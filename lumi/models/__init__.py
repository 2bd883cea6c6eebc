"""
Models package - imports all models so they register with SQLModel metadata.
"""
from lumi.models.models import *  # noqa: F401,F403
from lumi.models.models import __all__  # noqa: F401
