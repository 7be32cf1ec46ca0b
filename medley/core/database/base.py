# File: medley/core/database/base.py

from sqlalchemy.orm import declarative_base

# The shared registry. All feature models (e.g. the duration cache) inherit from this.
Base = declarative_base()
