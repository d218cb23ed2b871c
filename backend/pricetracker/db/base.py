from sqlalchemy.orm import declarative_base

# Base class for all SQLAlchemy models; kept in its own file to avoid circular imports.
Base = declarative_base()
