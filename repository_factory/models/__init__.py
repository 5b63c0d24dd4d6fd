from repository_factory.models.base import Base, EntityBase, UTCDateTime, utcnow

__all__ = ["Base", "EntityBase", "UTCDateTime", "utcnow"]
