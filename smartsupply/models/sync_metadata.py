# smartsupply/models/sync_metadata.py
from sqlmodel import Field, SQLModel


class SyncMetadata(SQLModel, table=True):
    """Key/value markers for the cache; only "lastSync" is used today."""

    __tablename__ = "sync_metadata"

    key: str = Field(primary_key=True)
    value: float = Field(nullable=False)
