from .customer import Customer
from .sync_metadata import SyncMetadata
