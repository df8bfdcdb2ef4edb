"""
File Model
Metadata for an uploaded attachment stored on disk
"""
from datetime import datetime
from pydantic import Field

from forex.models.common import StoredModel


class File(StoredModel):
    """
    An uploaded attachment.

    `url` is the path under the upload directory, `name` the sanitized
    original filename and `fid` the random id embedded in the stored name.
    """
    url: str
    name: str
    fid: str
    size: int
    mime_type: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
