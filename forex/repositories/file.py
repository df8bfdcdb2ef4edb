"""
File Repository
"""
from forex.models.file import File
from forex.repositories.base import BaseRepository


class FileRepository(BaseRepository[File]):
    collection = "files"
    model = File
