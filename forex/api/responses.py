from typing import Any

from bson import ObjectId
from fastapi.encoders import jsonable_encoder


def envelope(message: str, data: Any = None) -> dict:
    """Standard response body: {message, data?}"""
    body = {"message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data, custom_encoder={ObjectId: str})
    return body
