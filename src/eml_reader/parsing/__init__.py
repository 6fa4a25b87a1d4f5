# Structural parsing: entities and multipart bodies

from .entity import Entity, read_entity, validate_boundary
from .multipart import MultipartReader, PartBody

__all__ = [
    "Entity",
    "MultipartReader",
    "PartBody",
    "read_entity",
    "validate_boundary",
]
