"""Record Type Descriptors.

A record type tells the importer how to treat one row of input:
1. Which fields must be present (required)
2. Which fields must not repeat within a run (unique)
3. Which document shape to build, and its fixed document-type tag
4. Where to send the resulting document (method + path template)
5. Which field labels the row in error messages (natural_key)

Descriptors are defined in record_types.yaml and loaded once at start.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class DocumentShape(str, Enum):
    USER = "user"
    PERSON = "person"
    PLACE = "place"
    PLACE_UPDATE = "place_update"


class RecordType(BaseModel):
    name: str
    shape: DocumentShape
    required: list[str] = []
    unique: list[str] = []
    doc_type: Optional[str] = None
    method: str = "POST"
    path: str
    natural_key: str = "name"
    description: Optional[str] = None

    model_config = {"frozen": True}
