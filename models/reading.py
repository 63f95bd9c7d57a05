"""Domain models shared by the readings client and its CLI."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Reading(BaseModel):
    """A single sensor reading as exchanged with the core-data service.

    Field contents are passed through untouched. Attributes left unset are
    omitted again when the reading is encoded, so a decoded payload encodes
    back to the same JSON document.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    pushed: int = 0
    created: int = 0
    origin: int = 0
    modified: int = 0
    device: str = ""
    name: str = ""
    value: str = ""
    uom_label: str = Field(default="", alias="uomLabel")
    labels: List[str] = Field(default_factory=list)
    value_type: str = Field(default="", alias="valueType")
    float_encoding: str = Field(default="", alias="floatEncoding")
    binary_value: Optional[str] = Field(
        default=None, alias="binaryValue", description="Base64 encoded payload."
    )
    media_type: str = Field(default="", alias="mediaType")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
