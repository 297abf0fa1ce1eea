"""Journey-planner response models.

Field names are German to match the consuming site (``von`` = from,
``nach`` = to, ``umstiege`` = transfers).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ConnectionLeg(BaseModel):
    von: str | None = None
    nach: str | None = None
    modus: str
    abfahrt: str
    ankunft: str


class Connection(BaseModel):
    abfahrt: str
    ankunft: str
    dauer: str
    umstiege: int
    verkehrsmittel: list[str] = Field(default_factory=list)
    stationen: list[ConnectionLeg] = Field(default_factory=list)


class ConnectionsResponse(BaseModel):
    von: str
    nach: str
    datum: str
    anzahl: int
    verbindungen: list[Connection] = Field(default_factory=list)
