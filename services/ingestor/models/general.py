"""
GENERAL folder master data models.

File naming: [DEST]_[OFFICE]_[ID]_[TYPE], e.g. PMI_1_56548_F. The type
fragment (GHOT_F, IDES_F, GCAT_F, GTTO_F) selects the parser.
"""

from typing import Optional

from pydantic import BaseModel


class MasterHotel(BaseModel):
    """Hotel row from GHOT_F files."""

    id: int
    category: Optional[str] = None
    destination_code: Optional[str] = None
    chain_code: Optional[str] = None
    accommodation_type: Optional[str] = None
    ranking: Optional[int] = None
    group_hotel: Optional[str] = None
    country_code: Optional[str] = None
    state_code: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    name: Optional[str] = None


class Destination(BaseModel):
    """Destination row from IDES_F files."""

    code: str
    country_code: Optional[str] = None
    is_available: Optional[str] = None
    name: Optional[str] = None


class Category(BaseModel):
    """Category row from GCAT_F files."""

    code: str
    type: Optional[str] = None
    simple_code: Optional[str] = None
    description: Optional[str] = None


class Chain(BaseModel):
    """Chain / tour operator row from GTTO_F files."""

    code: str
    name: Optional[str] = None
