"""Pydantic schemas for the persisted cache files"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CachedRangeSchema(BaseModel):
    """Date range that has been fully fetched"""

    start: date
    end: date


class TransactionCacheFile(BaseModel):
    """transaction_cache.json"""

    model_config = ConfigDict(populate_by_name=True)

    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")
    transactions: List[Dict[str, Any]] = Field(default_factory=list)
    cached_ranges: List[CachedRangeSchema] = Field(default_factory=list, alias="cachedRanges")


class AccountCacheFile(BaseModel):
    """account_cache.json"""

    model_config = ConfigDict(populate_by_name=True)

    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")
    accounts: List[Dict[str, Any]] = Field(default_factory=list)
