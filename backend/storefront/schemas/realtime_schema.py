# backend/storefront/schemas/realtime_schema.py
"""
Esquemas de suscripciones y eventos de cambios en la base de datos.
"""

from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, Field

EventType = Literal["INSERT", "UPDATE", "DELETE", "*"]


class SubscriptionConfig(BaseModel):
    table: str
    schema_name: str = Field("public", alias="schema")
    event: Optional[EventType] = None
    filter: Optional[str] = None

    model_config = {"populate_by_name": True}

    @property
    def key(self) -> str:
        return f"{self.table}-{self.event or 'all'}-{self.filter or 'none'}"


class RealtimeEvent(BaseModel):
    eventType: Literal["INSERT", "UPDATE", "DELETE"]
    schema_name: str = Field("public", alias="schema")
    table: str
    new: Dict[str, Any] = {}
    old: Dict[str, Any] = {}
    errors: Optional[List[str]] = None
    commit_timestamp: Optional[str] = None

    model_config = {"populate_by_name": True}
