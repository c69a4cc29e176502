"""Pydantic schemas for Notification resources"""
from typing import Optional
from pydantic import BaseModel


class MarkReadRequest(BaseModel):
    id: Optional[int] = None
    all_read: bool = False
