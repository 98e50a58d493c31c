"""Staff management schemas."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel


class StaffManageRequest(BaseModel):
    """Privileged staff operation.

    Field validation (username, password, PIN, work days, shift times)
    happens in the service so every action reports errors the same way.
    """

    action: Literal["create", "update", "delete", "verify_pin"]
    staff_id: Optional[int] = None
    name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    pin: Optional[str] = None
    work_days: Optional[List[str]] = None
    shift_start: Optional[str] = None
    shift_end: Optional[str] = None
    is_active: Optional[bool] = None
    permissions: Optional[Dict[str, bool]] = None


class StaffResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    name: str
    username: str
    work_days: List[str]
    shift_start: str
    shift_end: str
    is_active: bool
    has_pin: bool
    permissions: Dict[str, bool]
