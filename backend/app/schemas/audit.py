from __future__ import annotations

import datetime as dt
from typing import Any

from app.schemas.common import CamelModel


class AuditEventOut(CamelModel):
    id: int
    occurred_at: dt.datetime | None
    action: str
    action_label: str
    target_type: str
    target_id: str | None
    actor_email: str | None
    details: dict[str, Any] | None
