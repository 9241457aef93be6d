from sqlalchemy import Boolean, Column, TIMESTAMP, false
from sqlalchemy.sql import func

from restaurant_loyalty.clock import utcnow


class AuditMixin:
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)

    # soft delete; rows are filtered with db.not_deleted()
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    deleted_at = Column(TIMESTAMP, nullable=True)
