import uuid
from sqlalchemy import Column, String, Uuid

from restaurant_loyalty.db import Base
from restaurant_loyalty.models.audit import AuditMixin


class Restaurant(AuditMixin, Base):
    """Reference row owned by the restaurant management service."""

    __tablename__ = "restaurants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(200), nullable=False)

    # identity provider user id of the owner
    owner_id = Column(String(100), nullable=False, index=True)
