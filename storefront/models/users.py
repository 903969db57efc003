# storefront/models/users.py
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from storefront.database import Base


class Role(str, enum.Enum):
    CLIENT = "client"
    OPERATOR = "operator"
    SUPEROPERATOR = "superoperator"


OPERATOR_ROLES = (Role.OPERATOR.value, Role.SUPEROPERATOR.value)


# Any authenticated identity: a shop client or an operator.
# Never deleted, only deactivated or banned.
class Principal(Base):
    __tablename__ = "principals"

    id = Column(Integer, primary_key=True, index=True)
    # Stored lower-cased, lookups are case-insensitive
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.CLIENT.value)

    is_active = Column(Boolean, nullable=False, default=True)
    is_banned = Column(Boolean, nullable=False, default=False)

    # Login throttling
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    last_login_ip = Column(String(64), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    refresh_tokens = relationship("RefreshToken", back_populates="principal", cascade="all, delete-orphan")

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES
