# storefront/models/refresh_token.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from storefront.database import Base

# Server-side record of an issued refresh token.
# Only the SHA-256 digest is stored; the token itself lives in the client cookie.
class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    principal_id = Column(Integer, ForeignKey("principals.id"), index=True, nullable=False)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    issued_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    # jti of the token that replaced this one on rotation
    replaced_by = Column(String(64), nullable=True)

    principal = relationship("Principal", back_populates="refresh_tokens")

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None
