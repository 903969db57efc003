from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from storefront.database import Base

# Audit trail of principal actions and security events
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)

    # Event timestamp and core action details
    ts = Column(DateTime, server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("principals.id"), nullable=True)
    action = Column(String(50), index=True)
    resource = Column(String(50), index=True)
    status = Column(String(20), index=True)
    ip = Column(String(64), nullable=True)

    # JSON container for flexible context data
    meta = Column(JSON, nullable=True)

    principal = relationship("Principal", lazy="joined", uselist=False)
