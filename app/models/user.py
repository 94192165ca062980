from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import UserRole
from app.utils.timeutils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    bookings = relationship("Booking", back_populates="owner")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
