from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    UniqueConstraint,
    false,
    func,
    text,
    true,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


# Timestamps are stored as naive UTC; services convert at the boundary.


class Providers(Base):
    __tablename__ = 'providers'

    id = Column(Text, primary_key=True)
    display_name = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    is_active = Column(Boolean, nullable=False, server_default=true())
    booking_seq = Column(Integer, nullable=False, server_default=text('0'))
    # Bumped with every windows / timezone / holiday-preference change; part of the segments cache key
    schedule_version = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    availability = relationship(
        'ProviderAvailability', back_populates='provider', cascade='all, delete-orphan'
    )
    holiday_preferences = relationship(
        'ProviderHolidayPreferences', back_populates='provider', cascade='all, delete-orphan'
    )
    unavailability = relationship(
        'ProviderUnavailability', back_populates='provider', cascade='all, delete-orphan'
    )
    bookings = relationship('ProviderBookings', back_populates='provider')


class ProviderAvailability(Base):
    __tablename__ = 'provider_availability'
    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_availability_day'),
        CheckConstraint('start_time < end_time', name='ck_availability_range'),
        CheckConstraint('buffer_minutes >= 0', name='ck_availability_buffer'),
        Index('ix_availability_provider_day', 'provider_id', 'day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    buffer_minutes = Column(Integer, nullable=False, server_default=text('15'))

    provider = relationship('Providers', back_populates='availability')


class Holidays(Base):
    __tablename__ = 'holidays'

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    name = Column(Text, nullable=False)

    preferences = relationship(
        'ProviderHolidayPreferences', back_populates='holiday', cascade='all, delete-orphan'
    )


class ProviderHolidayPreferences(Base):
    __tablename__ = 'provider_holiday_preferences'
    __table_args__ = (
        UniqueConstraint('provider_id', 'holiday_id', name='uq_holiday_preference'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    holiday_id = Column(ForeignKey('holidays.id', ondelete='CASCADE'), nullable=False)
    blocks_availability = Column(Boolean, nullable=False, server_default=false())

    provider = relationship('Providers', back_populates='holiday_preferences')
    holiday = relationship('Holidays', back_populates='preferences')


class ProviderUnavailability(Base):
    __tablename__ = 'provider_unavailability'
    __table_args__ = (
        CheckConstraint('start_ts < end_ts', name='ck_unavailability_range'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False, index=True)
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    provider = relationship('Providers', back_populates='unavailability')


class ProviderBookings(Base):
    __tablename__ = 'provider_bookings'
    __table_args__ = (
        CheckConstraint('start_ts < end_ts', name='ck_booking_range'),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name='ck_booking_status',
        ),
        CheckConstraint('image_count BETWEEN 0 AND 5', name='ck_booking_images'),
        Index('ix_bookings_provider_start', 'provider_id', 'start_ts'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    homeowner_id = Column(Text, nullable=False, index=True)
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    service_type = Column(Text, nullable=False)
    description = Column(Text)
    homeowner_notes = Column(Text)
    provider_notes = Column(Text)
    cancel_reason = Column(Text)
    cancelled_by = Column(Text)
    image_count = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    provider = relationship('Providers', back_populates='bookings')
