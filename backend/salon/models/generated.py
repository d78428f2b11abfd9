from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Table,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

USER_ROLES = ('admin', 'user')
BOOKING_STATUSES = ('booked', 'cancelled', 'past')
DAYS_OF_WEEK = (
    'monday',
    'tuesday',
    'wednesday',
    'thursday',
    'friday',
    'saturday',
    'sunday',
)


class UserProfile(Base):
    __tablename__ = 'user_profile'

    id = Column(Integer, primary_key=True)
    user_id = Column(Text, nullable=False, unique=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    phone_number = Column(Text)
    role = Column(Enum(*USER_ROLES, name='user_role'), nullable=False, default='user')
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    bookings = relationship('Bookings', back_populates='user')


t_hairdressers_services = Table(
    'hairdressers_services', metadata,
    Column('id', Integer, primary_key=True),
    Column('hairdresser_id', ForeignKey('hairdressers.id', ondelete='CASCADE'), nullable=False),
    Column('service_id', ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
    Column('created_at', DateTime, nullable=False, default=datetime.now),
    UniqueConstraint('hairdresser_id', 'service_id')
)


class Hairdressers(Base):
    __tablename__ = 'hairdressers'

    id = Column(Integer, primary_key=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    phone_number = Column(Text)
    email = Column(Text)
    street = Column(Text)
    city = Column(Text)
    postal_code = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    availability = relationship(
        'HairdresserAvailability',
        back_populates='hairdresser',
        cascade='all, delete-orphan',
        passive_deletes=True,
        order_by='HairdresserAvailability.id',
    )
    services = relationship(
        'Services',
        secondary=t_hairdressers_services,
        back_populates='hairdressers',
        passive_deletes=True,
    )
    bookings = relationship('Bookings', back_populates='hairdresser')


class Services(Base):
    __tablename__ = 'services'
    __table_args__ = (
        CheckConstraint('time_required > 0', name='ck_services_time_required_positive'),
    )

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    time_required = Column(Integer, nullable=False)  # minutes
    description = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    hairdressers = relationship(
        'Hairdressers',
        secondary=t_hairdressers_services,
        back_populates='services',
        passive_deletes=True,
    )
    bookings = relationship('Bookings', back_populates='service')


class HairdresserAvailability(Base):
    __tablename__ = 'hairdresser_availability'
    __table_args__ = (
        CheckConstraint('end_time > start_time', name='ck_availability_end_after_start'),
    )

    id = Column(Integer, primary_key=True)
    hairdresser_id = Column(ForeignKey('hairdressers.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Enum(*DAYS_OF_WEEK, name='day_of_week'), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    hairdresser = relationship('Hairdressers', back_populates='availability')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_hairdresser_status_date', 'hairdresser_id', 'status', 'appointment_date'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('user_profile.user_id'), nullable=False)
    hairdresser_id = Column(ForeignKey('hairdressers.id'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    appointment_date = Column(DateTime, nullable=False)
    status = Column(Enum(*BOOKING_STATUSES, name='booking_status'), nullable=False, default='booked')
    notes = Column(Text)
    cancellation_reason = Column(Text)
    reschedule_reason = Column(Text)
    google_calendar_event_id = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    user = relationship('UserProfile', back_populates='bookings')
    hairdresser = relationship('Hairdressers', back_populates='bookings')
    service = relationship('Services', back_populates='bookings')


class GoogleCalendarCredentials(Base):
    __tablename__ = 'google_calendar_credentials'

    id = Column(Integer, primary_key=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    scope = Column(Text, nullable=False)
    token_type = Column(Text, nullable=False)
    expiry_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
