from .generated import (
    Base,
    metadata,
    BOOKING_STATUSES,
    DAYS_OF_WEEK,
    USER_ROLES,
    UserProfile,
    Hairdressers,
    Services,
    HairdresserAvailability,
    Bookings,
    GoogleCalendarCredentials,
    t_hairdressers_services,
)

__all__ = [
    "Base",
    "metadata",
    "BOOKING_STATUSES",
    "DAYS_OF_WEEK",
    "USER_ROLES",
    "UserProfile",
    "Hairdressers",
    "Services",
    "HairdresserAvailability",
    "Bookings",
    "GoogleCalendarCredentials",
    "t_hairdressers_services",
]
