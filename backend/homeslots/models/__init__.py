from .tables import (
    Base,
    Holidays,
    ProviderAvailability,
    ProviderBookings,
    ProviderHolidayPreferences,
    Providers,
    ProviderUnavailability,
    metadata,
)

__all__ = [
    "Base",
    "metadata",
    "Providers",
    "ProviderAvailability",
    "Holidays",
    "ProviderHolidayPreferences",
    "ProviderUnavailability",
    "ProviderBookings",
]
