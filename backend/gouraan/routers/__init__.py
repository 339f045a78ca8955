# API Routers
from gouraan.routers import (
    health, auth, users, hotels, rooms, packages, bookings, flight_bookings,
    payments, notifications, support, chat, reviews, analytics, files,
    airlines, airports, flights,
)

__all__ = [
    'health', 'auth', 'users', 'hotels', 'rooms', 'packages', 'bookings', 'flight_bookings',
    'payments', 'notifications', 'support', 'chat', 'reviews', 'analytics', 'files',
    'airlines', 'airports', 'flights',
]
