# Entity Models
from gouraan.models.entities import (
    User, UserPreferences, UserSession, UserDevice, LoyaltyTransaction,
    Hotel, Room, TravelPackage, Booking, Payment,
    FlightBooking, FlightSegment, FlightPassenger, Ticket,
    Airline, Airport, Flight, FlightSeat,
    Notification, SupportTicket, SupportTicketMessage, ChatMessage,
    Review, UploadedFile,
)

__all__ = [
    'User', 'UserPreferences', 'UserSession', 'UserDevice', 'LoyaltyTransaction',
    'Hotel', 'Room', 'TravelPackage', 'Booking', 'Payment',
    'FlightBooking', 'FlightSegment', 'FlightPassenger', 'Ticket',
    'Airline', 'Airport', 'Flight', 'FlightSeat',
    'Notification', 'SupportTicket', 'SupportTicketMessage', 'ChatMessage',
    'Review', 'UploadedFile',
]
