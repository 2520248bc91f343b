# services/errors.py

class ReminderError(Exception):
    """Base class for reminder engine errors"""

class ConfigurationError(ReminderError):
    """A channel or collaborator is missing credentials or user data"""

class UpstreamError(ReminderError):
    """An external service (generator, push, SMS) failed"""

class UpstreamTimeout(UpstreamError):
    pass

class NotFoundError(ReminderError):
    """User profile or notification preferences are missing"""

class InputValidationError(ReminderError):
    pass

class DeliveryError(ReminderError):
    """No channel delivered a message"""
