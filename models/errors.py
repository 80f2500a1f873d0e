class ServiceError(Exception):
    """Base class for errors raised by the data-access layer"""


class NotFoundError(ServiceError):
    """Record is absent or not owned by the requesting subject"""


class EmailExistsError(ServiceError):
    """A user with this email is already registered"""
