from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .breaker import CircuitOpenError

# first match wins, so subclasses go before their bases
FRIENDLY_MESSAGES: tuple[tuple[type[BaseException], str], ...] = (
    (CircuitOpenError, "The service is temporarily unavailable. Please try again shortly."),
    (IntegrityError, "The request conflicts with existing data."),
    (OperationalError, "Temporary issue while accessing data. Please try again shortly."),
    (SQLAlchemyError, "Temporary issue while accessing data. Please try again shortly."),
    (TimeoutError, "The request took too long. Please try again later."),
    (ConnectionError, "Unable to connect to a required service. Please try again later."),
)

DEFAULT_MESSAGE = "Something went wrong on our end. Please try again."


def get_friendly_message(error: Exception) -> str:
    for error_cls, message in FRIENDLY_MESSAGES:
        if isinstance(error, error_cls):
            return message
    return DEFAULT_MESSAGE
