"""
Error taxonomy shared by services and routers
"""


class HelpdeskError(Exception):
    """Base class for every error the core raises on purpose"""


class InvalidInput(HelpdeskError):
    """Required text is missing or empty"""


class NotFound(HelpdeskError):
    """Unknown conversation, help request or KB entry"""


class AlreadyResolved(HelpdeskError):
    """Help request is already in its terminal state"""


class CollaboratorUnavailable(HelpdeskError):
    """External collaborator failed, timed out or is not configured"""


class StoreConflict(HelpdeskError):
    """Store write lock could not be obtained after bounded retries"""


# HTTP status used by the routers for each error
STATUS_CODES = {
    InvalidInput: 400,
    NotFound: 404,
    AlreadyResolved: 409,
    CollaboratorUnavailable: 503,
    StoreConflict: 503,
}


def status_code_for(error: HelpdeskError) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500
