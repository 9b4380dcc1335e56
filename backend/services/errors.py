# services/errors.py
# Error taxonomy. Every message here is safe to send back to the end user;
# transport details are logged where the error is raised, never embedded.


class WebhookError(Exception):
    """Base class for failures that are converted to a user-facing message."""


class BadRequest(WebhookError):
    """A required input field is missing from the request body."""


class IntegrationError(WebhookError):
    """
    A remote store (Sheets, Calendar, history, classifier) failed or is not configured.

    :param message: user-safe summary
    :type message: str
    :param status_code: upstream HTTP status, when there was one
    :type status_code: Optional[int]
    """

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ClassifierUnavailable(IntegrationError):
    """The text classifier could not be reached or answered with an error."""


class MalformedInstruction(WebhookError):
    """The classifier answered with something that is not one structured instruction."""


class EmptyTranscript(WebhookError):
    """No conversation text is available, so classification must not run."""


class BadInstruction(WebhookError):
    """A recognized action is missing a field it needs."""


class UnknownAction(WebhookError):
    """The instruction carries an action tag outside the supported vocabulary."""


class RecordNotFound(WebhookError):
    """No directory row matches any identifier candidate."""


class FieldNotFound(WebhookError):
    """The requested field has no column in the directory header."""


class EmptyTable(WebhookError):
    """The directory holds a header row at most."""


class EventNotFound(WebhookError):
    """No calendar event could be identified for update or removal."""
