class DatastoreUnavailableError(Exception):
    def __init__(self, message: str = "Unable to reach the datastore.", details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        return f"DatastoreUnavailableError: {self.message} Details: {self.details or 'No further details provided.'}"

class EntityNotFoundError(Exception):
    def __init__(self, entity_name: str, identifier: str, message: str = None):
        self.entity_name = entity_name
        self.identifier = identifier
        self.message = message or f"{entity_name} not found [{identifier}]."
        super().__init__(self.message)

    def __str__(self):
        return f"EntityNotFoundError: {self.message}"

class SubscriberNotFoundError(EntityNotFoundError):
    def __init__(self, identifier: str):
        super().__init__("Subscriber", identifier)

class PostNotFoundError(EntityNotFoundError):
    def __init__(self, slug: str):
        super().__init__("BlogPost", slug)

# Token errors. Only ever logged; callers see InvalidUnsubscribeLinkError.

class InvalidTokenError(Exception):
    reason = "invalid"

    def __init__(self, message: str = None):
        self.message = message or f"Token rejected: {self.reason}"
        super().__init__(self.message)

    def __str__(self):
        return f"{type(self).__name__}: {self.message}"

class MalformedTokenError(InvalidTokenError):
    reason = "malformed"

class SignatureMismatchError(InvalidTokenError):
    reason = "signature mismatch"

class TokenExpiredError(InvalidTokenError):
    reason = "expired"

class WrongPurposeError(InvalidTokenError):
    reason = "wrong purpose"

class InvalidUnsubscribeLinkError(Exception):
    def __init__(self, message: str = "This unsubscribe link is invalid or has expired."):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return f"InvalidUnsubscribeLinkError: {self.message}"
