class AppError(Exception):
    """Base class for all application-level errors."""
    pass


class DomainError(AppError):
    """Base for domain logic errors."""
    pass

class CommentValidationError(DomainError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class PostValidationError(DomainError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class RateLimitExceededError(DomainError):
    def __init__(self, message: str, retry_after: float = 0.0):
        self.message = message
        self.retry_after = retry_after
        super().__init__(self.message)

class RecordNotFoundError(DomainError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        self.message = f"Record '{record_id}' not found in '{collection}'"
        super().__init__(self.message)

class AuthenticationError(DomainError):
    def __init__(self, message: str = "Authentication required"):
        self.message = message
        super().__init__(self.message)



class InfrastructureError(AppError):
    """Base for infrastructure-related errors (DB, API, etc)."""
    pass

class RecordStoreError(InfrastructureError):
    def __init__(self, collection: str, detail: str = ""):
        self.collection = collection
        self.detail = detail
        self.message = f"Error with record store collection '{collection}': {detail}"
        super().__init__(self.message)

class ExternalAPIError(InfrastructureError):
    def __init__(self, service: str, detail: str = ""):
        self.message = f"Error with external service '{service}': {detail}"
        super().__init__(self.message)
