class DomainError(Exception):
    """Base exception class for all domain-specific exceptions."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundError(DomainError):
    """Exception raised when a requested resource is missing or not owned by the caller."""

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} with ID {resource_id} not found"
        super().__init__(message)


class ValidationError(DomainError):
    """Exception raised when input falls outside its allowed domain."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConflictError(DomainError):
    """Exception raised when a concurrent update is detected at commit time."""

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} with ID {resource_id} was modified concurrently, reload and retry"
        super().__init__(message)


class AlreadyExistsError(DomainError):
    """Exception raised when creating a resource that the caller already owns."""

    def __init__(self, message: str, existing_id: object | None = None) -> None:
        self.existing_id = existing_id
        super().__init__(message)


class CollaboratorUnavailableError(DomainError):
    """Exception raised when an external collaborator failed after bounded retries."""

    def __init__(self, service: str, reason: str) -> None:
        self.service = service
        self.reason = reason
        super().__init__(f"{service} service unavailable: {reason}")
