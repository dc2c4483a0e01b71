class HubError(Exception):
    """Base exception for all application-specific errors."""

    error_code = 'app:hub_error'


class ConfigurationError(HubError):
    """Raised when a collaborator is used without its credentials configured."""

    error_code = 'config:configuration_error'


class CodeNotFound(HubError):
    """Raised when a short link or availability code does not resolve."""

    error_code = 'link:code_not_found'

    def __init__(self, code: str):
        super().__init__(f"Code not found: {code}")
        self.code = code


class GeneratorExhaustion(HubError):
    """Raised when no free code could be drawn within the allowed attempts."""

    error_code = 'link:generator_exhaustion'


class EntityNotFound(HubError):
    """Raised when the engagement referenced by a code no longer exists."""

    error_code = 'record:entity_not_found'

    def __init__(self, entity_id: str):
        super().__init__(f"Entity not found: {entity_id}")
        self.entity_id = entity_id


class ResponderNotFound(HubError):
    """Raised when the technician referenced by a code no longer exists."""

    error_code = 'record:responder_not_found'

    def __init__(self, responder_id: str):
        super().__init__(f"Responder not found: {responder_id}")
        self.responder_id = responder_id


class CollaboratorFailure(HubError):
    """Raised when Airtable, Twilio, Stripe or Cloudinary returns an error."""

    error_code = 'infra:collaborator_failure'

    def __init__(self, collaborator: str, message: str, status_code=None):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator
        self.status_code = status_code


class CollaboratorTimeout(CollaboratorFailure):
    """Raised when a collaborator call exceeds the configured timeout."""

    error_code = 'infra:collaborator_timeout'
