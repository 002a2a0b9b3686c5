class PolicyChatError(Exception):
    """Base class for errors raised by the policy assistant."""


class ExtractionError(PolicyChatError):
    """The LLM extractor failed or returned output that could not be parsed."""


class RegistryError(PolicyChatError):
    """The schema registry could not be loaded."""


class PersistenceError(PolicyChatError):
    """Saving session state or artifacts failed."""
