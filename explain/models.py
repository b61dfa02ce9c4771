"""Model allow-list."""

from explain.errors import InvalidModelError

KNOWN_MODELS: tuple[str, ...] = (
    "gpt-4-32k-0613",
    "gpt-4-32k-0314",
    "gpt-4-32k",
    "gpt-4-0613",
    "gpt-4-0314",
    "gpt-4-turbo-preview",
    "gpt-4-vision-preview",
    "gpt-4",
    "gpt-3.5-turbo-1106",
    "gpt-3.5-turbo-0613",
    "gpt-3.5-turbo-0301",
    "gpt-3.5-turbo-16k",
    "gpt-3.5-turbo-16k-0613",
    "gpt-3.5-turbo",
    "gpt-3.5-turbo-instruct",
)

# Used when the stored model is empty
DEFAULT_MODEL = "gpt-4-turbo-preview"


class ModelSelector:
    """Classifies model identifiers. Never touches state."""

    def __init__(self, models: tuple[str, ...] = KNOWN_MODELS):
        self.models = models

    def validate(self, identifier: str) -> str:
        """Exact, case-sensitive match against the allow-list."""
        if identifier in self.models:
            return identifier
        raise InvalidModelError(identifier, self.models)

    def pretty_models(self) -> str:
        return "  - " + "\n  - ".join(self.models)

    def resolve(self, state) -> str:
        """Model to request for this state"""
        return state.model or DEFAULT_MODEL
