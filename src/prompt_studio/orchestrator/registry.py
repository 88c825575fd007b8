"""Static registry of candidate models and provider-hint filtering."""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from prompt_studio.config import Settings

AUTO_HINT = "auto"
ALL_HINT = "all"
WILDCARD_HINTS = frozenset({AUTO_HINT, ALL_HINT})

# Provider tag -> substring expected in the model identifier
PROVIDER_TAGS = {
    "grok": "grok",
    "deepseek": "deepseek",
    "llama": "llama",
}


@dataclass(frozen=True)
class ModelDescriptor:
    """One configured upstream model."""

    identifier: str
    priority: int  # Lower is tried first
    max_attempts: int = 1

    def __post_init__(self):
        if not self.identifier:
            raise ValueError("Model identifier must not be empty")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def matches_provider(self, tag: str) -> bool:
        needle = PROVIDER_TAGS.get(tag)
        return bool(needle) and needle in self.identifier.lower()


class ModelRegistry:
    """Fixed, priority-ordered set of model descriptors."""

    def __init__(self, descriptors: Iterable[ModelDescriptor]):
        self._models: Tuple[ModelDescriptor, ...] = tuple(
            sorted(descriptors, key=lambda d: d.priority)
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelRegistry":
        """Build the registry from the primary/secondary/tertiary model slots."""
        return cls(
            [
                ModelDescriptor(settings.llm_primary_model, 1, settings.llm_primary_max_attempts),
                ModelDescriptor(settings.llm_secondary_model, 2, settings.llm_secondary_max_attempts),
                ModelDescriptor(settings.llm_tertiary_model, 3, settings.llm_tertiary_max_attempts),
            ]
        )

    def list_models(self) -> List[ModelDescriptor]:
        return list(self._models)

    def identifiers(self) -> List[str]:
        return [m.identifier for m in self._models]

    def filter_by_provider_hint(self, hint: str) -> List[ModelDescriptor]:
        """Return the models eligible for a provider hint, in priority order.

        Wildcard hints return every model; a named provider tag returns the
        models whose identifier carries that tag; anything else returns an
        empty list.
        """
        normalized = (hint or AUTO_HINT).strip().lower()
        if normalized in WILDCARD_HINTS:
            return self.list_models()
        return [m for m in self._models if m.matches_provider(normalized)]
