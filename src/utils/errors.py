"""
Pipeline Errors

Custom exceptions for hard failures. Gate-level problems never surface as
exceptions past the orchestrator; they become verdicts instead.
"""


class InputError(ValueError):
    """
    Raised for a missing or invalid intent, duration or locale.
    Surfaced before any gate runs.
    """
    def __init__(self, field: str, message: str):
        super().__init__(f"Invalid {field}: {message}")
        self.field = field
        self.message = message


class ContentGeneratorError(RuntimeError):
    """Raised when the content generator times out or the transport fails."""
    def __init__(self, provider: str, message: str):
        super().__init__(f"Content generator '{provider}' failed: {message}")
        self.provider = provider
        self.message = message


class PlanGenerationError(RuntimeError):
    """
    Raised when plan generation is exhausted.

    Carries the last validation errors and a truncated excerpt of the
    offending output for the developer-only diagnostic surface.
    """
    def __init__(
        self,
        reason_code: str,
        errors: list[str],
        excerpt: str = "",
        attempts: int = 0,
    ):
        super().__init__(f"Plan generation failed ({reason_code}) after {attempts} attempt(s)")
        self.reason_code = reason_code
        self.errors = errors
        self.excerpt = excerpt
        self.attempts = attempts

    def to_public_dict(self) -> dict:
        """User-facing failure payload: retryable state, no internals."""
        return {"error": self.reason_code, "retryable": True}

    def to_debug_dict(self) -> dict:
        return {
            "error": self.reason_code,
            "errors": self.errors,
            "excerpt": self.excerpt,
            "attempts": self.attempts,
        }


class GenerationInProgressError(RuntimeError):
    """Raised when another generation already holds the ritual lock."""
    def __init__(self, ritual_id: str):
        super().__init__(f"Generation already in progress for ritual {ritual_id}")
        self.ritual_id = ritual_id


class RitualNotFoundError(LookupError):
    def __init__(self, ritual_id: str):
        super().__init__(f"Ritual {ritual_id} not found")
        self.ritual_id = ritual_id


class StepNotSelectableError(PermissionError):
    """Raised when the gating mode forbids opening a step."""
    def __init__(self, step_id: str, state: str, gating_mode: str):
        super().__init__(f"Step {step_id} is {state}; not selectable under {gating_mode} gating")
        self.step_id = step_id
        self.state = state
        self.gating_mode = gating_mode


class OverrideValidationError(ValueError):
    """Raised when a playbook override set breaks registry invariants."""
    def __init__(self, errors: list[str]):
        super().__init__(f"Invalid playbook overrides: {'; '.join(errors)}")
        self.errors = errors


class LexiconLoadError(RuntimeError):
    """Raised when the assisted safety ruleset cannot be loaded or compiled."""
    def __init__(self, path: str, message: str):
        super().__init__(f"Cannot load safety lexicon {path}: {message}")
        self.path = path
        self.message = message
