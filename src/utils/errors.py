"""Exception hierarchy for the lesson bank engine.

Every engine exception derives from :class:`LessonBankError` and may name
the collaborator that raised it (``provider_name``, e.g.
"openai_embedding" or "sqlite_lessons"):

    LessonBankError
    +-- ConfigurationError         config file or settings unusable
    +-- ProviderUnavailableError   external service down or unreachable
    +-- RateLimitError             provider rate limit hit
    +-- EmbeddingUnavailableError  no semantic fingerprint for this row
    +-- DocumentExtractionError    submission document unreadable
    +-- StoreError                 catalog / submission persistence failure
    |   +-- IntegrityViolationError  write refused by a table constraint
    +-- PermissionDeniedError      caller's role is insufficient
    +-- SubmissionStateError       illegal submission lifecycle transition

Searching never raises for an empty result, and the resolution workflow
returns failed ``ResolutionResult`` objects for anything it validates.
"""


class LessonBankError(Exception):
    """Base exception for all lesson bank errors.

    Subclasses only override ``default_message``.  ``str()`` prefixes the
    provider name in brackets, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self._message = message or self.default_message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# -- Configuration ----------------------------------------------------------

class ConfigurationError(LessonBankError):
    default_message = "Invalid or missing configuration"


# -- External collaborators -------------------------------------------------

class ProviderUnavailableError(LessonBankError):
    default_message = "External service is unavailable"


class RateLimitError(LessonBankError):
    default_message = "Rate limit exceeded"


class EmbeddingUnavailableError(LessonBankError):
    """No vector could be produced for a lesson or submission.

    Callers treat this as "no semantic signal" and fall back to hash and
    lexical matching.
    """

    default_message = "Embedding is unavailable"


class DocumentExtractionError(LessonBankError):
    default_message = "Document extraction failed"


# -- Persistence ------------------------------------------------------------

class StoreError(LessonBankError):
    default_message = "Store operation failed"


class IntegrityViolationError(StoreError):
    """A write rejected by a schema constraint or trigger.

    Self-referencing canonical mappings, scores outside ``[0, 1]``,
    deleting a lesson that has no archive copy, or touching an archive row.
    """

    default_message = "Write rejected by integrity constraint"


# -- Workflow ---------------------------------------------------------------

class PermissionDeniedError(LessonBankError):
    default_message = "Permission denied"


class SubmissionStateError(LessonBankError):
    default_message = "Invalid submission state transition"
