"""Recognition error taxonomy."""

from typing import List, Optional

from label_ocr.schemas import ProviderId

UNREACHABLE = "unreachable"
TIMEOUT = "timeout"
AUTH = "auth"
EMPTY = "empty"
INVALID_IMAGE = "invalid_image"
NO_ENGINE_SUCCEEDED = "no engine succeeded"


class RecognitionError(Exception):
    """
    A single engine failed to produce a transcription.

    `provider` and `model` name the engine / tier that failed so that the
    orchestrator logs stay readable after several escalation steps.
    """

    def __init__(
        self,
        reason: str,
        message: str = "",
        provider: Optional[ProviderId] = None,
        model: Optional[str] = None,
    ):
        self.reason = reason
        self.provider = provider
        self.model = model
        self.message = message or reason
        super().__init__(self._format())

    def _format(self) -> str:
        where = ""
        if self.provider is not None:
            where = f" [{self.provider.value}"
            where += f" / {self.model}]" if self.model else "]"
        return f"{self.reason}{where}: {self.message}"


class ProviderUnavailable(RecognitionError):
    """Network or authentication failure."""


class RecognitionTimeout(RecognitionError):
    def __init__(self, message: str = "", provider=None, model=None):
        super().__init__(TIMEOUT, message, provider=provider, model=model)


class EmptyResult(RecognitionError):
    """The engine answered successfully but returned no text."""

    def __init__(self, message: str = "", provider=None, model=None):
        super().__init__(EMPTY, message or "empty transcription", provider=provider, model=model)


class InvalidImage(RecognitionError):
    def __init__(self, message: str = "", provider=None, model=None):
        super().__init__(INVALID_IMAGE, message, provider=provider, model=model)


class AllEnginesFailed(RecognitionError):
    """Terminal error: no engine produced a usable result."""

    def __init__(self, failures: Optional[List[RecognitionError]] = None):
        self.failures = list(failures or [])
        details = "; ".join(str(f) for f in self.failures) or "no engine attempted"
        super().__init__(NO_ENGINE_SUCCEEDED, details)
