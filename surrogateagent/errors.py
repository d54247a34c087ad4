class SurrogateAgentError(Exception):
    """Base class for errors raised by the agent layer."""


class CompletionError(SurrogateAgentError, RuntimeError):
    """The completion endpoint failed or returned nothing usable."""


class IntentParseError(SurrogateAgentError, ValueError):
    """The completion text did not contain a parseable intent object."""

    def __init__(self, message: str, *, candidate: str = "") -> None:
        super().__init__(message)
        self.candidate = candidate


class ArtifactNotFoundError(SurrogateAgentError, LookupError):
    pass


class ArtifactTransitionError(SurrogateAgentError):
    def __init__(self, event_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Event '{event_id}' is already {current}; it cannot become {target}."
        )
        self.event_id = event_id
        self.current = current
        self.target = target


class SpeechSynthesisError(SurrogateAgentError, RuntimeError):
    pass


class ChatNotFoundError(SurrogateAgentError, LookupError):
    pass


class EmptyCompletionError(CompletionError):
    """The completion endpoint answered but the message content was blank."""
