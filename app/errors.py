from __future__ import annotations


class GenerationError(Exception):
    """Base class for every failure of the scribble-to-image pipeline.

    Callers treat all subclasses as one internal failure kind; the message is
    the part that reaches the user.
    """

    default_message = "Failed to process image generation request."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.default_message


class ConfigurationError(GenerationError):
    default_message = "Replicate API token not configured on server."


class ConversionError(GenerationError):
    default_message = "Failed to convert SVG drawing to image for AI processing."


class SubmissionRejectedError(GenerationError):
    default_message = "Prediction failed immediately."


class PredictionFailedError(GenerationError):
    default_message = "Prediction failed after processing."


class PredictionCanceledError(GenerationError):
    default_message = "Prediction was canceled."


class PredictionTimeoutError(GenerationError):
    default_message = "Prediction did not finish in time."


class UnexpectedOutputError(GenerationError):
    default_message = "Prediction completed, but the output had an unexpected shape."


class UpstreamTransportError(GenerationError):
    default_message = "Could not reach the prediction service."
