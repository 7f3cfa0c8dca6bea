"""
Error taxonomy for the horror generation pipeline.

Every error raised inside an operation is caught at the WorkflowService
boundary and turned into the single user-facing error message.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class ReadError(PipelineError):
    """The uploaded binary could not be fully read."""


class DecodeError(PipelineError):
    """An encoded image is not a well-formed data URL."""


class RemoteServiceError(PipelineError):
    """The generative service failed, rejected the call, or returned nothing usable."""


class PollTimeoutError(PipelineError):
    """A status poll on the video job did not answer in time."""


class ValidationError(PipelineError, ValueError):
    """An operation was invoked without its prerequisite state."""
