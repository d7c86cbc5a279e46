class MarkerPipelineError(Exception):
    """Base class for detection-cycle failures."""


class ConfigurationError(MarkerPipelineError):
    """Detector config or camera model missing or unusable."""


class MalformedFrameError(MarkerPipelineError):
    """Frame dimensions or pixel buffer do not describe a valid image."""
