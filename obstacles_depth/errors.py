"""
Error kinds raised by the obstacle pipeline and the service facade.
"""


class ObstaclesDepthError(Exception):
    """Base class for every error raised by obstacles_depth."""


class ConfigValidationError(ObstaclesDepthError, ValueError):
    """A ClusterConfig field is outside its documented range."""


# The orchestrator reports config failures under this name.
InvalidConfigError = ConfigValidationError


class DepthSourceError(ObstaclesDepthError):
    """The depth source could not be resolved or failed to deliver a frame."""


class ProjectionError(ObstaclesDepthError, ValueError):
    """Intrinsics are malformed or the depth map cannot be projected."""


class InsufficientPlaneDataError(ObstaclesDepthError, RuntimeError):
    """Too few ground candidates to fit a plane."""


class ClusteringError(ObstaclesDepthError):
    """Clustering was asked to run with invalid parameters."""


class EmptyDepthDataError(ObstaclesDepthError):
    """The fallback estimator found no valid depth readings."""


class UnsupportedError(ObstaclesDepthError, NotImplementedError):
    """The service does not implement this capability."""

    def __init__(self, operation: str):
        super().__init__(f"obstacles depth service does not implement {operation}")
        self.operation = operation
