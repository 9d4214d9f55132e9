"""
Exception types shared by the loader and the normalization pipeline.
"""


class ModelPreviewError(Exception):
    """Base class for all errors raised by this package."""


class AssetDecodeError(ModelPreviewError):
    """The loader could not produce a vertex buffer from the given source."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Failed to decode '{source}': {message}")
        self.source = source


class NormalizationStepError(ModelPreviewError):
    """
    A normalization step hit malformed attribute data.

    Raised inside the pipeline and caught there; callers of the pipeline never see it.
    """

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"[{step}] {message}")
        self.step = step
