"""Error types raised by the photo splitting pipeline."""


class MultiCropError(Exception):
    """Base class for all pipeline errors."""


class CannotLoadImage(MultiCropError):
    """The source image is missing, unsupported, or cannot be decoded."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = str(path)
        self.reason = reason
        message = f"Cannot load image: {self.path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class Cancelled(MultiCropError):
    """Detection was aborted through its cancellation event."""

    def __init__(self, stage: str = "") -> None:
        self.stage = stage
        super().__init__(f"Detection cancelled{f' at {stage}' if stage else ''}")


class NoPhotosFound(MultiCropError):
    """Nothing could be written because no photos were given or saved."""

    def __init__(self, message: str = "No photos found") -> None:
        super().__init__(message)
