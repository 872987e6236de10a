"""
Error kinds raised by the pixel pipeline.
All of them derive from PixelsImageError so callers can catch the family.
"""


class PixelsImageError(Exception):
    """Base class for every pipeline error."""


class UnknownFilterError(PixelsImageError, KeyError):
    """A filter token that the registry does not know."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(token)

    def __str__(self) -> str:
        return f"{self.token} is not a valid filter!"


class DecodeError(PixelsImageError):
    """The image could not be loaded or decoded."""


class CorsDecodeError(DecodeError):
    """A remote image failed to load, most likely blocked by the remote server."""

    GUIDANCE = (
        "PixelsImage: There was a CORS error while loading the image. "
        "Please consider saving it on your local server or configuring "
        "the CORS rules of the remote server."
    )

    def __init__(self, src: str):
        self.src = src
        super().__init__(self.GUIDANCE)


class NoRenderingContextError(PixelsImageError, RuntimeError):
    """The surface could not hand out a 2D drawing context."""


class NotInGraphicalEnvironmentError(PixelsImageError, RuntimeError):
    """No surface-creation capability exists in this process."""
