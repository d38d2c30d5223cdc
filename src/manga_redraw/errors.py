"""Exception types shared by the editor, the orchestrator and the API."""


class MangaRedrawError(Exception):
    """Base class for errors raised by this package."""


class ImageDecodeError(MangaRedrawError):
    """Image bytes that cannot be decoded, or a mime type that is not accepted."""


class SubmitRejected(MangaRedrawError):
    """A submit refused before anything is sent to the network."""


class InpaintingError(MangaRedrawError):
    """The inpainting collaborator failed or answered with something unusable."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
