"""Custom exceptions for mosaic splitting."""


class MosaicSplitError(Exception):
    """Base exception for mosaic splitting errors."""

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(message)
        self.user_message = user_message or message


class ImageReadError(MosaicSplitError):
    """Failed to read or decode an input image."""

    def __init__(self, name: str, detail: str = ""):
        msg = f"Could not read image: {name}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(
            msg,
            "Could not read image file. The file may be corrupted or in an unsupported format.",
        )
        self.name = name


class InvalidGridError(MosaicSplitError):
    """Grid string is not a positive rows x cols layout."""

    def __init__(self, value: str):
        super().__init__(
            f"Invalid grid: {value!r}",
            "Grid must be given as ROWSxCOLS with positive numbers, e.g. 3x3.",
        )


class TileEncodeError(MosaicSplitError):
    """A cropped tile could not be encoded."""

    def __init__(self, ext: str):
        super().__init__(
            f"Could not encode tile as {ext}",
            f"Could not encode image as {ext}. Try a different output format.",
        )


class ExportError(MosaicSplitError):
    """Writing exported panels failed."""

    def __init__(self, path: str, detail: str = ""):
        msg = f"Could not write {path}: {detail}" if detail else f"Could not write {path}"
        super().__init__(
            msg,
            "Could not write output files. Check that the output directory is writable.",
        )
