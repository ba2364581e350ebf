"""Grid splitting and border cropping for AI-generated mosaic images."""

__version__ = "0.1.0"

_LAZY = {
    "process_batch": ".batch",
    "split_image": ".batch",
    "decode_image": ".batch",
    "ImageSource": ".batch",
    "SplitSession": ".batch",
    "detect_content_bounds": ".detection",
    "crop_to_content": ".detection",
    "crop_tile": ".detection",
    "encode_tile": ".detection",
    "slice_grid": ".slicing",
    "is_noise": ".noise",
    "noise_mask": ".noise",
    "BatchResult": ".models",
    "ContentBounds": ".models",
    "CropConfig": ".models",
    "CroppedTile": ".models",
    "GridConfig": ".models",
    "GRID_OPTIONS": ".models",
    "NoiseThresholds": ".models",
    "SplitResult": ".models",
}


def __getattr__(name):
    """Lazy import to avoid loading cv2 for CLI subcommands that don't need it."""
    if name in _LAZY:
        import importlib

        module = importlib.import_module(_LAZY[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_LAZY)
