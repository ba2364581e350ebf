"""Entry point for running mosaic_split as a module."""

from .cli import main

if __name__ == "__main__":
    main()
