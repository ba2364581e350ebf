"""Debug visualization utilities for mosaic splitting."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import cv2
import numpy as np

from .models import CropConfig
from .noise import content_mask
from .slicing import tile_rectangles

if TYPE_CHECKING:
    from .models import ContentBounds, CropRegion, GridConfig, SourceImage, Tile


def _to_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img.copy()


class DebugVisualizer:
    """Saves debug images for each mosaic and tile that is processed."""

    def __init__(
        self,
        output_dir: str | Path,
        plot_profiles: bool = False,
        config: CropConfig | None = None,
    ):
        self.output_dir = Path(output_dir)
        if self.output_dir.exists():
            # Backup existing debug dir before cleaning
            backup_dir = self.output_dir.with_suffix(".bak")
            if backup_dir.exists():
                import shutil

                shutil.rmtree(backup_dir)
            self.output_dir.rename(backup_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.plot_profiles = plot_profiles
        self.config = config or CropConfig()
        self.step = 0
        self.prefix = "mosaic"

    def _save(self, name: str, img: np.ndarray):
        self.step += 1
        filename = f"{self.step:03d}_{self.prefix}_{name}.png"
        cv2.imwrite(str(self.output_dir / filename), img)

    def save_grid(self, source: SourceImage, grid: GridConfig):
        """Save the source with the grid partition drawn over it."""
        self.prefix = source.name.split(".")[0] or "mosaic"
        vis = _to_bgr(source.pixels)
        for row, col, x, y, part_w, part_h in tile_rectangles(
            source.width, source.height, grid.rows, grid.cols
        ):
            top_left = (int(round(x)), int(round(y)))
            bottom_right = (int(round(x + part_w)) - 1, int(round(y + part_h)) - 1)
            cv2.rectangle(vis, top_left, bottom_right, (255, 0, 255), 2)
            cv2.putText(
                vis,
                f"{row},{col}",
                (top_left[0] + 6, top_left[1] + 24),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.7,
                (255, 0, 255),
                2,
            )
        self._save("grid", vis)

    def save_tile_bounds(self, tile: Tile, bounds: ContentBounds, region: CropRegion):
        """Save a tile with detected bounds (green) and crop region (red)."""
        vis = _to_bgr(tile.pixels)

        # Dim everything classified as noise so seams stand out
        noise = ~content_mask(tile.pixels, self.config.noise)
        overlay = vis.copy()
        overlay[noise] = (255, 255, 0)
        cv2.addWeighted(overlay, 0.3, vis, 0.7, 0, vis)

        cv2.rectangle(
            vis, (bounds.min_x, bounds.min_y), (bounds.max_x, bounds.max_y), (0, 255, 0), 1
        )
        cv2.rectangle(
            vis,
            (region.x, region.y),
            (region.x + region.width - 1, region.y + region.height - 1),
            (0, 0, 255),
            1,
        )
        self._save(f"tile_{tile.row}_{tile.col}", vis)

        if self.plot_profiles:
            self.save_density_profile(tile, bounds)

    def save_density_profile(self, tile: Tile, bounds: ContentBounds):
        """Plot per-row and per-column content density against the threshold."""
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import pandas as pd

        density_threshold = self.config.density_threshold
        content = content_mask(tile.pixels, self.config.noise)

        rows = pd.DataFrame({"y": range(tile.height), "density": content.mean(axis=1)})
        cols = pd.DataFrame(
            {
                "x": range(tile.width),
                "density": content[bounds.min_y : bounds.max_y + 1].mean(axis=0),
            }
        )

        fig, axes = plt.subplots(1, 2, figsize=(10, 3))
        axes[0].plot(rows["y"], rows["density"])
        axes[0].axvline(x=bounds.min_y, color="green", linestyle="--", label=f"min_y={bounds.min_y}")
        axes[0].axvline(x=bounds.max_y, color="green", linestyle=":", label=f"max_y={bounds.max_y}")
        axes[0].set_xlabel("Row")
        axes[0].set_title("Row content density")

        axes[1].plot(cols["x"], cols["density"], color="orange")
        axes[1].axvline(x=bounds.min_x, color="green", linestyle="--", label=f"min_x={bounds.min_x}")
        axes[1].axvline(x=bounds.max_x, color="green", linestyle=":", label=f"max_x={bounds.max_x}")
        axes[1].set_xlabel("Column")
        axes[1].set_title("Column content density")

        for ax in axes:
            ax.axhline(
                y=density_threshold, color="red", linestyle="--", label=f"threshold={density_threshold}"
            )
            ax.set_ylim(0, 1.05)
            ax.legend(fontsize="small")

        fig.tight_layout()
        self.step += 1
        fig.savefig(
            self.output_dir / f"{self.step:03d}_{self.prefix}_profile_{tile.row}_{tile.col}.png",
            dpi=100,
        )
        plt.close(fig)
