"""
HOG visualization module.
Renders descriptors back into images of oriented line segments.
"""
from pathlib import Path
from typing import Optional
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from hog_descriptor.descriptor import NBINS, Descriptor
from hog_descriptor.hog_extractor import BIN_WIDTH
from hog_descriptor.utils import ensure_dir

LINE_SAMPLES = 16
MIN_STRENGTH = 0.1


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (76.5 -> 77, -0.5 -> -1)."""
    return int(np.copysign(np.floor(abs(value) + 0.5), value))


def draw_line(canvas: np.ndarray, x0: float, y0: float, x1: float, y1: float,
              intensity: int, samples: int = LINE_SAMPLES) -> None:
    """
    Draw a line segment by sampling evenly spaced points between the ends.

    Points falling outside the canvas are skipped; later writes
    overwrite earlier ones.
    """
    h, w = canvas.shape
    for i in range(samples):
        t = i / (samples - 1) if samples > 1 else 0.0
        xi = round_half_away(x0 + (x1 - x0) * t)
        yi = round_half_away(y0 + (y1 - y0) * t)
        if 0 <= xi < w and 0 <= yi < h:
            canvas[yi, xi] = intensity


def render_descriptor(descriptor: Descriptor, strength_scale: float = 1.0) -> np.ndarray:
    """
    Draw the dominant gradient orientations of a descriptor.

    Each block contributes the histogram of its top-left cell: one line
    per bin through the cell centre, at bin * 20 degrees (counter-clockwise
    on screen), brighter for stronger bins.

    Args:
        descriptor: HOG descriptor
        strength_scale: Multiplier applied to bin values before thresholding

    Returns:
        Rendering (image_height, image_width), uint8
    """
    canvas = np.zeros((descriptor.image_height, descriptor.image_width), dtype=np.uint8)
    blocks_x, blocks_y = descriptor.block_grid
    cell = descriptor.cell_size
    half = cell / 2.0

    for by in range(blocks_y):
        for bx in range(blocks_x):
            hist = descriptor.data[by * blocks_x + bx, :NBINS]
            cx = bx * cell + half
            cy = by * cell + half

            for b in range(NBINS):
                strength = hist[b] * strength_scale
                if strength < MIN_STRENGTH:
                    continue
                theta = np.deg2rad(b * BIN_WIDTH)
                dx = np.cos(theta) * half
                dy = -np.sin(theta) * half  # image y axis points down
                intensity = min(255, round_half_away(255 * strength))
                draw_line(canvas, cx - dx, cy - dy, cx + dx, cy + dy, intensity)

    return canvas


def plot_hog_overlay(image: np.ndarray,
                     rendering: np.ndarray,
                     output_path: Path,
                     title: Optional[str] = None) -> None:
    """
    Save the input image and its HOG rendering side by side.

    Args:
        image: Grayscale input image
        rendering: Output of render_descriptor()
        output_path: Path to save visualization
        title: Optional figure title
    """
    output_path = Path(output_path)
    ensure_dir(output_path.parent)

    fig, axes = plt.subplots(1, 2, figsize=(12, 6))
    fig.suptitle(title or 'HOG Visualization', fontsize=16, fontweight='bold')

    axes[0].imshow(image, cmap='gray', vmin=0, vmax=255)
    axes[0].set_title('Input Image', fontsize=13, fontweight='bold')
    axes[0].axis('off')

    axes[1].imshow(rendering, cmap='gray', vmin=0, vmax=255)
    axes[1].set_title('HOG Orientations', fontsize=13, fontweight='bold')
    axes[1].axis('off')

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"✓ Saved HOG visualization to {output_path}")
