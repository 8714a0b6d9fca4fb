"""
HOG (Histogram of Oriented Gradients) feature extractor.
Extracts shape and edge information from grayscale images.
"""
from typing import Optional, Tuple
import numpy as np

from hog_descriptor.descriptor import NBINS, Descriptor, block_grid_shape
from hog_descriptor.gradient import GradientField, compute_gradient_field
from hog_descriptor.kernel import Kernel, smooth

BIN_WIDTH = 180.0 / NBINS
NORM_EPSILON = 1e-5


def cell_grid_shape(image_width: int, image_height: int, cell_size: int) -> Tuple[int, int]:
    """Number of whole cells (cells_x, cells_y); partial cells are dropped."""
    return image_width // cell_size, image_height // cell_size


def compute_cell_histograms(field: GradientField, cell_size: int = 8) -> np.ndarray:
    """
    Accumulate a 9-bin orientation histogram per cell.

    Each pixel's magnitude is split between its two nearest bins in
    proportion to angular distance. Bins wrap, so orientations close to
    180 degrees share weight between bin 8 and bin 0.

    Args:
        field: Gradient field of the image
        cell_size: Cell side length in pixels

    Returns:
        Histograms (cells_y * cells_x, 9), row y * cells_x + x
    """
    h, w = field.shape
    cells_x, cells_y = cell_grid_shape(w, h, cell_size)
    hists = np.zeros((cells_y * cells_x, NBINS), dtype=np.float64)
    if cells_x == 0 or cells_y == 0:
        return hists

    # Crop trailing partial cells
    mag = field.magnitude[:cells_y * cell_size, :cells_x * cell_size]
    ang = field.orientation[:cells_y * cell_size, :cells_x * cell_size]

    bin_pos = ang / BIN_WIDTH
    lower = np.floor(bin_pos)
    share = bin_pos - lower
    lower = lower.astype(np.int64)

    rows, cols = np.indices(mag.shape)
    cell_idx = (rows // cell_size) * cells_x + (cols // cell_size)

    np.add.at(hists, (cell_idx, lower % NBINS), (1.0 - share) * mag)
    np.add.at(hists, (cell_idx, (lower + 1) % NBINS), share * mag)
    return hists


def normalize_blocks(hists: np.ndarray, cells_x: int, cells_y: int,
                     block_size: int = 2) -> np.ndarray:
    """
    Group cells into overlapping blocks and L2-normalize each block.

    Block (x, y) concatenates the histograms of cells (x + i, y + j),
    0 <= i, j < block_size, in row-major order (top-left, top-right,
    bottom-left, bottom-right for 2x2 blocks).

    Args:
        hists: Cell histograms (cells_y * cells_x, 9)
        cells_x: Cells per row
        cells_y: Cells per column
        block_size: Cells per block side

    Returns:
        Block vectors (blocks_y * blocks_x, 9 * block_size**2), row-major
    """
    hists = np.asarray(hists, dtype=np.float64)
    if hists.shape != (cells_x * cells_y, NBINS):
        raise ValueError(
            f"Expected histograms of shape ({cells_x * cells_y}, {NBINS}), got {hists.shape}"
        )

    length = NBINS * block_size * block_size
    blocks_x = max(cells_x - block_size + 1, 0)
    blocks_y = max(cells_y - block_size + 1, 0)
    if blocks_x == 0 or blocks_y == 0:
        return np.zeros((0, length), dtype=np.float64)

    grid = hists.reshape(cells_y, cells_x, NBINS)
    parts = [
        grid[dy:dy + blocks_y, dx:dx + blocks_x]
        for dy in range(block_size)
        for dx in range(block_size)
    ]
    blocks = np.concatenate(parts, axis=-1).reshape(blocks_y * blocks_x, length)

    norms = np.sqrt(np.sum(blocks**2, axis=1, keepdims=True) + NORM_EPSILON)
    return blocks / norms


class HOGExtractor:
    """
    HOG descriptor extractor.

    Pipeline: optional Gaussian smoothing -> Sobel gradient field ->
    per-cell orientation histograms -> L2-normalized overlapping blocks.
    """

    def __init__(self,
                 cell_size: int = 8,
                 block_size: int = 2,
                 smoothing: Optional[Kernel] = None):
        """
        Initialize HOG extractor.

        Args:
            cell_size: Size of each cell in pixels (8x8 by default)
            block_size: Number of cells per block side (2x2 = 16x16 pixels)
            smoothing: Optional kernel applied to the image before gradients
        """
        if cell_size < 1:
            raise ValueError(f"cell_size must be >= 1, got {cell_size}")
        if block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {block_size}")
        self.cell_size = cell_size
        self.block_size = block_size
        self.smoothing = smoothing

    @classmethod
    def from_config(cls, config: dict) -> "HOGExtractor":
        """Build an extractor from the 'hog' and 'smoothing' config sections."""
        hog_config = config.get('hog') or {}
        smooth_config = config.get('smoothing') or {}

        smoothing = None
        if smooth_config.get('enabled', False):
            smoothing = Kernel.gaussian(
                int(smooth_config.get('kernel_size', 3)),
                float(smooth_config.get('sigma', 1.0))
            )

        return cls(
            cell_size=int(hog_config.get('cell_size', 8)),
            block_size=int(hog_config.get('block_size', 2)),
            smoothing=smoothing
        )

    def gradients(self, image: np.ndarray) -> GradientField:
        """Gradient field of the (optionally smoothed) image."""
        if image.ndim != 2:
            raise ValueError(f"Expected 2D grayscale image, got shape {image.shape}")
        if self.smoothing is not None:
            image = smooth(image, self.smoothing)
        return compute_gradient_field(image)

    def extract(self, image: np.ndarray) -> Descriptor:
        """
        Extract the HOG descriptor of an image.

        Args:
            image: Grayscale image (H, W), uint8

        Returns:
            Descriptor tagged with the image dimensions
        """
        field = self.gradients(image)
        h, w = image.shape
        cells_x, cells_y = cell_grid_shape(w, h, self.cell_size)

        hists = compute_cell_histograms(field, self.cell_size)
        blocks = normalize_blocks(hists, cells_x, cells_y, self.block_size)

        return Descriptor(
            image_width=w,
            image_height=h,
            cell_size=self.cell_size,
            block_size=self.block_size,
            data=blocks
        )

    def get_feature_dim(self, image_width: int, image_height: int) -> int:
        """Length of the flattened descriptor for an image of the given size."""
        blocks_x, blocks_y = block_grid_shape(image_width, image_height,
                                              self.cell_size, self.block_size)
        return blocks_x * blocks_y * NBINS * self.block_size * self.block_size
