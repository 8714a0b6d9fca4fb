"""
Convolution kernel module.
Weighted neighbourhood sums with replicate-edge boundary handling.
"""
from enum import Enum
from typing import Sequence
import numpy as np
import cv2


class SobelDirection(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Kernel:
    """
    Fixed-size 2D weight matrix.

    The same kernel type backs the Sobel gradient operators and the
    Gaussian smoothing filter. Weights are applied as a correlation
    (no flip), row-major over the matrix.
    """

    def __init__(self, height: int, width: int, content: Sequence[float]):
        """
        Initialize kernel.

        Args:
            height: Number of kernel rows
            width: Number of kernel columns
            content: height * width weights in row-major order
        """
        if height < 1 or width < 1:
            raise ValueError(f"Kernel size must be positive, got {height}x{width}")
        weights = np.asarray(content, dtype=np.float64).ravel()
        if weights.size != height * width:
            raise ValueError(
                f"Expected {height * width} weights for a {height}x{width} kernel, got {weights.size}"
            )
        self.height = height
        self.width = width
        self.weights = weights.reshape(height, width)

    @classmethod
    def sobel(cls, direction: SobelDirection) -> "Kernel":
        """3x3 Sobel operator."""
        if direction is SobelDirection.HORIZONTAL:
            content = [
                1.0, 2.0, 1.0,
                0.0, 0.0, 0.0,
                -1.0, -2.0, -1.0,
            ]
        else:
            content = [
                -1.0, 0.0, 1.0,
                -2.0, 0.0, 2.0,
                -1.0, 0.0, 1.0,
            ]
        return cls(3, 3, content)

    @classmethod
    def gaussian(cls, size: int, sigma: float) -> "Kernel":
        """
        Square Gaussian kernel normalized to sum to 1.

        Args:
            size: Side length in pixels
            sigma: Standard deviation in pixels

        Returns:
            Kernel of shape (size, size)
        """
        if size < 1:
            raise ValueError(f"Gaussian size must be >= 1, got {size}")
        if sigma <= 0:
            raise ValueError(f"Gaussian sigma must be > 0, got {sigma}")

        centre = size // 2
        d = np.arange(size, dtype=np.float64) - centre
        dy, dx = np.meshgrid(d, d, indexing="ij")
        weights = np.exp(-(dx**2 + dy**2) / (2.0 * sigma**2))
        weights /= weights.sum()
        return cls(size, size, weights)

    @property
    def shape(self):
        return self.height, self.width

    def apply(self, image: np.ndarray, x: int, y: int) -> float:
        """
        Weighted sum of the neighbourhood centred on pixel (x, y).

        Neighbour coordinates outside the image are clamped to the
        nearest edge. (x, y) itself must lie inside the image.

        Args:
            image: Grayscale image (H, W)
            x: Column index
            y: Row index

        Returns:
            Kernel response at (x, y)
        """
        h, w = image.shape[:2]
        offset_x = self.width // 2
        offset_y = self.height // 2

        total = 0.0
        for ky in range(self.height):
            img_y = min(max(y + ky - offset_y, 0), h - 1)
            for kx in range(self.width):
                img_x = min(max(x + kx - offset_x, 0), w - 1)
                total += float(image[img_y, img_x]) * self.weights[ky, kx]
        return total

    def convolve(self, image: np.ndarray) -> np.ndarray:
        """
        Apply the kernel to every pixel of an image.

        Equivalent to calling apply() for each (x, y).

        Args:
            image: Grayscale image (H, W)

        Returns:
            Response map (H, W), float64
        """
        if image.ndim != 2:
            raise ValueError(f"Expected 2D grayscale image, got shape {image.shape}")
        if image.size == 0:
            return np.zeros(image.shape, dtype=np.float64)

        src = image.astype(np.float64)
        # Anchor at (k // 2) on both axes so even-sized kernels line up with apply()
        anchor = (self.width // 2, self.height // 2)
        return cv2.filter2D(
            src,
            cv2.CV_64F,
            self.weights,
            anchor=anchor,
            borderType=cv2.BORDER_REPLICATE,
        )


def smooth(image: np.ndarray, kernel: Kernel) -> np.ndarray:
    """
    Filter an image and clamp the result back to the 8-bit range.

    Args:
        image: Grayscale image (H, W), uint8
        kernel: Smoothing kernel (normally Kernel.gaussian)

    Returns:
        Filtered image (H, W), uint8
    """
    filtered = kernel.convolve(image)
    return np.clip(filtered, 0.0, 255.0).astype(np.uint8)
