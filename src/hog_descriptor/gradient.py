"""
Gradient field module.
Computes per-pixel gradient magnitude and unsigned orientation.
"""
from dataclasses import dataclass
import numpy as np

from hog_descriptor.kernel import Kernel, SobelDirection


@dataclass(frozen=True)
class GradientField:
    """Per-pixel gradient magnitude (>= 0) and orientation in [0, 180) degrees."""
    magnitude: np.ndarray
    orientation: np.ndarray

    @property
    def shape(self):
        return self.magnitude.shape


def fold_orientation(angles):
    """
    Fold signed angles from atan2 (degrees) into the half circle [0, 180).

    Opposite gradient directions map to the same orientation.
    """
    angles_arr = np.asarray(angles, dtype=np.float64)
    folded = np.where(angles_arr < 0.0, angles_arr + 180.0, angles_arr)
    # Second pass catches both 180.0 itself and -180.0 after the first shift
    folded = np.where(folded >= 180.0, folded - 180.0, folded)
    if np.ndim(angles) == 0:
        return float(folded)
    return folded


def compute_gradient_field(image: np.ndarray) -> GradientField:
    """
    Compute the gradient field of a grayscale image.

    Args:
        image: Grayscale image (H, W), uint8

    Returns:
        GradientField with arrays of shape (H, W)
    """
    if image.ndim != 2:
        raise ValueError(f"Expected 2D grayscale image, got shape {image.shape}")

    grad_x = Kernel.sobel(SobelDirection.HORIZONTAL).convolve(image)
    grad_y = Kernel.sobel(SobelDirection.VERTICAL).convolve(image)

    magnitude = np.sqrt(grad_x**2 + grad_y**2)
    orientation = fold_orientation(np.degrees(np.arctan2(grad_y, grad_x)))

    return GradientField(magnitude=magnitude, orientation=orientation)


def gradient_magnitude_image(image: np.ndarray) -> np.ndarray:
    """
    Render gradient magnitude as an 8-bit edge map.

    Args:
        image: Grayscale image (H, W), uint8

    Returns:
        Edge map (H, W), uint8, magnitudes above 255 saturated
    """
    field = compute_gradient_field(image)
    return np.minimum(field.magnitude, 255.0).astype(np.uint8)
