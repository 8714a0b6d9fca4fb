"""
Utility functions for the HOG pipeline.
Configuration loading, image file I/O and directory scanning.
"""
import copy
from pathlib import Path
from typing import Dict, Generator, List, Optional, Tuple, Union
import numpy as np
import cv2
import yaml
from PIL import Image

DEFAULT_CONFIG = {
    'hog': {
        'cell_size': 8,
        'block_size': 2,
    },
    'smoothing': {
        'enabled': False,
        'kernel_size': 3,
        'sigma': 1.0,
    },
    'visualization': {
        'strength_scale': 1.0,
    },
    'data': {
        'image_extensions': ['.png', '.jpg', '.jpeg', '.bmp', '.gif'],
    },
}


def _merge(base: Dict, overrides: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        # An empty YAML section ("hog:" with every key commented out) loads as None
        if value is None and isinstance(merged.get(key), dict):
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Path] = None) -> dict:
    """
    Load configuration from YAML file.

    Keys missing from the file keep their DEFAULT_CONFIG values.

    Args:
        config_path: Path to config.yaml (None = defaults only)

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, 'r') as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return _merge(DEFAULT_CONFIG, loaded)


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from file as 8-bit grayscale.

    Args:
        image_path: Path to image file

    Returns:
        Image as numpy array (H, W), uint8

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the file cannot be decoded
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    img = cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)
    if img is None:
        # Try with PIL as fallback (e.g. GIF, which OpenCV cannot read)
        try:
            with Image.open(image_path) as pil_img:
                img = np.array(pil_img.convert('L'))
        except OSError as e:
            raise ValueError(f"Failed to decode {image_path}: {e}") from e

    return img


def save_image(image: np.ndarray, output_path: Union[str, Path]) -> bool:
    """
    Save an image to file.

    Args:
        image: Image as numpy array
        output_path: Path to save image (format follows the extension)

    Returns:
        True if successful, False otherwise
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return bool(cv2.imwrite(str(output_path), image))
    except (OSError, cv2.error) as e:
        print(f"Error saving image to {output_path}: {e}")
        return False


def ensure_dir(path: Path) -> None:
    """Ensure directory exists."""
    Path(path).mkdir(parents=True, exist_ok=True)


def collect_image_paths(data_dir: Path, extensions: List[str]) -> List[Path]:
    """
    Collect all image paths below a directory, sorted for stable output.

    Args:
        data_dir: Directory to scan recursively
        extensions: Accepted file suffixes (case-insensitive)

    Returns:
        List of image paths
    """
    data_dir = Path(data_dir)
    if not data_dir.exists():
        return []
    suffixes = {ext.lower() for ext in extensions}
    return sorted(p for p in data_dir.rglob("*") if p.is_file() and p.suffix.lower() in suffixes)


def image_generator(image_paths: List[Path]) -> Generator[Tuple[Optional[np.ndarray], Path], None, None]:
    """
    Generator that loads images one at a time for memory efficiency.

    Unreadable images are reported and yielded as None so the caller
    can count them.

    Args:
        image_paths: List of image file paths

    Yields:
        Tuple of (image or None, image_path)
    """
    for img_path in image_paths:
        try:
            img = load_image(img_path)
        except (FileNotFoundError, ValueError) as e:
            print(f"Warning: Failed to load {img_path}: {e}")
            img = None
        yield img, img_path
