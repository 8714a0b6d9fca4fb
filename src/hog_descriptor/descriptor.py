"""
HOG descriptor container and JSON persistence.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple, Union
import numpy as np

NBINS = 9


class DescriptorError(Exception):
    """Base class for descriptor persistence failures."""


class DescriptorIOError(DescriptorError):
    """Descriptor file could not be read or written."""


class DescriptorFormatError(DescriptorError, ValueError):
    """Stored descriptor content does not have the expected shape."""


def block_grid_shape(image_width: int, image_height: int,
                     cell_size: int, block_size: int) -> Tuple[int, int]:
    """
    Number of block positions (blocks_x, blocks_y) for an image.

    Trailing partial cells are dropped; either side is 0 when the image
    has fewer than block_size cells along that axis.
    """
    cells_x = image_width // cell_size
    cells_y = image_height // cell_size
    return max(cells_x - block_size + 1, 0), max(cells_y - block_size + 1, 0)


@dataclass(eq=False)
class Descriptor:
    """
    HOG descriptor of one image.

    data holds one L2-normalized block vector per row, row-major over
    the block grid.
    """
    image_width: int
    image_height: int
    cell_size: int = 8
    block_size: int = 2
    data: np.ndarray = field(default=None)

    def __post_init__(self):
        if self.cell_size < 1:
            raise ValueError(f"'cell_size' must be >= 1, got {self.cell_size}")
        if self.block_size < 1:
            raise ValueError(f"'block_size' must be >= 1, got {self.block_size}")

        length = self.block_length
        blocks_x, blocks_y = self.block_grid
        expected = blocks_x * blocks_y
        if self.data is None:
            self.data = np.zeros((expected, length), dtype=np.float64)
            return
        data = np.asarray(self.data, dtype=np.float64)
        if data.size == 0:
            data = data.reshape(0, length)
        elif data.ndim != 2 or data.shape[1] != length:
            raise ValueError(f"Expected block vectors of shape (N, {length}), got {data.shape}")
        if data.shape[0] != expected:
            raise ValueError(
                f"'data' has {data.shape[0]} blocks, expected {expected} "
                f"for a {self.image_width}x{self.image_height} image"
            )
        self.data = data

    @property
    def block_length(self) -> int:
        return NBINS * self.block_size * self.block_size

    @property
    def dimensions(self) -> Tuple[int, int]:
        return self.image_width, self.image_height

    @property
    def block_grid(self) -> Tuple[int, int]:
        return block_grid_shape(self.image_width, self.image_height,
                                self.cell_size, self.block_size)

    @property
    def num_blocks(self) -> int:
        return int(self.data.shape[0])

    def block(self, x: int, y: int) -> np.ndarray:
        """Block vector at block-grid position (x, y)."""
        blocks_x, _ = self.block_grid
        return self.data[y * blocks_x + x]

    def feature_vector(self) -> np.ndarray:
        """Flattened descriptor (num_blocks * block_length,)."""
        return self.data.ravel().copy()

    def to_dict(self) -> Dict:
        return {
            'dimensions': [int(self.image_width), int(self.image_height)],
            'cell_size': int(self.cell_size),
            'block_size': int(self.block_size),
            'data': self.data.tolist(),
        }

    @classmethod
    def from_dict(cls, payload) -> "Descriptor":
        """
        Build a descriptor from its serialized form.

        Raises:
            DescriptorFormatError: if any field is missing, mistyped or
                inconsistent with the others
        """
        if not isinstance(payload, dict):
            raise DescriptorFormatError(f"Expected a JSON object, got {type(payload).__name__}")

        missing = [k for k in ('dimensions', 'cell_size', 'block_size', 'data') if k not in payload]
        if missing:
            raise DescriptorFormatError(f"Missing fields: {', '.join(missing)}")

        dims = payload['dimensions']
        if not isinstance(dims, (list, tuple)) or len(dims) != 2:
            raise DescriptorFormatError(f"'dimensions' must be a [width, height] pair, got {dims!r}")
        width, height = dims
        if not (_is_int(width) and _is_int(height)) or width < 0 or height < 0:
            raise DescriptorFormatError(f"'dimensions' must hold non-negative integers, got {dims!r}")

        cell_size = payload['cell_size']
        block_size = payload['block_size']
        for name, value in (('cell_size', cell_size), ('block_size', block_size)):
            if not _is_int(value) or value < 1:
                raise DescriptorFormatError(f"'{name}' must be a positive integer, got {value!r}")

        rows = payload['data']
        if not isinstance(rows, list):
            raise DescriptorFormatError("'data' must be an array of arrays")

        length = NBINS * block_size * block_size
        for i, row in enumerate(rows):
            if not isinstance(row, list):
                raise DescriptorFormatError(f"'data[{i}]' is not an array")
            if len(row) != length:
                raise DescriptorFormatError(
                    f"'data[{i}]' has {len(row)} values, expected {length}"
                )
            if not all(_is_number(v) for v in row):
                raise DescriptorFormatError(f"'data[{i}]' contains non-numeric values")

        data = np.array(rows, dtype=np.float64).reshape(len(rows), length)
        try:
            return cls(image_width=width, image_height=height,
                       cell_size=cell_size, block_size=block_size, data=data)
        except ValueError as e:
            raise DescriptorFormatError(str(e)) from e

    def __eq__(self, other):
        if not isinstance(other, Descriptor):
            return NotImplemented
        return (
            self.dimensions == other.dimensions
            and self.cell_size == other.cell_size
            and self.block_size == other.block_size
            and np.array_equal(self.data, other.data)
        )


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def save_descriptor(descriptor: Descriptor, output_path: Union[str, Path]) -> None:
    """
    Save a descriptor as JSON.

    Args:
        descriptor: Descriptor to save
        output_path: Destination .json file (parent directories are created)

    Raises:
        DescriptorIOError: if the file cannot be written
    """
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(descriptor.to_dict(), f)
    except OSError as e:
        raise DescriptorIOError(f"Cannot write descriptor to {path}: {e}") from e


def load_descriptor(input_path: Union[str, Path]) -> Descriptor:
    """
    Load a descriptor saved by save_descriptor().

    Raises:
        DescriptorIOError: if the file cannot be read
        DescriptorFormatError: if the content is not a valid descriptor
    """
    path = Path(input_path)
    try:
        with open(path, 'r') as f:
            text = f.read()
    except OSError as e:
        raise DescriptorIOError(f"Cannot read descriptor from {path}: {e}") from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DescriptorFormatError(f"Invalid JSON in {path}: {e}") from e

    return Descriptor.from_dict(payload)
