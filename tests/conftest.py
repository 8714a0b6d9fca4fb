import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def vertical_edge_image():
    """16x16 image, left half black, right half white (edge at x=8)."""
    img = np.zeros((16, 16), dtype=np.uint8)
    img[:, 8:] = 255
    return img


@pytest.fixture
def random_image(rng):
    return rng.integers(0, 256, size=(24, 32), dtype=np.uint8)
