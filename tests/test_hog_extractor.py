import numpy as np
import pytest

from hog_descriptor.gradient import GradientField, compute_gradient_field
from hog_descriptor.hog_extractor import (
    HOGExtractor,
    cell_grid_shape,
    compute_cell_histograms,
    normalize_blocks,
)


def _uniform_field(shape, magnitude, orientation):
    return GradientField(
        magnitude=np.full(shape, magnitude, dtype=np.float64),
        orientation=np.full(shape, orientation, dtype=np.float64),
    )


# -------------------------
# Cell histograms
# -------------------------

def test_cell_histogram_preserves_magnitude(random_image):
    field = compute_gradient_field(random_image)
    hists = compute_cell_histograms(field, cell_size=8)
    cells_x, cells_y = cell_grid_shape(32, 24, 8)
    assert hists.shape == (cells_x * cells_y, 9)

    for cy in range(cells_y):
        for cx in range(cells_x):
            cell_mag = field.magnitude[cy * 8:(cy + 1) * 8, cx * 8:(cx + 1) * 8]
            assert hists[cy * cells_x + cx].sum() == pytest.approx(cell_mag.sum())


def test_known_gradient_region_is_conserved():
    image = np.zeros((16, 16), dtype=np.uint8)
    image[4:12, 4:12] = 100
    field = compute_gradient_field(image)
    hists = compute_cell_histograms(field, cell_size=8)
    assert hists.sum() == pytest.approx(field.magnitude.sum())
    assert np.all(hists >= 0.0)


def test_orientation_near_180_wraps_to_bin_zero():
    hists = compute_cell_histograms(_uniform_field((8, 8), 10.0, 179.0), cell_size=8)
    # share = 0.95: 0.5 per pixel to bin 8, 9.5 per pixel to bin 0
    assert hists[0, 8] == pytest.approx(64 * 0.5)
    assert hists[0, 0] == pytest.approx(64 * 9.5)
    assert hists[0, 1:8].sum() == 0.0


def test_interpolation_between_neighbouring_bins():
    hists = compute_cell_histograms(_uniform_field((8, 8), 2.0, 90.0), cell_size=8)
    assert hists[0, 4] == pytest.approx(64.0)
    assert hists[0, 5] == pytest.approx(64.0)

    hists = compute_cell_histograms(_uniform_field((8, 8), 1.0, 40.0), cell_size=8)
    assert hists[0, 2] == pytest.approx(64.0)
    assert hists[0].sum() == pytest.approx(64.0)


def test_partial_cells_are_dropped():
    hists = compute_cell_histograms(_uniform_field((19, 20), 1.0, 0.0), cell_size=8)
    assert hists.shape == (4, 9)
    np.testing.assert_allclose(hists.sum(axis=1), 64.0)


def test_cells_are_indexed_row_major_on_non_square_grids():
    magnitude = np.zeros((16, 24))
    magnitude[0:8, 16:24] = 1.0   # cell (x=2, y=0)
    magnitude[8:16, 0:8] = 3.0    # cell (x=0, y=1)
    field = GradientField(magnitude=magnitude, orientation=np.zeros((16, 24)))
    hists = compute_cell_histograms(field, cell_size=8)

    assert hists.shape == (6, 9)
    sums = hists.sum(axis=1)
    np.testing.assert_allclose(sums, [0.0, 0.0, 64.0, 192.0, 0.0, 0.0])


def test_image_smaller_than_a_cell_has_no_cells():
    hists = compute_cell_histograms(_uniform_field((5, 5), 1.0, 0.0), cell_size=8)
    assert hists.shape == (0, 9)


# -------------------------
# Block normalization
# -------------------------

def test_block_order_and_normalization():
    hists = np.vstack([np.full(9, float(i + 1)) for i in range(6)])  # 3 x 2 cells
    blocks = normalize_blocks(hists, cells_x=3, cells_y=2)
    assert blocks.shape == (2, 36)

    for block, cells in zip(blocks, ([0, 1, 3, 4], [1, 2, 4, 5])):
        raw = np.concatenate([hists[c] for c in cells])
        expected = raw / np.sqrt(np.sum(raw**2) + 1e-5)
        np.testing.assert_allclose(block, expected)
        assert np.sum(block**2) == pytest.approx(1.0, abs=1e-6)


def test_zero_block_stays_zero():
    blocks = normalize_blocks(np.zeros((4, 9)), cells_x=2, cells_y=2)
    assert blocks.shape == (1, 36)
    assert np.all(blocks == 0.0)
    assert not np.any(np.isnan(blocks))


def test_too_few_cells_gives_empty_grid():
    assert normalize_blocks(np.ones((3, 9)), cells_x=3, cells_y=1).shape == (0, 36)
    assert normalize_blocks(np.zeros((0, 9)), cells_x=0, cells_y=0).shape == (0, 36)


def test_histogram_shape_mismatch_raises():
    with pytest.raises(ValueError):
        normalize_blocks(np.ones((5, 9)), cells_x=3, cells_y=2)
    with pytest.raises(ValueError):
        normalize_blocks(np.ones((6, 8)), cells_x=3, cells_y=2)


def test_larger_blocks():
    blocks = normalize_blocks(np.ones((20, 9)), cells_x=5, cells_y=4, block_size=3)
    assert blocks.shape == (6, 81)


# -------------------------
# End to end
# -------------------------

def test_flat_image_gives_zero_descriptor():
    descriptor = HOGExtractor().extract(np.full((32, 32), 128, dtype=np.uint8))
    assert descriptor.data.shape == (9, 36)
    assert np.all(descriptor.data == 0.0)


def test_vertical_edge_concentrates_near_90_degrees(vertical_edge_image):
    extractor = HOGExtractor()
    field = extractor.gradients(vertical_edge_image)
    hists = compute_cell_histograms(field, cell_size=8)

    # Cells (0, y) hold column x=7, cells (1, y) hold column x=8
    for idx in range(4):
        hist = hists[idx]
        assert int(np.argmax(hist)) in (4, 5)
        assert hist[4] + hist[5] == pytest.approx(hist.sum())
        assert hist.sum() == pytest.approx(8 * 1020.0)


def test_block_grid_size():
    image = np.random.default_rng(7).integers(0, 256, size=(32, 40), dtype=np.uint8)
    extractor = HOGExtractor()
    descriptor = extractor.extract(image)
    assert descriptor.block_grid == (4, 3)
    assert descriptor.data.shape == (12, 36)
    assert extractor.get_feature_dim(40, 32) == 12 * 36
    assert descriptor.feature_vector().shape == (12 * 36,)

    norms = np.sum(descriptor.data**2, axis=1)
    np.testing.assert_allclose(norms, 1.0, atol=1e-6)


def test_degenerate_images_give_empty_descriptor():
    extractor = HOGExtractor()
    for shape in [(5, 5), (8, 40), (40, 15)]:
        descriptor = extractor.extract(np.zeros(shape, dtype=np.uint8))
        assert descriptor.num_blocks == 0
        assert descriptor.data.shape == (0, 36)


def test_from_config_builds_smoothing_kernel():
    extractor = HOGExtractor.from_config({
        'hog': {'cell_size': 4, 'block_size': 3},
        'smoothing': {'enabled': True, 'kernel_size': 5, 'sigma': 1.5},
    })
    assert extractor.cell_size == 4
    assert extractor.block_size == 3
    assert extractor.smoothing.shape == (5, 5)

    descriptor = extractor.extract(np.zeros((16, 20), dtype=np.uint8))
    assert descriptor.data.shape == (3 * 2, 81)


def test_from_config_defaults():
    extractor = HOGExtractor.from_config({})
    assert extractor.cell_size == 8
    assert extractor.block_size == 2
    assert extractor.smoothing is None


def test_from_config_tolerates_empty_sections():
    extractor = HOGExtractor.from_config({'hog': None, 'smoothing': None})
    assert extractor.cell_size == 8
    assert extractor.block_size == 2
    assert extractor.smoothing is None


def test_extract_rejects_color_image():
    with pytest.raises(ValueError):
        HOGExtractor().extract(np.zeros((16, 16, 3), dtype=np.uint8))
