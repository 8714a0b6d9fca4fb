"""
Main HOG pipeline.
Command-line entry point for descriptor extraction and visualization.
"""
import sys
import argparse
import json
from pathlib import Path
from typing import Dict, Optional
from tqdm import tqdm

from hog_descriptor.descriptor import DescriptorError, load_descriptor, save_descriptor
from hog_descriptor.gradient import gradient_magnitude_image
from hog_descriptor.hog_extractor import HOGExtractor
from hog_descriptor.kernel import smooth
from hog_descriptor.utils import (
    collect_image_paths,
    ensure_dir,
    image_generator,
    load_config,
    load_image,
    save_image
)
from hog_descriptor.visualization import plot_hog_overlay, render_descriptor


def build_extractor(config: Dict, smoothing: Optional[bool] = None) -> HOGExtractor:
    """Create the extractor, letting --smooth/--no-smooth override the config."""
    if smoothing is not None:
        config = dict(config)
        config['smoothing'] = dict(config.get('smoothing') or {}, enabled=smoothing)
    return HOGExtractor.from_config(config)


def extract_image(image_path: Path, output_path: Path, extractor: HOGExtractor) -> None:
    """Extract and save the descriptor of a single image."""
    image = load_image(image_path)
    descriptor = extractor.extract(image)
    save_descriptor(descriptor, output_path)

    blocks_x, blocks_y = descriptor.block_grid
    print(f"✓ Saved descriptor to {output_path}")
    print(f"  - Image: {descriptor.image_width}x{descriptor.image_height}")
    print(f"  - Blocks: {blocks_x}x{blocks_y} ({descriptor.num_blocks} x {descriptor.block_length})")


def visualize_descriptor(descriptor_path: Path,
                         output_path: Path,
                         strength_scale: float,
                         figure_image: Optional[Path] = None) -> None:
    """Render a saved descriptor, optionally alongside its source image."""
    descriptor = load_descriptor(descriptor_path)
    rendering = render_descriptor(descriptor, strength_scale=strength_scale)
    if not save_image(rendering, output_path):
        raise OSError(f"Could not write {output_path}")
    print(f"✓ Saved HOG rendering to {output_path}")

    if figure_image is not None:
        image = load_image(figure_image)
        figure_path = output_path.with_name(f"{output_path.stem}_figure.png")
        plot_hog_overlay(image, rendering, figure_path, title=figure_image.name)


def edge_map(image_path: Path, output_path: Path, extractor: HOGExtractor) -> None:
    """Save the gradient magnitude of an image as an edge map."""
    image = load_image(image_path)
    if extractor.smoothing is not None:
        image = smooth(image, extractor.smoothing)
    if not save_image(gradient_magnitude_image(image), output_path):
        raise OSError(f"Could not write {output_path}")
    print(f"✓ Saved edge map to {output_path}")


def run_batch_extraction(input_dir: Path,
                         output_dir: Path,
                         extractor: HOGExtractor,
                         config: Dict,
                         use_cache: bool = True) -> Dict:
    """
    Extract descriptors for every image below a directory.

    Output files mirror the input layout with a .json suffix. Images
    that fail to load or extract are counted and skipped.

    Args:
        input_dir: Directory containing images
        output_dir: Directory to save descriptors
        extractor: HOG extractor instance
        config: Configuration dictionary
        use_cache: Skip images whose descriptor already exists

    Returns:
        Dictionary with extraction statistics
    """
    print("\n" + "="*60)
    print("HOG Batch Extraction")
    print("="*60)
    print(f"Input images: {input_dir}")
    print(f"Descriptors output: {output_dir}")
    print(f"Cell size: {extractor.cell_size}, block size: {extractor.block_size}")
    print("="*60)

    image_paths = collect_image_paths(input_dir, config['data']['image_extensions'])
    if len(image_paths) == 0:
        print(f"⚠️  No images found in {input_dir}")

    processed_count = 0
    cached_count = 0
    failed_count = 0
    feature_dims = set()

    pending = []
    for img_path in image_paths:
        out_path = (output_dir / img_path.relative_to(input_dir)).with_suffix('.json')
        if use_cache and out_path.exists():
            cached_count += 1
        else:
            pending.append(img_path)

    for img, img_path in tqdm(image_generator(pending), total=len(pending), desc="Extracting HOG"):
        if img is None:
            failed_count += 1
            continue
        out_path = (output_dir / img_path.relative_to(input_dir)).with_suffix('.json')
        try:
            descriptor = extractor.extract(img)
            save_descriptor(descriptor, out_path)
        except (DescriptorError, ValueError) as e:
            print(f"Warning: Failed to extract features from {img_path}: {e}")
            failed_count += 1
            continue
        feature_dims.add(descriptor.feature_vector().size)
        processed_count += 1

    stats = {
        'num_images': len(image_paths),
        'processed': processed_count,
        'cached': cached_count,
        'failed': failed_count,
        'cell_size': extractor.cell_size,
        'block_size': extractor.block_size,
        'feature_dims': sorted(feature_dims)
    }

    ensure_dir(output_dir)
    stats_path = output_dir / "extraction_stats.json"
    with open(stats_path, 'w') as f:
        json.dump(stats, f, indent=2)

    print("\n" + "="*60)
    print("Extraction Complete!")
    print("="*60)
    print(f"  - Processed: {processed_count}")
    print(f"  - Cached: {cached_count}")
    print(f"  - Failed: {failed_count}")
    print(f"Statistics saved to: {stats_path}")
    print("="*60)

    return stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Extract and visualize HOG descriptors')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to config.yaml (defaults are used if omitted)')
    smooth_group = parser.add_mutually_exclusive_group()
    smooth_group.add_argument('--smooth', dest='smooth', action='store_true', default=None,
                              help='Apply Gaussian smoothing before gradients')
    smooth_group.add_argument('--no-smooth', dest='smooth', action='store_false',
                              help='Disable Gaussian smoothing')

    parser.set_defaults(smooth=None)

    subparsers = parser.add_subparsers(dest='command', required=True)

    p_extract = subparsers.add_parser('extract', help='Extract the descriptor of one image')
    p_extract.add_argument('image', type=Path)
    p_extract.add_argument('-o', '--output', type=Path, required=True,
                           help='Output descriptor (.json)')

    p_vis = subparsers.add_parser('visualize', help='Render a saved descriptor')
    p_vis.add_argument('descriptor', type=Path)
    p_vis.add_argument('-o', '--output', type=Path, required=True,
                       help='Output image')
    p_vis.add_argument('--strength', type=float, default=None,
                       help='Strength scale for bin values (overrides config)')
    p_vis.add_argument('--figure', type=Path, default=None,
                       help='Source image; also save a side-by-side figure')

    p_edges = subparsers.add_parser('edges', help='Save the gradient magnitude edge map')
    p_edges.add_argument('image', type=Path)
    p_edges.add_argument('-o', '--output', type=Path, required=True,
                         help='Output image')

    p_batch = subparsers.add_parser('batch', help='Extract descriptors for a directory')
    p_batch.add_argument('input_dir', type=Path)
    p_batch.add_argument('-o', '--output', type=Path, required=True,
                         help='Output directory')
    p_batch.add_argument('--no-cache', action='store_true',
                         help='Disable cache (re-extract all descriptors)')

    return parser


def main(argv=None) -> int:
    """Main entry point for the HOG pipeline."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config) if args.config else None
    if config_path is not None and not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        return 1

    try:
        config = load_config(config_path)
        extractor = build_extractor(config, smoothing=args.smooth)

        if args.command == 'extract':
            extract_image(args.image, args.output, extractor)
        elif args.command == 'visualize':
            vis_config = config['visualization']
            strength = args.strength if args.strength is not None else float(vis_config['strength_scale'])
            visualize_descriptor(args.descriptor, args.output, strength, args.figure)
        elif args.command == 'edges':
            edge_map(args.image, args.output, extractor)
        elif args.command == 'batch':
            run_batch_extraction(args.input_dir, args.output, extractor, config,
                                 use_cache=not args.no_cache)
    except (DescriptorError, FileNotFoundError, ValueError, OSError) as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
