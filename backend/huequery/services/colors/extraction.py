"""
Dominant color extraction for search result images.

Local pixel analysis used when no vision model is available: downscale,
sample, drop transparent and near-white/near-black pixels, then cluster with
MiniBatchKMeans and report clusters by dominance.
"""

from collections import Counter
from io import BytesIO
from typing import Dict, List, Optional

import numpy as np
from PIL import Image
from sklearn.cluster import MiniBatchKMeans
from loguru import logger

from .color_math import rgb_to_hex


def load_image(image_bytes: bytes) -> Image.Image:
    """Decode image bytes to RGBA."""
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as e:
        raise ValueError(f"Invalid image data: {str(e)}")
    return image.convert("RGBA")


def sample_image_pixels(image: Image.Image,
                        max_edge: int = 180,
                        stride: int = 10,
                        min_alpha: int = 125,
                        white_gt: int = 250,
                        black_lt: int = 10) -> np.ndarray:
    """
    Sample and filter pixels for dominant color analysis.

    Args:
        image: Input image (any mode)
        max_edge: Downscale to fit max_edge x max_edge, never enlarging
        stride: Keep every `stride`-th pixel
        min_alpha: Pixels with alpha below this are dropped
        white_gt: Pixels with every channel above this are dropped
        black_lt: Pixels with every channel below this are dropped

    Returns:
        Filtered RGB pixels array (N, 3) uint8, possibly empty
    """
    rgba = image.convert("RGBA")
    rgba.thumbnail((max_edge, max_edge))

    pixels = np.asarray(rgba, dtype=np.uint8).reshape(-1, 4)[::stride]
    rgb = pixels[:, :3]

    keep_mask = pixels[:, 3] >= min_alpha
    keep_mask &= ~np.all(rgb > white_gt, axis=1)
    keep_mask &= ~np.all(rgb < black_lt, axis=1)

    filtered = rgb[keep_mask]
    logger.debug(f"Pixel sampling kept {len(filtered)}/{len(pixels)} pixels")
    return filtered


def cluster_palette(pixels_rgb_u8: np.ndarray, k: int = 5, rng_seed: int = 42) -> List[Dict]:
    """
    Cluster pixels into a palette ordered by dominance.

    Args:
        pixels_rgb_u8: Filtered RGB pixels (N, 3) uint8
        k: Maximum number of clusters; reduced when fewer distinct colors exist
        rng_seed: Random seed for deterministic clustering

    Returns:
        List of {"hex": str, "ratio": float} entries, most dominant first
    """
    if len(pixels_rgb_u8) == 0:
        return []

    unique_colors = np.unique(pixels_rgb_u8, axis=0)
    n_clusters = min(k, len(unique_colors))
    if n_clusters == 1:
        r, g, b = [int(c) for c in unique_colors[0]]
        return [{"hex": rgb_to_hex(r, g, b), "ratio": 1.0}]

    kmeans = MiniBatchKMeans(
        n_clusters=n_clusters,
        random_state=rng_seed,
        batch_size=min(2048, len(pixels_rgb_u8)),
        n_init="auto",
        max_iter=100
    )
    labels = kmeans.fit_predict(pixels_rgb_u8.astype(np.float32))
    centers = np.clip(np.rint(kmeans.cluster_centers_), 0, 255).astype(np.uint8)

    label_counts = Counter(labels.tolist())
    total_pixels = len(labels)

    # Sort by dominance descending, cluster index breaks ties
    order = sorted(range(n_clusters), key=lambda i: (-label_counts.get(i, 0), i))

    palette = []
    for i in order:
        r, g, b = [int(c) for c in centers[i]]
        palette.append({
            "hex": rgb_to_hex(r, g, b),
            "ratio": label_counts.get(i, 0) / total_pixels
        })
    return palette


def dominant_color(image_bytes: bytes, k: int = 5) -> Optional[str]:
    """Return the most dominant color of an image, or None if nothing usable remains."""
    pixels = sample_image_pixels(load_image(image_bytes))
    if len(pixels) == 0:
        return None

    palette = cluster_palette(pixels, k=k)
    return palette[0]["hex"] if palette else None
