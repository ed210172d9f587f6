"""
Liquid Glass - Image I/O
Loads backdrops, saves frames and textures, and encodes textures as PNG
data URLs for filter graphs that reference images by URL.
"""

import base64
import io
from pathlib import Path

import numpy as np
from PIL import Image


def load_frame(frame_path: str) -> np.ndarray:
    """Load an image as a numpy array (H, W, 3) uint8 RGB."""
    img = Image.open(str(frame_path)).convert("RGB")
    return np.array(img)


def save_frame(array: np.ndarray, output_path: str) -> Path:
    """Save a numpy array (H, W, 3) or (H, W, 4) as PNG."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.fromarray(np.clip(array, 0, 255).astype(np.uint8))
    img.save(str(output_path))
    return output_path


def texture_from_bytes(data: bytes, width: int, height: int) -> np.ndarray:
    """Rebuild an (H, W, 4) RGBA array from packed texture bytes."""
    expected = width * height * 4
    if len(data) != expected:
        raise ValueError(
            f"Texture is {len(data)} bytes, expected {expected} for {width}x{height} RGBA"
        )
    return np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy()


def encode_png_data_url(texture: np.ndarray) -> str:
    """Encode an (H, W, 4) RGBA texture as a data:image/png;base64 URL."""
    buf = io.BytesIO()
    Image.fromarray(texture.astype(np.uint8)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def decode_png_data_url(url: str) -> np.ndarray:
    """Inverse of encode_png_data_url."""
    prefix = "data:image/png;base64,"
    if not url.startswith(prefix):
        raise ValueError("Not a PNG data URL")
    raw = base64.b64decode(url[len(prefix):])
    return np.array(Image.open(io.BytesIO(raw)).convert("RGBA"))
