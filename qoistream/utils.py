import numpy as np
from PIL import Image


def strip_alpha(rgba_data) -> bytes:
    """Drop every fourth byte of packed RGBA data."""
    rgba = np.frombuffer(bytes(rgba_data), dtype=np.uint8).reshape(-1, 4)
    return rgba[:, :3].tobytes()


def pixels_to_array(rgba_data, width: int, height: int, channels: int = 4) -> np.ndarray:
    """View packed RGBA data as a (height, width, channels) uint8 array."""

    if channels not in (3, 4):
        raise ValueError("QOI.decode: The number of channels for the output is invalid")

    pixel_data = np.frombuffer(bytes(rgba_data), dtype=np.uint8).reshape(
        height, width, 4
    )
    if channels == 3:
        pixel_data = pixel_data[:, :, :3]

    return np.ascontiguousarray(pixel_data)


def pixels_to_image(rgba_data, width: int, height: int, channels: int = 4) -> Image.Image:
    """Build a Pillow image, RGBA for 4 channels and RGB for 3."""

    # Pillow infers RGB / RGBA from the last axis of a uint8 array
    return Image.fromarray(pixels_to_array(rgba_data, width, height, channels))
