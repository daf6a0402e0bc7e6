"""
File processing service for Plastic Clever Schools Evidence Review

This module contains image compression applied to evidence photos before
they are written to storage.
"""

import io
from PIL import Image, ImageOps
from flask import current_app


COMPRESSIBLE_MIMES = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


class FileProcessingService:
    """Service for file processing before storage"""

    @staticmethod
    def compress_image(data: bytes, mime_type: str) -> bytes:
        """Downscale and re-encode an image; returns the original bytes when that would not help"""
        image_format = COMPRESSIBLE_MIMES.get(mime_type)
        if not image_format:
            return data
        if len(data) < current_app.config.get("IMAGE_COMPRESS_MIN_BYTES", 0):
            return data

        try:
            with Image.open(io.BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                max_dim = current_app.config.get("IMAGE_MAX_DIMENSION", 1920)
                img.thumbnail((max_dim, max_dim), Image.Resampling.LANCZOS)

                if image_format == "JPEG" and img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")

                out = io.BytesIO()
                save_kwargs = {"optimize": True}
                if image_format in ("JPEG", "WEBP"):
                    save_kwargs["quality"] = current_app.config.get("IMAGE_QUALITY", 80)
                img.save(out, image_format, **save_kwargs)
                compressed = out.getvalue()
        except Exception as e:
            current_app.logger.warning(f"Image compression failed, storing original ({mime_type}): {e}")
            return data

        if len(compressed) >= len(data):
            return data
        current_app.logger.info(f"Compressed image {len(data)} -> {len(compressed)} bytes")
        return compressed


def compress_image(data: bytes, mime_type: str) -> bytes:
    """Convenience function for image compression"""
    return FileProcessingService.compress_image(data, mime_type)
