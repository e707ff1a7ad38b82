"""Fixed-width unsigned integers, bit-sized enums and packed field encoding."""

__version__ = "0.1.0"

__all__ = ["codec", "enums", "paths", "types", "uint"]