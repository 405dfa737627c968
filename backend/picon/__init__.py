"""Preview images for uploaded images, PDFs, videos and office documents."""

__version__ = "1.0.0"
