"""
PDF → page images.

Each page is rendered at the configured density, then resampled to the
target width with its aspect ratio preserved and encoded as JPEG or PNG.
"""

import io
import logging

import fitz  # PyMuPDF
from PIL import Image

from backend import config
from backend.errors import RasterizationError
from backend.models import Document, PageImage

logger = logging.getLogger(__name__)

_PIL_FORMATS = {"jpeg": "JPEG", "png": "PNG"}


def rasterize_pdf(
    document: Document,
    *,
    first_page_only: bool = False,
    width: int | None = None,
    density: int | None = None,
    fmt: str | None = None,
) -> list[PageImage]:
    """
    Render *document* into an ordered list of page images (0-indexed).

    With ``first_page_only`` only page 0 is rendered. Raises
    ``RasterizationError`` for unreadable or empty PDFs and for any page
    that fails to render.
    """
    width = width or config.RASTER_WIDTH
    density = density or config.RASTER_DENSITY
    fmt = (fmt or config.RASTER_FORMAT).lower()
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in _PIL_FORMATS:
        raise ValueError(f"Unsupported raster format: {fmt}")

    try:
        pdf = fitz.open(stream=document.content, filetype="pdf")
    except Exception as e:
        raise RasterizationError(f"{document.filename} is not a readable PDF: {e}") from e

    with pdf:
        if pdf.page_count == 0:
            raise RasterizationError(f"{document.filename} contains no pages")

        count = 1 if first_page_only else pdf.page_count
        pages: list[PageImage] = []
        for index in range(count):
            try:
                pages.append(_render_page(pdf[index], index, width, density, fmt))
            except Exception as e:
                raise RasterizationError(
                    f"{document.filename}: page {index} failed to render: {e}"
                ) from e

    logger.debug("Rasterized %s → %d page(s)", document.filename, len(pages))
    return pages


def _render_page(page, index: int, width: int, density: int, fmt: str) -> PageImage:
    zoom = density / 72.0
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
    img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

    height = max(1, round(img.height * width / img.width))
    img = img.resize((width, height), Image.LANCZOS)

    buf = io.BytesIO()
    if fmt == "jpeg":
        img.save(buf, format="JPEG", quality=config.JPEG_QUALITY)
    else:
        img.save(buf, format="PNG")

    return PageImage(
        page_index=index,
        data=buf.getvalue(),
        format=fmt,
        width=width,
        height=height,
        density=density,
    )
