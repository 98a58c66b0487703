import logging
from typing import IO, Mapping, Optional, Sequence, Union

import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

from errors import ReceiptScanError
from receipt_parser import parse_receipt_text
from records import ReceiptData

logger = logging.getLogger(__name__)


def preprocess_image(image: Image.Image) -> Image.Image:
    return ImageOps.grayscale(image)


def extract_text(image: Union[Image.Image, IO[bytes]]) -> str:
    """Run Tesseract over a receipt photo (PIL image or file-like object)."""
    try:
        if not isinstance(image, Image.Image):
            image = Image.open(image)
        return pytesseract.image_to_string(preprocess_image(image))
    except (UnidentifiedImageError, OSError, pytesseract.TesseractError) as e:
        logger.error("OCR failed: %s", e)
        raise ReceiptScanError("Failed to process receipt. Please try again or enter details manually.") from e


def scan_receipt(
    image,
    known_stores: Sequence[str] = (),
    store_categories: Optional[Mapping[str, str]] = None,
    day_first: Optional[bool] = None,
) -> ReceiptData:
    text = extract_text(image)
    logger.debug("OCR text: %s", text)
    return parse_receipt_text(text, known_stores, store_categories=store_categories, day_first=day_first)
