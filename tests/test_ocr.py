from io import BytesIO

import pytest
import pytesseract
from PIL import Image

import ocr
from errors import ReceiptScanError

RECEIPT_TEXT = "NO FRILLS\nDate: 03/15/2024\nBananas 3.87\n"


@pytest.fixture
def image():
    return Image.new("RGB", (40, 20), "white")


def _png_bytes(image):
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer


def test_preprocess_image_is_grayscale(image):
    assert ocr.preprocess_image(image).mode == "L"


def test_extract_text_from_file_object(monkeypatch, image):
    seen = {}

    def fake_ocr(img):
        seen["mode"] = img.mode
        return RECEIPT_TEXT

    monkeypatch.setattr(ocr.pytesseract, "image_to_string", fake_ocr)

    assert ocr.extract_text(_png_bytes(image)) == RECEIPT_TEXT
    assert seen["mode"] == "L"


def test_scan_receipt(monkeypatch, image):
    monkeypatch.setattr(ocr.pytesseract, "image_to_string", lambda img: RECEIPT_TEXT)

    data = ocr.scan_receipt(image, ["NoFrills", "Costco"], {"NoFrills": "Grocery"})

    assert data.store == "NoFrills"
    assert data.date == "2024-03-15"
    assert data.name == "Bananas"
    assert data.price == 3.87
    assert data.category == "Grocery"


def test_unreadable_image():
    with pytest.raises(ReceiptScanError):
        ocr.extract_text(BytesIO(b"definitely not an image"))


def test_tesseract_failure(monkeypatch, image):
    def broken(img):
        raise pytesseract.TesseractError(1, "bad image")

    monkeypatch.setattr(ocr.pytesseract, "image_to_string", broken)

    with pytest.raises(ReceiptScanError):
        ocr.extract_text(image)


def test_tesseract_missing(monkeypatch, image):
    def missing(img):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(ocr.pytesseract, "image_to_string", missing)

    with pytest.raises(ReceiptScanError):
        ocr.scan_receipt(image)
