import io
import json
import os
import sys
from pathlib import Path

import pytest

# Get the project root directory (one level above tests/)
ROOT_DIR = Path(__file__).resolve().parents[1]

# Add the root directory to sys.path so "import src" works
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@pytest.fixture
def receipt_text():
    """Text a grocery receipt PDF would yield."""
    return "Milk $3.99, Bread $2.50, Tax $0.50, Total $6.99"


@pytest.fixture
def receipt_record():
    return {
        "items": [
            {"name": "Milk", "price": 3.99},
            {"name": "Bread", "price": 2.50},
        ],
        "tax": 0.50,
        "total": 6.99,
    }


@pytest.fixture
def receipt_json(receipt_record):
    return json.dumps(receipt_record)


@pytest.fixture
def make_png():
    """
    Build a PNG of random pixels. Noise barely compresses, so the byte
    size grows predictably with the dimensions.
    """
    from PIL import Image

    def _make(width=200, height=100):
        img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
        out = io.BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()

    return _make


@pytest.fixture
def receipt_pdf_bytes(receipt_text):
    """A one-page PDF with the receipt text drawn on it (needs reportlab)."""
    canvas_module = pytest.importorskip("reportlab.pdfgen.canvas")
    from reportlab.lib.pagesizes import letter

    out = io.BytesIO()
    c = canvas_module.Canvas(out, pagesize=letter, pageCompression=1)
    width, height = letter
    c.setFont("Helvetica", 12)
    c.drawString(72, height - 72, receipt_text)
    c.save()
    return out.getvalue()
