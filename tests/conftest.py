import io

import pytest
from PIL import Image, ImageDraw

from labelscan.additives import parse_additive_db

SAMPLE_LABEL = (
    "Состав: вода, сахар, глюкозный сироп, регулятор кислотности E330, краситель E150d, "
    "консервант E211, ароматизатор, соль.\n"
    "Пищевая ценность на 100 г: жиры 0 г, сахара 10.5 г, соль 0.12 г."
)


@pytest.fixture
def sample_label():
    return SAMPLE_LABEL


@pytest.fixture
def additive_db():
    return parse_additive_db({
        "E330": {"name": "Citric acid", "category": "acidity regulator", "risk": "low"},
        "E150d": {"name": "Caramel colour IV", "category": "colour", "risk": "medium"},
        "E211": {"name": "Sodium benzoate", "category": "preservative", "risk": "medium"},
    })


@pytest.fixture
def label_image():
    """Dark text stripes on a light background."""
    img = Image.new("RGB", (60, 40), (235, 230, 220))
    draw = ImageDraw.Draw(img)
    for y in (8, 18, 28):
        draw.rectangle([6, y, 54, y + 3], fill=(30, 30, 40))
    return img


@pytest.fixture
def png_bytes(label_image):
    buf = io.BytesIO()
    label_image.save(buf, format="PNG")
    return buf.getvalue()
