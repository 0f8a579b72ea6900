import io

import pytest
from PIL import Image


@pytest.fixture
def png_bytes():
    """Small valid PNG used as an upload / engine input."""
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buf, format="PNG")
    return buf.getvalue()
