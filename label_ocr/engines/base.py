import asyncio
import base64
import os
from abc import ABC, abstractmethod
from typing import BinaryIO, Union

from label_ocr.errors import InvalidImage
from label_ocr.schemas import ProviderId, RecognitionResult

ImageInput = Union[bytes, bytearray, str, os.PathLike, BinaryIO]


class RecognitionEngine(ABC):
    """
    Uniform contract over one concrete OCR engine.

    `recognize` either returns a result or raises RecognitionError; it never
    returns a placeholder for a failed attempt.
    """

    provider: ProviderId
    model_name = None

    @abstractmethod
    async def recognize(self, image: ImageInput) -> RecognitionResult:
        ...

    async def close(self) -> None:
        """Release engine resources. Safe to call more than once."""


def _read_image(image: ImageInput) -> bytes:
    if isinstance(image, (bytes, bytearray)):
        return bytes(image)
    if isinstance(image, (str, os.PathLike)):
        try:
            with open(image, "rb") as f:
                return f.read()
        except OSError as e:
            raise InvalidImage(f"cannot read image file {image}: {e}") from e
    if hasattr(image, "read"):
        if hasattr(image, "seek"):
            image.seek(0)
        return image.read()
    raise InvalidImage(f"unsupported image input type: {type(image).__name__}")


async def load_image_bytes(image: ImageInput) -> bytes:
    """Read image payload off the event loop. Empty payloads are rejected."""
    if isinstance(image, (bytes, bytearray)):
        data = bytes(image)
    else:
        data = await asyncio.to_thread(_read_image, image)
    if not data:
        raise InvalidImage("empty image payload")
    return data


def guess_mime_type(data: bytes) -> str:
    """Sniff the container format from magic bytes; JPEG when unknown."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "image/jpeg"


def to_data_url(data: bytes) -> str:
    b64_img = base64.b64encode(data).decode("utf-8")
    return f"data:{guess_mime_type(data)};base64,{b64_img}"
