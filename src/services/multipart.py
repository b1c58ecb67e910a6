"""multipart/form-data body construction for the image edits endpoint."""

import uuid
from dataclasses import dataclass
from typing import Optional

CRLF = b"\r\n"


@dataclass
class FormPart:
    """One named section of a multipart body."""

    name: str
    content: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None

    def encode(self, boundary: str) -> bytes:
        disposition = f'Content-Disposition: form-data; name="{self.name}"'
        if self.filename:
            disposition += f'; filename="{self.filename}"'

        lines = [f"--{boundary}".encode(), disposition.encode()]
        if self.content_type:
            lines.append(f"Content-Type: {self.content_type}".encode())

        return CRLF.join(lines) + CRLF + CRLF + self.content + CRLF


def new_boundary() -> str:
    return str(uuid.uuid4()).upper()


def encode_multipart(parts: list[FormPart], boundary: str) -> bytes:
    """Join parts in order and append the closing ``--boundary--`` line."""
    body = b"".join(part.encode(boundary) for part in parts)
    return body + f"--{boundary}--".encode() + CRLF


def content_type_header(boundary: str) -> str:
    return f"multipart/form-data; boundary={boundary}"


def build_edit_parts(
    image_png: bytes,
    prompt: str,
    mask_png: Optional[bytes] = None,
    model: str = "dall-e-2",
    size: str = "512x512",
    response_format: str = "url",
) -> list[FormPart]:
    """Ordered parts for an edit: image, mask?, prompt, model, response_format, size."""
    parts = [FormPart("image", image_png, filename="image.png", content_type="image/png")]
    if mask_png is not None:
        parts.append(FormPart("mask", mask_png, filename="mask.png", content_type="image/png"))
    parts.extend(
        [
            FormPart("prompt", prompt.encode("utf-8")),
            FormPart("model", model.encode("utf-8")),
            FormPart("response_format", response_format.encode("utf-8")),
            FormPart("size", size.encode("utf-8")),
        ]
    )
    return parts
