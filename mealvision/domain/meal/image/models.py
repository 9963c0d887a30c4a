"""Image value objects for the recognition pipeline."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProcessedImage:
    """
    Downsized, recompressed photo ready for a vision request.

    Immutable once produced by the image processor. Not persisted by the
    pipeline: it is consumed by the request builder and discarded.

    Attributes:
        data: Encoded image bytes
        mime_type: MIME type of ``data`` (e.g. ``image/jpeg``)
        size: Byte size of ``data``
        width: Pixel width
        height: Pixel height

    Example:
        >>> image = ProcessedImage(
        ...     data=b"\\xff\\xd8...", mime_type="image/jpeg",
        ...     size=1024, width=800, height=600,
        ... )
        >>> image.data_url.startswith("data:image/jpeg;base64,")
        True
    """

    data: bytes = field(repr=False)
    mime_type: str
    size: int
    width: int
    height: int

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"
