"""Image codec registry keyed by content signature and MIME type."""

import io
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from PIL import Image

from .error_handling import IMAGE_DECODE_ERRORS
from .exceptions import DecodeError


@dataclass(frozen=True)
class ImageHeader:
    """Format and dimensions read from an image header."""

    format: str
    width: int
    height: int


@dataclass(frozen=True)
class EncodeOptions:
    """Encoder settings; quality is ignored by lossless formats."""

    quality: int = 100


class ImageCodec(Protocol):
    """Protocol every registered codec implements."""

    name: str
    mime_type: str

    def matches(self, data: bytes) -> bool:
        ...

    def probe(self, data: bytes) -> ImageHeader:
        ...

    def decode(self, data: bytes) -> Image.Image:
        ...

    def encode(self, image: Image.Image, options: EncodeOptions) -> bytes:
        ...


class PillowCodec:
    """Codec backed by a single Pillow plugin."""

    def __init__(
        self,
        name: str,
        pil_format: str,
        mime_type: str,
        signatures: Tuple[bytes, ...],
    ):
        self.name = name
        self.pil_format = pil_format
        self.mime_type = mime_type
        self.signatures = signatures

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"

    def matches(self, data: bytes) -> bool:
        return any(data.startswith(signature) for signature in self.signatures)

    def probe(self, data: bytes) -> ImageHeader:
        """
        Read format and dimensions without decoding pixel data.

        The plugin is built directly rather than through Image.open, so the
        decompression bomb limit only applies to decode. Header size says
        nothing about memory until pixels are loaded.
        """
        Image.preinit()
        factory, _ = Image.OPEN[self.pil_format]
        try:
            with factory(io.BytesIO(data)) as image:
                width, height = image.size
        except IMAGE_DECODE_ERRORS as e:
            raise DecodeError(f"Cannot read {self.name} header: {e}") from e
        return ImageHeader(format=self.name, width=width, height=height)

    def decode(self, data: bytes) -> Image.Image:
        """Fully decode pixel data into memory."""
        try:
            image = Image.open(io.BytesIO(data), formats=[self.pil_format])
            image.load()
        except IMAGE_DECODE_ERRORS as e:
            raise DecodeError(f"Cannot decode {self.name} image: {e}") from e
        return image

    def _prepare(self, image: Image.Image) -> Image.Image:
        return image

    def _save_options(self, options: EncodeOptions) -> Dict[str, object]:
        return {}

    def encode(self, image: Image.Image, options: EncodeOptions) -> bytes:
        output = io.BytesIO()
        try:
            self._prepare(image).save(
                output, format=self.pil_format, **self._save_options(options)
            )
        except (OSError, ValueError) as e:
            raise DecodeError(f"Cannot encode image as {self.name}: {e}") from e
        return output.getvalue()


class JpegCodec(PillowCodec):
    """JPEG codec; other colour modes are flattened to RGB before encoding."""

    ENCODABLE_MODES = ("RGB", "L", "CMYK")

    def __init__(self):
        super().__init__("jpeg", "JPEG", "image/jpeg", (b"\xff\xd8\xff",))

    def _prepare(self, image: Image.Image) -> Image.Image:
        if image.mode in self.ENCODABLE_MODES:
            return image
        return image.convert("RGB")

    def _save_options(self, options: EncodeOptions) -> Dict[str, object]:
        return {"quality": options.quality}


class CodecRegistry:
    """Registry of codecs, looked up by sniffing content signatures."""

    def __init__(self, codecs: Optional[List[ImageCodec]] = None):
        self._codecs: Dict[str, ImageCodec] = {}
        for codec in codecs or []:
            self.register(codec)

    def register(self, codec: ImageCodec) -> None:
        self._codecs[codec.name] = codec

    @property
    def names(self) -> List[str]:
        return list(self._codecs)

    def get(self, name: str) -> ImageCodec:
        try:
            return self._codecs[name]
        except KeyError:
            raise DecodeError(f"No codec registered for format '{name}'") from None

    def for_mime_type(self, mime_type: str) -> ImageCodec:
        for codec in self._codecs.values():
            if codec.mime_type == mime_type:
                return codec
        raise DecodeError(f"No codec registered for MIME type '{mime_type}'")

    def detect(self, data: bytes) -> ImageCodec:
        """Pick the codec whose signature matches the leading bytes."""
        for codec in self._codecs.values():
            if codec.matches(data):
                return codec
        raise DecodeError(
            f"Unsupported image format (supported: {', '.join(self.names)})"
        )

    def probe(self, data: bytes) -> ImageHeader:
        return self.detect(data).probe(data)

    def decode(self, data: bytes) -> Image.Image:
        return self.detect(data).decode(data)

    def encode(
        self, image: Image.Image, name: str, options: Optional[EncodeOptions] = None
    ) -> bytes:
        return self.get(name).encode(image, options or EncodeOptions())


def default_registry() -> CodecRegistry:
    """Registry with the JPEG, PNG and GIF codecs."""
    return CodecRegistry(
        [
            JpegCodec(),
            PillowCodec("png", "PNG", "image/png", (b"\x89PNG\r\n\x1a\n",)),
            PillowCodec("gif", "GIF", "image/gif", (b"GIF87a", b"GIF89a")),
        ]
    )
