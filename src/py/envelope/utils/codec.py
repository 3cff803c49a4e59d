import zlib
from typing import Literal
from abc import ABC, abstractmethod

from mypy_extensions import mypyc_attr


@mypyc_attr(allow_interpreted_subclasses=True)
class BytesTransform(ABC):
	"""An abstract bytes transform."""

	@abstractmethod
	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		"""Feeds bytes to the transform, may return a value. `False` means
		the input is malformed."""

	@abstractmethod
	def flush(self) -> bytes | None | Literal[False]:
		"""Returns whatever the transform still buffers, `False` if the
		input ended prematurely."""


class IdemCodec(BytesTransform):
	"""A codec that doesn't change anything, used for the `identity`
	content coding."""

	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		return chunk

	def flush(self) -> bytes | None | Literal[False]:
		return None


class ZlibDecoder(BytesTransform):
	"""Decodes `gzip` or `deflate` content codings."""

	__slots__ = ["decompressor"]

	def __init__(self, wbits: int) -> None:
		super().__init__()
		self.decompressor = zlib.decompressobj(wbits=wbits)

	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		try:
			return self.decompressor.decompress(chunk)
		except zlib.error:
			return False

	def flush(self) -> bytes | None | Literal[False]:
		try:
			res = self.decompressor.flush()
		except zlib.error:
			return False
		if not self.decompressor.eof:
			return False
		return res or None


class GZipDecoder(ZlibDecoder):
	"""Decodes bytes as Gzip"""

	def __init__(self) -> None:
		super().__init__(wbits=zlib.MAX_WBITS | 16)


class DeflateDecoder(ZlibDecoder):
	"""Decodes the `deflate` coding, which is the zlib format."""

	def __init__(self) -> None:
		super().__init__(wbits=zlib.MAX_WBITS)


# NOTE: Keys are lowercase content-coding tokens
DECODERS: dict[str, type[BytesTransform]] = {
	"gzip": GZipDecoder,
	"x-gzip": GZipDecoder,
	"deflate": DeflateDecoder,
	"identity": IdemCodec,
}


def decoder(encoding: str) -> BytesTransform | None:
	"""Returns a new decoder for the given content coding, `None` when
	unsupported."""
	factory = DECODERS.get(encoding.strip().lower())
	return factory() if factory else None


# EOF
