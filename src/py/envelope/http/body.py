import asyncio
import codecs
from abc import ABC, abstractmethod

from mypy_extensions import mypyc_attr

from ..config import CHUNK_SIZE
from ..utils.codec import BytesTransform
from ..utils.logging import debug, logged, warning
from .errors import OverLimit

# --
# == Byte sources
#
# A `ByteSource` is what an entity's `body()` returns: a sequence of chunks
# read with `await source.read()`, where `None` denotes the end of data.
# Reads are the only suspension points. Closing is idempotent and can happen
# at any time, it is how a consumer cancels a body it won't read.

BODY_READER_TIMEOUT: float = 1.0


@mypyc_attr(allow_interpreted_subclasses=True)
class ByteSource(ABC):
	"""A stream of bytes, owned and eventually closed by a single reader."""

	__slots__ = ["closed"]

	def __init__(self) -> None:
		self.closed: bool = False

	async def read(self) -> bytes | None:
		"""Returns the next non-empty chunk, or `None` at the end of data."""
		if self.closed:
			raise ValueError("Read on a closed source")
		return await self._read()

	def close(self) -> None:
		if not self.closed:
			self.closed = True
			self._close()

	@abstractmethod
	async def _read(self) -> bytes | None: ...

	def _close(self) -> None:
		pass

	async def readAll(self, maxBytes: int) -> bytes:
		"""Reads the remaining bytes, failing with `OverLimit` when there are
		more than `maxBytes`. The source is closed afterwards."""
		res = bytearray()
		try:
			while (chunk := await self.read()) is not None:
				res += chunk
				if len(res) > maxBytes:
					raise OverLimit(maxBytes)
		finally:
			self.close()
		return bytes(res)

	async def asString(self, maxChars: int, charset: str) -> str:
		"""Decodes the remaining bytes with the given charset, failing with
		`OverLimit` when there are more than `maxChars` characters. The
		source is closed afterwards."""
		decoder = codecs.getincrementaldecoder(charset)(errors="strict")
		res: list[str] = []
		count: int = 0
		try:
			while True:
				chunk = await self.read()
				text = decoder.decode(chunk or b"", chunk is None)
				count += len(text)
				if count > maxChars:
					raise OverLimit(maxChars, "chars")
				res.append(text)
				if chunk is None:
					break
		finally:
			self.close()
		return "".join(res)

	def __str__(self) -> str:
		return f"{self.__class__.__name__}({'closed' if self.closed else 'open'})"


class BytesSource(ByteSource):
	"""A source over bytes held in memory, yielded by chunks of `size`. The
	bytes are never mutated, so many sources can share them."""

	__slots__ = ["data", "offset", "size"]

	def __init__(self, data: bytes = b"", size: int = CHUNK_SIZE) -> None:
		super().__init__()
		self.data: bytes = data
		self.offset: int = 0
		self.size: int = max(1, size)

	async def _read(self) -> bytes | None:
		if self.offset >= len(self.data):
			return None
		end = self.offset + self.size
		chunk = self.data[self.offset : end]
		self.offset = min(end, len(self.data))
		return chunk

	def _close(self) -> None:
		self.data = b""


# -----------------------------------------------------------------------------
#
# READERS
#
# -----------------------------------------------------------------------------


@mypyc_attr(allow_interpreted_subclasses=True)
class BodyReader(ABC):
	"""A base class for being able to read a request body, typically from a
	connection."""

	__slots__: list[str] = []

	async def read(
		self, timeout: float = BODY_READER_TIMEOUT, size: int | None = None
	) -> bytes | None:
		"""Returns the next chunk, or `None` once the connection has no more
		data."""
		chunk = await self._read(timeout=timeout, size=size)
		return chunk if chunk else None

	@abstractmethod
	async def _read(
		self, timeout: float = BODY_READER_TIMEOUT, size: int | None = None
	) -> bytes | None: ...


class StreamBodyReader(BodyReader):
	"""Reads a body from an asyncio stream reader."""

	__slots__ = ["reader", "size"]

	def __init__(self, reader: asyncio.StreamReader, size: int = CHUNK_SIZE) -> None:
		self.reader: asyncio.StreamReader = reader
		self.size: int = size

	async def _read(
		self, timeout: float = BODY_READER_TIMEOUT, size: int | None = None
	) -> bytes | None:
		logged(debug) and debug(
			"Reading body",
			Reader=f"{id(self.reader):x}",
			Size=size or self.size,
			Timeout=timeout,
		)
		return await asyncio.wait_for(
			self.reader.read(min(size, self.size) if size else self.size),
			timeout=timeout,
		)


class ReaderSource(ByteSource):
	"""A source that yields bytes already buffered by the protocol driver
	(`existing`) and then reads up to `expected` more bytes from the reader.
	When `expected` is `None`, reads until the reader reports the end."""

	__slots__ = ["reader", "existing", "expected", "remaining", "count", "timeout"]

	def __init__(
		self,
		reader: BodyReader | None,
		expected: int | None = None,
		existing: bytes | None = None,
		*,
		timeout: float = BODY_READER_TIMEOUT,
	) -> None:
		super().__init__()
		self.reader: BodyReader | None = reader
		self.existing: bytes | None = existing
		self.expected: int | None = expected
		self.remaining: int | None = expected
		self.count: int = 0
		self.timeout: float = timeout

	async def _read(self) -> bytes | None:
		if self.existing:
			chunk = self.existing
			self.existing = None
			if self.remaining is not None:
				chunk = chunk[: self.remaining]
				self.remaining -= len(chunk)
			self.count += len(chunk)
			if chunk:
				return chunk
		if self.reader is None or self.remaining == 0:
			return None
		try:
			payload = await self.reader.read(timeout=self.timeout, size=self.remaining)
		except TimeoutError:
			logged(warning) and warning(
				"Request body loading timed out",
				Remaining=self.remaining,
				Read=self.count,
			)
			raise
		if payload is None:
			if self.remaining:
				raise EOFError(
					f"Body ended after {self.count} bytes, expected {self.expected}"
				)
			return None
		self.count += len(payload)
		if self.remaining is not None:
			self.remaining -= len(payload)
		return payload

	def _close(self) -> None:
		self.existing = None
		self.reader = None


class DecodingSource(ByteSource):
	"""Applies a bytes transform (typically a content-coding decoder) to the
	chunks of another source."""

	__slots__ = ["source", "transform", "ended"]

	def __init__(self, source: ByteSource, transform: BytesTransform) -> None:
		super().__init__()
		self.source: ByteSource = source
		self.transform: BytesTransform = transform
		self.ended: bool = False

	async def _read(self) -> bytes | None:
		while not self.ended:
			chunk = await self.source.read()
			res = (
				self.transform.flush()
				if chunk is None
				else self.transform.feed(chunk, True)
			)
			if res is False:
				raise ValueError("Malformed encoded body")
			if chunk is None:
				self.ended = True
			if res:
				return res
		return None

	def _close(self) -> None:
		self.source.close()


# EOF
