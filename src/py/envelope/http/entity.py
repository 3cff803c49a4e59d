import codecs
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import ClassVar

from mypy_extensions import mypyc_attr

from ..config import BODY_MAX_BYTES, BODY_MAX_CHARS, DEFAULT_ENCODING
from ..utils.codec import DECODERS, decoder
from ..utils.io import asBytes
from ..utils.lazy import Lazy
from .body import ByteSource, BytesSource, DecodingSource
from .errors import CharsetError, EncodingError
from .headers import (
	CONTENT_ENCODING,
	CONTENT_LENGTH,
	CONTENT_TYPE,
	ETAG,
	EXPIRES,
	LAST_MODIFIED,
)
from .mime import ContentType

# --
# == HTTP Entity
#
# An entity is the payload of an HTTP message along with its metadata. The
# metadata is kept apart from the body so that a server can answer a `HEAD`
# request, or set `Content-Length`, without ever creating the body.
#
# All methods are non-blocking: `body()` returns a source lazily, and only
# the reads of that source may suspend.

EPOCH: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)


# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def utc(value: datetime) -> datetime:
	"""Returns the datetime in UTC, naive values being taken as UTC."""
	return (
		value.replace(tzinfo=timezone.utc)
		if value.tzinfo is None
		else value.astimezone(timezone.utc)
	)


def httpdate(value: datetime) -> str:
	"""Formats the datetime as an IMF-fixdate, as used in HTTP headers."""
	return format_datetime(utc(value), usegmt=True)


def defaultEtag(
	lastModified: datetime | None, contentEncoding: str | None
) -> str | None:
	"""Derives an entity tag from the last modification time with sub-second
	precision, suffixed with the content encoding, like
	`t-53319ee8-623a7c0.gzip`. Returns `None` when `lastModified` is `None`."""
	if lastModified is None:
		return None
	delta = utc(lastModified) - EPOCH
	seconds: int = delta.days * 86400 + delta.seconds
	nanos: int = delta.microseconds * 1000
	tag = f"t-{seconds:x}-{nanos:x}"
	return f"{tag}.{contentEncoding}" if contentEncoding is not None else tag


def checkETag(tag: str) -> str:
	"""Ensures the tag only has legal entity-tag characters: 0x21-0xFF except
	the double quote and DEL. Returns the tag."""
	for c in tag:
		o = ord(c)
		if o < 0x21 or o == 0x22 or o == 0x7F or o > 0xFF:
			raise ValueError(f"Illegal character {c!r} in entity tag: {tag!r}")
	return tag


def formatETag(tag: str, weak: bool = False) -> str:
	"""Returns the wire form of the tag, `"tag"` or `W/"tag"`."""
	return f'{"W/" if weak else ""}"{checkETag(tag)}"'


def parseETag(value: str | None) -> tuple[str, bool] | None:
	"""Parses an `ETag` header value into `(tag, weak)`, returns `None` when
	the value is malformed."""
	if value is None:
		return None
	text = value.strip()
	weak = text.startswith("W/")
	if weak:
		text = text[2:]
	if len(text) < 2 or text[0] != '"' or text[-1] != '"':
		return None
	try:
		return checkETag(text[1:-1]), weak
	except ValueError:
		return None


def charsetName(contentType: ContentType | None) -> str:
	"""Returns the codec name for the charset declared in the content type,
	defaulting to UTF-8. Raises `CharsetError` for unknown charsets, and for
	codecs that don't decode bytes to text, like `base64`."""
	charset = contentType.charset if contentType else None
	if not charset:
		return DEFAULT_ENCODING
	try:
		# Only text encodings can decode bytes to `str`
		b"".decode(charset)
	except LookupError as e:
		raise CharsetError(charset) from e
	return codecs.lookup(charset).name


# -----------------------------------------------------------------------------
#
# ENTITY
#
# -----------------------------------------------------------------------------


@mypyc_attr(allow_interpreted_subclasses=True)
class HTTPEntity(ABC):
	"""The base class for entities, subclasses need at least to define
	`body()` and `contentType()`. An entity is sharable when `body()` may be
	called many times, possibly concurrently, each call returning a new
	independent source. Non-sharable entities raise `ReuseViolation` on the
	second call."""

	sharable: ClassVar[bool] = False

	@abstractmethod
	def body(self) -> ByteSource:
		"""Returns the body as a new source, never `None`. The caller owns
		the source and must close it."""

	@abstractmethod
	def contentType(self) -> ContentType | None: ...

	async def bodyBytes(self, maxBytes: int = BODY_MAX_BYTES) -> bytes:
		return await self.body().readAll(maxBytes)

	async def bodyString(self, maxChars: int = BODY_MAX_CHARS) -> str:
		"""Decodes the body as text using the content type's charset, or
		UTF-8. Fails with `EncodingError` when the body has a content
		encoding, as it must be decoded first (see `DecodedEntity`)."""
		encoding = self.contentEncoding()
		if encoding is not None:
			raise EncodingError(encoding)
		charset = charsetName(self.contentType())
		return await self.body().asString(maxChars, charset)

	def contentLength(self) -> int | None:
		"""Length of the body after encoding. For a response to a `HEAD`
		request this is the would-be length."""
		return None

	def contentEncoding(self) -> str | None:
		return None

	def lastModified(self) -> datetime | None:
		return None

	def expires(self) -> datetime | None:
		return None

	def etag(self) -> str | None:
		"""The entity tag, without the surrounding quotes. Defaults to a tag
		derived from `lastModified()` and `contentEncoding()`."""
		return defaultEtag(self.lastModified(), self.contentEncoding())

	def etagIsWeak(self) -> bool:
		return False

	def __str__(self) -> str:
		name = self.__class__.__name__
		return f"{name}({self.contentType()}, {self.contentLength()})"


def entityHeaders(entity: HTTPEntity) -> dict[str, str]:
	"""Returns the header fields that correspond to the entity's metadata.
	The body is never obtained."""
	res: dict[str, str] = {}
	if (content_type := entity.contentType()) is not None:
		res[CONTENT_TYPE] = str(content_type)
	if (content_length := entity.contentLength()) is not None:
		res[CONTENT_LENGTH] = str(content_length)
	if (content_encoding := entity.contentEncoding()) is not None:
		res[CONTENT_ENCODING] = content_encoding
	if (last_modified := entity.lastModified()) is not None:
		res[LAST_MODIFIED] = httpdate(last_modified)
	if (expires := entity.expires()) is not None:
		res[EXPIRES] = httpdate(expires)
	if (etag := entity.etag()) is not None:
		res[ETAG] = formatETag(etag, entity.etagIsWeak())
	return res


# -----------------------------------------------------------------------------
#
# ENTITIES
#
# -----------------------------------------------------------------------------


class BytesEntity(HTTPEntity):
	"""A sharable entity backed by bytes in memory."""

	sharable = True

	__slots__ = [
		"data",
		"_contentType",
		"_contentEncoding",
		"_lastModified",
		"_expires",
		"_etag",
		"_etagIsWeak",
	]

	def __init__(
		self,
		data: bytes,
		contentType: ContentType | str | None = None,
		*,
		contentEncoding: str | None = None,
		lastModified: datetime | None = None,
		expires: datetime | None = None,
		etag: str | None = None,
		etagIsWeak: bool = False,
	):
		self.data: bytes = data
		self._contentType: ContentType | None = (
			ContentType.Parse(contentType)
			if isinstance(contentType, str)
			else contentType
		)
		self._contentEncoding: str | None = contentEncoding
		self._lastModified: datetime | None = lastModified
		self._expires: datetime | None = expires
		self._etag: Lazy[str | None] = (
			Lazy(lambda: defaultEtag(self._lastModified, self._contentEncoding))
			if etag is None
			else Lazy.Of(checkETag(etag))
		)
		self._etagIsWeak: bool = etagIsWeak

	def body(self) -> ByteSource:
		return BytesSource(self.data)

	def contentType(self) -> ContentType | None:
		return self._contentType

	def contentLength(self) -> int | None:
		return len(self.data)

	def contentEncoding(self) -> str | None:
		return self._contentEncoding

	def lastModified(self) -> datetime | None:
		return self._lastModified

	def expires(self) -> datetime | None:
		return self._expires

	def etag(self) -> str | None:
		return self._etag.get()

	def etagIsWeak(self) -> bool:
		return self._etagIsWeak


class TextEntity(BytesEntity):
	"""A sharable entity for text, encoded with the charset of the content
	type (`text/plain; charset=utf-8` by default)."""

	def __init__(
		self,
		text: str,
		contentType: ContentType | str = "text/plain; charset=utf-8",
		**options,
	):
		content_type = (
			ContentType.Parse(contentType)
			if isinstance(contentType, str)
			else contentType
		)
		super().__init__(
			asBytes(text, charsetName(content_type)), content_type, **options
		)


class DecodedEntity(HTTPEntity):
	"""Wraps an entity with a content encoding (gzip, deflate) and exposes the
	decoded body. The decoded length is not known up front."""

	__slots__ = ["entity", "encoding"]

	def __init__(self, entity: HTTPEntity):
		encoding = entity.contentEncoding()
		if encoding is not None and encoding.strip().lower() not in DECODERS:
			raise EncodingError(encoding)
		self.entity: HTTPEntity = entity
		self.encoding: str | None = encoding

	@property
	def sharable(self) -> bool:  # type: ignore[override]
		return self.entity.sharable

	def body(self) -> ByteSource:
		source = self.entity.body()
		transform = decoder(self.encoding) if self.encoding else None
		return DecodingSource(source, transform) if transform else source

	def contentType(self) -> ContentType | None:
		return self.entity.contentType()

	def contentLength(self) -> int | None:
		return None if self.encoding else self.entity.contentLength()

	def lastModified(self) -> datetime | None:
		return self.entity.lastModified()

	def expires(self) -> datetime | None:
		return self.entity.expires()


# EOF
