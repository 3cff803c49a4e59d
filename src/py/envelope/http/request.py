import time
from threading import Lock
from typing import ClassVar, Mapping

from .. import config
from ..utils.lazy import Lazy
from ..utils.logging import debug, logged, warning
from .body import ByteSource, BytesSource
from .entity import HTTPEntity
from .errors import Frozen, ResponseStarted, ReuseViolation
from .forms import FormData, parseCookies
from .forwarded import Origin, TAddress, resolveForwarded
from .headers import (
	CONTENT_ENCODING,
	CONTENT_LENGTH,
	CONTENT_TYPE,
	COOKIE,
	EXPECT,
	TRANSFER_ENCODING,
	X_FORWARDED_FOR,
	X_FORWARDED_PROTO,
	HeaderMap,
)
from .mime import ContentType
from .state import BodyEvent, BodyState, ContinueState

# --
# == Request state
#
# The request is populated field by field by the protocol driver, on a single
# thread, while it parses the request head. The driver then resolves the
# forwarded headers and seals the request, which freezes the headers and
# the raw fields. Handlers only ever see sealed requests.
#
# Sealing happens before the request is handed over, so plain fields need no
# synchronization. What may still change after sealing is the derived views
# (lazy cells, safe for concurrent first use) and the body bookkeeping (owned
# by whoever reads the body).


# -----------------------------------------------------------------------------
#
# REQUEST ENTITY
#
# -----------------------------------------------------------------------------


class RequestBodySource(ByteSource):
	"""Wraps the source of a request body to keep the request's body state
	up to date, and to reject reads once the response has started."""

	__slots__ = ["request", "source"]

	def __init__(self, request: "HTTPRequestState", source: ByteSource) -> None:
		super().__init__()
		self.request: HTTPRequestState = request
		self.source: ByteSource = source

	async def _read(self) -> bytes | None:
		request = self.request
		if request.responded:
			logged(warning) and warning(
				"Request body read after the response started",
				Method=request.method,
				URI=request.uri,
			)
			raise ResponseStarted("Request body can't be read once responding")
		request.stateBody = request.stateBody.next(BodyEvent.Read)
		chunk = await self.source.read()
		if chunk is None:
			request.stateBody = request.stateBody.next(BodyEvent.End)
		return chunk

	def _close(self) -> None:
		self.source.close()
		self.request.stateBody = self.request.stateBody.next(BodyEvent.Close)


class RequestEntity(HTTPEntity):
	"""The entity of an inbound request. It is not sharable: the body comes
	from the connection and can be obtained only once. Only `Content-Type`,
	`Content-Length` and `Content-Encoding` are reflected, other entity
	headers are response-only."""

	__slots__ = ["request", "source", "_taken", "_contentType"]

	def __init__(self, request: "HTTPRequestState", source: ByteSource):
		self.request: HTTPRequestState = request
		self.source: ByteSource = source
		# Acquired once and never released, this is a one-shot token
		self._taken: Lock = Lock()
		self._contentType: Lazy[ContentType | None] = Lazy(
			lambda: ContentType.Parse(self.request.headers.get(CONTENT_TYPE))
		)

	def body(self) -> ByteSource:
		if not self._taken.acquire(blocking=False):
			logged(warning) and warning(
				"Request body obtained more than once",
				Method=self.request.method,
				URI=self.request.uri,
			)
			raise ReuseViolation("Request body can only be obtained once")
		return RequestBodySource(self.request, self.source)

	def contentType(self) -> ContentType | None:
		return self._contentType.get()

	def contentLength(self) -> int | None:
		return parseContentLength(self.request.headers.get(CONTENT_LENGTH))

	def contentEncoding(self) -> str | None:
		return self.request.headers.get(CONTENT_ENCODING)


def parseContentLength(value: str | None) -> int | None:
	"""Returns the length as a non-negative integer, `None` if not valid."""
	if value is None:
		return None
	value = value.strip()
	# `isdigit` alone also accepts non-ASCII digits like `²`
	return int(value) if value.isascii() and value.isdigit() else None


# -----------------------------------------------------------------------------
#
# REQUEST
#
# -----------------------------------------------------------------------------


class HTTPRequestState:
	"""An inbound request, mutable while the driver populates it and
	read-only once sealed."""

	# These can't be assigned once the request is sealed
	SEALED_FIELDS: ClassVar[frozenset[str]] = frozenset(
		(
			"ip",
			"isHttps",
			"method",
			"uri",
			"httpMinorVersion",
			"timeReceived",
			"entity",
			"headers",
			"sealed",
		)
	)

	__slots__ = [
		"ip",
		"isHttps",
		"method",
		"uri",
		"httpMinorVersion",
		"timeReceived",
		"entity",
		"headers",
		"sealed",
		"responded",
		"stateContinue",
		"stateBody",
		"_formData",
		"_cookies",
	]

	@staticmethod
	def Create(
		method: str,
		uri: str,
		headers: dict[str, str] | HeaderMap | None = None,
		body: ByteSource | bytes | None = None,
		*,
		ip: TAddress | None = None,
		isHttps: bool = False,
		httpMinorVersion: int = 1,
		timeReceived: float | None = None,
		trust: int | None = None,
	) -> "HTTPRequestState":
		"""Creates a sealed request from a parsed request head. The request
		has an entity when a body is given or when the headers announce one.
		Forwarded headers are trusted up to `trust` hops, which defaults to
		the configured `FORWARDED_TRUST`. Raises `ValueError` when a positive
		`Content-Length` comes without a body, or disagrees with the given
		bytes."""
		request = HTTPRequestState(
			method,
			uri,
			ip=ip,
			isHttps=isHttps,
			httpMinorVersion=httpMinorVersion,
			timeReceived=timeReceived,
		)
		for k, v in (headers or {}).items():
			request.headers[k] = v
		length = parseContentLength(request.headers.get(CONTENT_LENGTH))
		has_body = (
			body is not None
			or length is not None
			or TRANSFER_ENCODING in request.headers
		)
		if body is None and length:
			raise ValueError(
				f"Request declares {CONTENT_LENGTH}: {length} but has no body"
			)
		elif isinstance(body, bytes) and length is not None and len(body) != length:
			raise ValueError(
				f"Request declares {CONTENT_LENGTH}: {length} "
				f"but its body has {len(body)} bytes"
			)
		if has_body:
			source = (
				BytesSource(body)
				if isinstance(body, bytes)
				else body
				if body is not None
				else BytesSource()
			)
			request.entity = RequestEntity(request, source)
		request.stateBody = BodyState.Initial(has_body, length)
		request.stateContinue = ContinueState.FromHeaders(
			request.headers.get(EXPECT), httpMinorVersion
		)
		request.fixForward(config.FORWARDED_TRUST if trust is None else trust)
		return request.seal()

	def __init__(
		self,
		method: str,
		uri: str,
		*,
		ip: TAddress | None = None,
		isHttps: bool = False,
		httpMinorVersion: int = 1,
		timeReceived: float | None = None,
	):
		self.sealed: bool = False
		self.ip: TAddress | None = ip
		self.isHttps: bool = isHttps
		self.method: str = method
		self.uri: str = uri
		# 0 or 1, -1 when the version could not be parsed
		self.httpMinorVersion: int = httpMinorVersion
		self.timeReceived: float = (
			time.time() if timeReceived is None else timeReceived
		)
		self.entity: HTTPEntity | None = None
		self.headers: HeaderMap = HeaderMap()
		# Once the response is being written, the body can't be read anymore
		self.responded: bool = False
		self.stateContinue: ContinueState = ContinueState.NotExpected
		self.stateBody: BodyState = BodyState.NoBody
		self._formData: Lazy[FormData] = Lazy(lambda: FormData.Parse(self.uri))
		self._cookies: Lazy[Mapping[str, str]] = Lazy(
			lambda: parseCookies(self.headers.get(COOKIE))
		)

	def __setattr__(self, name: str, value: object) -> None:
		if getattr(self, "sealed", False) and name in self.SEALED_FIELDS:
			raise Frozen(f"Request is sealed, can't set: {name}")
		super().__setattr__(name, value)

	# =========================================================================
	# DRIVER API
	# =========================================================================

	def fixForward(self, level: int) -> "HTTPRequestState":
		"""Updates `ip` and `isHttps` from the `X-Forwarded-*` headers,
		trusting `level` proxy hops. Invalid headers are ignored."""
		origin = resolveForwarded(
			level,
			self.headers.get(X_FORWARDED_FOR),
			self.headers.get(X_FORWARDED_PROTO),
			Origin(self.ip, self.isHttps),
		)
		if origin.ip != self.ip:
			self.ip = origin.ip
		if origin.isHttps != self.isHttps:
			self.isHttps = origin.isHttps
		return self

	def seal(self) -> "HTTPRequestState":
		if not self.sealed:
			self.headers.freeze()
			self.sealed = True
			logged(debug) and debug(
				"Request sealed",
				Method=self.method,
				URI=self.uri,
				IP=str(self.ip),
				HTTPS=self.isHttps,
			)
		return self

	def respond(self) -> "HTTPRequestState":
		"""Marks the response as started, the body can't be read anymore."""
		self.responded = True
		return self

	# =========================================================================
	# API
	# =========================================================================

	@property
	def httpVersion(self) -> str:
		return "HTTP/1.0" if self.httpMinorVersion == 0 else "HTTP/1.1"

	def header(self, name: str) -> str | None:
		return self.headers.get(name)

	def uriFormData(self) -> FormData:
		"""The parsed request target, raises `ValueError` if it is
		malformed."""
		return self._formData.get()

	def uriPath(self) -> str:
		"""The decoded path of the request target. Falls back to the raw
		path when the target can't be parsed."""
		try:
			return self.uriFormData().action
		except ValueError as e:
			logged(debug) and debug(
				"Malformed request target", URI=self.uri, Error=str(e)
			)
			return self.uri.split("?", 1)[0]

	def uriParam(self, name: str) -> str | None:
		"""The value of the query parameter, `None` when absent or when the
		target can't be parsed."""
		try:
			return self.uriFormData().param(name)
		except ValueError:
			return None

	def cookies(self) -> Mapping[str, str]:
		return self._cookies.get()

	def cookie(self, name: str) -> str | None:
		return self.cookies().get(name)

	def __str__(self) -> str:
		return f"Request({self.method} {self.uri} {self.httpVersion} {self.headers})"


# EOF
