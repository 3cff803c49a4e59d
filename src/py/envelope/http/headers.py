from functools import lru_cache
from typing import Iterable, Iterator, MutableMapping

from .errors import Frozen

# Header names used by entities and requests
CONTENT_TYPE: str = "Content-Type"
CONTENT_LENGTH: str = "Content-Length"
CONTENT_ENCODING: str = "Content-Encoding"
LAST_MODIFIED: str = "Last-Modified"
EXPIRES: str = "Expires"
ETAG: str = "ETag"
COOKIE: str = "Cookie"
EXPECT: str = "Expect"
TRANSFER_ENCODING: str = "Transfer-Encoding"
X_FORWARDED_FOR: str = "X-Forwarded-For"
X_FORWARDED_PROTO: str = "X-Forwarded-Proto"

HEADERNAME_CACHE_SIZE: int = 1024


# Header names come from clients, so the cache must stay bounded
@lru_cache(maxsize=HEADERNAME_CACHE_SIZE)
def headername(name: str) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	return "-".join(_.capitalize() for _ in name.lower().strip().split("-"))


class HeaderMap(MutableMapping[str, str]):
	"""An ordered, case-insensitive mapping of header names to values. It is
	mutable until `freeze()` is called, after which any mutation raises
	`Frozen`. Freezing is one-way."""

	__slots__ = ["_values", "_frozen"]

	def __init__(self, headers: Iterable[tuple[str, str]] | dict[str, str] = ()):
		self._values: dict[str, str] = {}
		self._frozen: bool = False
		for k, v in headers.items() if isinstance(headers, dict) else headers:
			self[k] = v

	@property
	def frozen(self) -> bool:
		return self._frozen

	def freeze(self) -> "HeaderMap":
		if not self._frozen:
			self._frozen = True
		return self

	def __setattr__(self, name: str, value: object) -> None:
		if getattr(self, "_frozen", False):
			raise Frozen(f"Header map is frozen, can't set: {name}")
		super().__setattr__(name, value)

	def __getitem__(self, name: str) -> str:
		return self._values[headername(name)]

	def __setitem__(self, name: str, value: str) -> None:
		if self.frozen:
			raise Frozen(f"Header map is frozen, can't set: {name}")
		self._values[headername(name)] = value

	def __delitem__(self, name: str) -> None:
		if self.frozen:
			raise Frozen(f"Header map is frozen, can't delete: {name}")
		del self._values[headername(name)]

	def __contains__(self, name: object) -> bool:
		return isinstance(name, str) and headername(name) in self._values

	def __iter__(self) -> Iterator[str]:
		return iter(self._values)

	def __len__(self) -> int:
		return len(self._values)

	def add(self, name: str, value: str) -> "HeaderMap":
		"""Adds a value to the header, joining repeated fields with a comma
		as allowed for list-based fields."""
		previous = self.get(name)
		self[name] = value if previous is None else f"{previous}, {value}"
		return self

	def __str__(self) -> str:
		return f"HeaderMap({'frozen ' if self.frozen else ''}{self._values})"


# EOF
