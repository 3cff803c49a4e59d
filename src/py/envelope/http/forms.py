from types import MappingProxyType
from typing import Iterator, Mapping, NamedTuple

from ..utils.io import DEFAULT_ENCODING

# -----------------------------------------------------------------------------
#
# QUERY & FORM DATA
#
# -----------------------------------------------------------------------------

HEX: str = "0123456789abcdefABCDEF"


def unescape(text: str, plus: bool = True) -> str:
	"""Decodes percent-escapes (and `+` as space when `plus` is set) as
	UTF-8, raising `ValueError` on malformed escapes or invalid UTF-8."""
	if "%" not in text and not (plus and "+" in text):
		return text
	res = bytearray()
	i: int = 0
	n: int = len(text)
	while i < n:
		c = text[i]
		if c == "%":
			if i + 2 >= n:
				raise ValueError(f"Truncated percent-escape at {i}: {text!r}")
			h = text[i + 1 : i + 3]
			if h[0] not in HEX or h[1] not in HEX:
				raise ValueError(f"Malformed percent-escape at {i}: {text!r}")
			res.append(int(h, 16))
			i += 3
		elif plus and c == "+":
			res.append(0x20)
			i += 1
		else:
			res += c.encode(DEFAULT_ENCODING)
			i += 1
	return res.decode(DEFAULT_ENCODING)


class FormData(NamedTuple):
	"""The action (decoded path) of a request target and its query
	parameters. Only the first value of a repeated parameter is returned by
	`param()`, all are in `params`."""

	action: str
	params: tuple[tuple[str, str], ...] = ()

	@staticmethod
	def Parse(target: str) -> "FormData":
		"""Parses a request target (origin or absolute form), raising
		`ValueError` when it is malformed."""
		if not target:
			raise ValueError("Empty request target")
		if any(ord(c) < 0x21 or ord(c) == 0x7F for c in target):
			raise ValueError(f"Illegal character in request target: {target!r}")
		path, _, query = target.partition("?")
		# The fragment is never sent, but we don't fail on it either
		query = query.partition("#")[0]
		if path == "*":
			pass
		elif not path.startswith("/"):
			scheme, sep, rest = path.partition("://")
			if not sep or scheme.lower() not in ("http", "https"):
				raise ValueError(f"Unsupported request target: {target!r}")
			i = rest.find("/")
			path = rest[i:] if i >= 0 else "/"
		return FormData(unescape(path, plus=False), tuple(parseQuery(query)))

	def param(self, name: str) -> str | None:
		for k, v in self.params:
			if k == name:
				return v
		return None

	def paramValues(self, name: str) -> list[str]:
		return [v for k, v in self.params if k == name]

	def paramNames(self) -> list[str]:
		return list(dict.fromkeys(k for k, _ in self.params))


def parseQuery(text: str) -> Iterator[tuple[str, str]]:
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			yield unescape(item), ""
		else:
			yield unescape(kv[0]), unescape(kv[1])


# -----------------------------------------------------------------------------
#
# COOKIES
#
# -----------------------------------------------------------------------------


class CookieValue(NamedTuple):
	key: str
	value: str | None
	start: int
	end: int


def iparseCookie(text: str) -> Iterator[CookieValue]:
	o = 0
	n = len(text)
	while o < n:
		# We look for a `;` field separator
		i = text.find(";", o)
		if i == -1:
			i = n
		# We look for a `=` value separator
		j = text.find("=", o)
		if j == -1 or j > i:
			# We don't have a value
			yield CookieValue(text[o:i].strip(), None, o, i)
		else:
			yield CookieValue(text[o:j].strip(), text[j + 1 : i].strip(), o, i)
		o = i + 1


def parseCookies(text: str | None) -> Mapping[str, str]:
	"""Returns a read-only mapping of the cookies in a `Cookie` header. Never
	fails: pairs without a name or a value are skipped, the first of
	duplicate names wins, and quoted values are unquoted."""
	res: dict[str, str] = {}
	for cookie in iparseCookie(text or ""):
		if not cookie.key or cookie.value is None or cookie.key in res:
			continue
		v = cookie.value
		if len(v) >= 2 and v[0] == v[-1] == '"':
			v = v[1:-1]
		res[cookie.key] = v
	return MappingProxyType(res)


# EOF
