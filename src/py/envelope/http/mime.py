from typing import NamedTuple

from ..utils import unquote


class ContentType(NamedTuple):
	"""A parsed `Content-Type` value, `type/subtype` plus parameters. Type,
	subtype and parameter names are lowercase."""

	type: str
	subtype: str
	params: tuple[tuple[str, str], ...] = ()

	@staticmethod
	def Parse(text: str | None) -> "ContentType | None":
		"""Parses the given header value, returns `None` when it is not
		a valid media type."""
		if not text:
			return None
		media, *rest = splitParams(text)
		i = media.find("/")
		if i <= 0 or i == len(media) - 1:
			return None
		kind, sub = media[:i].strip().lower(), media[i + 1 :].strip().lower()
		if not kind or not sub or " " in kind or " " in sub or "/" in sub:
			return None
		params: list[tuple[str, str]] = []
		for item in rest:
			j = item.find("=")
			if j <= 0:
				# Parameters without a value are tolerated but ignored
				continue
			params.append((item[:j].strip().lower(), unquote(item[j + 1 :])))
		return ContentType(kind, sub, tuple(params))

	@property
	def mediaType(self) -> str:
		return f"{self.type}/{self.subtype}"

	def param(self, name: str) -> str | None:
		key = name.lower()
		for k, v in self.params:
			if k == key:
				return v
		return None

	@property
	def charset(self) -> str | None:
		return self.param("charset")

	def __str__(self) -> str:
		params = "".join(
			f"; {k}={v if v and all(c.isalnum() or c in '-_.+' for c in v) else quote(v)}"
			for k, v in self.params
		)
		return f"{self.type}/{self.subtype}{params}"


def quote(value: str) -> str:
	"""Quotes the value, escaping quotes and backslashes."""
	return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def splitParams(text: str) -> list[str]:
	"""Splits the text on `;`, ignoring separators within quoted strings."""
	res: list[str] = []
	start: int = 0
	quoted: bool = False
	escaped: bool = False
	for i, c in enumerate(text):
		if escaped:
			escaped = False
		elif quoted and c == "\\":
			escaped = True
		elif c == '"':
			quoted = not quoted
		elif c == ";" and not quoted:
			res.append(text[start:i].strip())
			start = i + 1
	res.append(text[start:].strip())
	return res


# EOF
