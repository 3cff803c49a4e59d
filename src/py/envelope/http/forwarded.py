from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import NamedTuple, TypeAlias

from ..utils.logging import debug, logged

# --
# == Forwarded chains
#
# Behind load balancers, the client address and scheme seen on the
# connection are the ones of the last proxy. Proxies record the original
# values in `X-Forwarded-For` and `X-Forwarded-Proto`, each hop appending to
# the right. With a trust depth of `n`, the `n`-th value from the right is
# the one added by the outermost proxy we trust.
#
# Anything unexpected in these headers means the proxies are not configured
# as we think, in which case the headers are ignored and the values observed
# on the connection are kept. Nothing here raises, and nothing blocks: the
# address must be a literal IP, never a host name to resolve.

TAddress: TypeAlias = IPv4Address | IPv6Address


class Origin(NamedTuple):
	"""The client address and scheme of a request."""

	ip: TAddress | None
	isHttps: bool


def pick(text: str, level: int) -> str:
	"""Returns the `level`-th comma-separated token counting from the right
	(1 being the rightmost), or the leftmost when there are fewer tokens.
	The token is stripped of surrounding whitespace."""
	end: int = len(text)
	while True:
		comma = text.rfind(",", 0, end)
		if comma == -1 or level <= 1:
			return text[comma + 1 : end].strip()
		level -= 1
		end = comma


def parseAddress(text: str) -> TAddress | None:
	"""Parses the text as a literal IPv4 or IPv6 address, `None` otherwise."""
	try:
		return ip_address(text)
	except ValueError:
		return None


def parseScheme(text: str) -> bool | None:
	"""Returns `True` for `https`, `False` for `http` and `None` for anything
	else."""
	scheme = text.lower()
	return True if scheme == "https" else False if scheme == "http" else None


def resolveForwarded(
	level: int,
	forwardedFor: str | None,
	forwardedProto: str | None,
	origin: Origin,
) -> Origin:
	"""Returns the origin of a request given the trust depth (`level`) and the
	raw values of the `X-Forwarded-For` and `X-Forwarded-Proto` headers. The
	given origin is returned unchanged when the headers can't be trusted."""
	if level < 0:
		raise ValueError(f"Trust depth must be positive, got: {level}")
	if level == 0 or forwardedFor is None:
		return origin
	# We select and validate the address first, nothing is applied unless
	# the address is valid.
	token = pick(forwardedFor, level)
	ip = parseAddress(token)
	if ip is None:
		logged(debug) and debug(
			"Ignoring forwarded headers with invalid address",
			Level=level,
			For=forwardedFor,
			Proto=forwardedProto,
		)
		return origin
	# An absent or unknown scheme leaves the scheme as observed
	is_https = parseScheme(pick(forwardedProto, level)) if forwardedProto else None
	return Origin(ip, origin.isHttps if is_https is None else is_https)


# EOF
