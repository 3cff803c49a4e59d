from enum import Enum

# --
# == Request bookkeeping
#
# These states are maintained for the protocol driver, which uses them to
# decide whether to send `100 Continue`, and whether an unread body must be
# drained before a response can be written on the same connection. They are
# advisory and don't enforce anything by themselves.


class ContinueState(Enum):
	"""The `100 Continue` handshake."""

	NotExpected = 0
	Expected = 1
	FailedToSend = 2
	Sent = 3

	@staticmethod
	def Initial(expected: bool) -> "ContinueState":
		return ContinueState.Expected if expected else ContinueState.NotExpected

	@staticmethod
	def FromHeaders(expect: str | None, httpMinorVersion: int) -> "ContinueState":
		"""An `Expect: 100-continue` header is only honoured for HTTP/1.1."""
		return ContinueState.Initial(
			httpMinorVersion >= 1
			and expect is not None
			and expect.strip().lower() == "100-continue"
		)

	def next(self, sent: bool) -> "ContinueState":
		"""The state after the driver tried to send the interim response."""
		if self is ContinueState.Expected:
			return ContinueState.Sent if sent else ContinueState.FailedToSend
		else:
			return self

	@property
	def isPending(self) -> bool:
		return self is ContinueState.Expected


class BodyEvent(Enum):
	Read = 0
	End = 1
	Close = 2


class BodyState(Enum):
	"""Consumption of the request body."""

	NoBody = 0
	Unread = 1
	Reading = 2
	Consumed = 3

	@staticmethod
	def Initial(hasBody: bool, contentLength: int | None = None) -> "BodyState":
		if contentLength == 0:
			return BodyState.Consumed
		else:
			return BodyState.Unread if hasBody else BodyState.NoBody

	def next(self, event: BodyEvent) -> "BodyState":
		return BODY_TRANSITIONS.get((self, event), self)

	@property
	def mustDrain(self) -> bool:
		"""Tells if the body still has unread bytes on the connection."""
		return self is BodyState.Unread or self is BodyState.Reading


# Pairs that are not listed keep their state
BODY_TRANSITIONS: dict[tuple[BodyState, BodyEvent], BodyState] = {
	(BodyState.Unread, BodyEvent.Read): BodyState.Reading,
	(BodyState.Unread, BodyEvent.End): BodyState.Consumed,
	(BodyState.Unread, BodyEvent.Close): BodyState.Consumed,
	(BodyState.Reading, BodyEvent.End): BodyState.Consumed,
	(BodyState.Reading, BodyEvent.Close): BodyState.Consumed,
}


# EOF
