# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class EntityError(Exception):
	"""Base class for the errors raised by entities and requests."""


class ReuseViolation(EntityError):
	"""The body of a non-sharable entity was requested more than once."""


class EncodingError(EntityError):
	"""The body carries a content encoding that needs decoding first, or an
	encoding that is not supported."""

	def __init__(self, encoding: str):
		super().__init__(f"Entity has a content encoding: {encoding}")
		self.encoding: str = encoding


class CharsetError(EntityError):
	"""The charset declared by the content type is not known."""

	def __init__(self, charset: str):
		super().__init__(f"Unsupported charset: {charset}")
		self.charset: str = charset


class Frozen(EntityError):
	"""A frozen header map (or a sealed request) was mutated."""


class OverLimit(EntityError):
	"""The body is larger than the limit given to the read."""

	def __init__(self, limit: int, unit: str = "bytes"):
		super().__init__(f"Body exceeds {limit} {unit}")
		self.limit: int = limit


class ResponseStarted(EntityError):
	"""The request body was read after the response started."""


# EOF
