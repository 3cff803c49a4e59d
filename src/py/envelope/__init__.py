from .http import (  # NOQA: F401
	HTTPEntity,
	BytesEntity,
	TextEntity,
	DecodedEntity,
	HTTPRequestState,
	HeaderMap,
	ContentType,
	ByteSource,
	EntityError,
	ReuseViolation,
	EncodingError,
	CharsetError,
	Frozen,
	OverLimit,
	ResponseStarted,
)
from .utils.lazy import Lazy  # NOQA: F401

__version__ = "1.0.0"

# EOF
