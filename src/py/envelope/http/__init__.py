from .errors import (  # NOQA: F401
	EntityError,
	ReuseViolation,
	EncodingError,
	CharsetError,
	Frozen,
	OverLimit,
	ResponseStarted,
)
from .body import (  # NOQA: F401
	ByteSource,
	BytesSource,
	ReaderSource,
	DecodingSource,
	StreamBodyReader,
)
from .headers import HeaderMap, headername  # NOQA: F401
from .mime import ContentType  # NOQA: F401
from .entity import (  # NOQA: F401
	HTTPEntity,
	BytesEntity,
	TextEntity,
	DecodedEntity,
	entityHeaders,
	formatETag,
	parseETag,
)
from .state import ContinueState, BodyState, BodyEvent  # NOQA: F401
from .forwarded import Origin, resolveForwarded  # NOQA: F401
from .request import HTTPRequestState, RequestEntity  # NOQA: F401

# EOF
