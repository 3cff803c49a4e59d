from os import getenv
from .utils.io import DEFAULT_ENCODING  # NOQA: F401

# Number of proxy hops whose `X-Forwarded-*` headers are trusted, `0` ignores
# these headers entirely.
FORWARDED_TRUST: int = int(getenv("ENVELOPE_FORWARDED_TRUST", 0))

# Default limits when loading a whole body in memory
BODY_MAX_BYTES: int = int(getenv("ENVELOPE_BODY_MAX_BYTES", 8 * 1024 * 1024))
BODY_MAX_CHARS: int = int(getenv("ENVELOPE_BODY_MAX_CHARS", 8 * 1024 * 1024))

# Default chunk size for in-memory sources
CHUNK_SIZE: int = 64_000

# EOF
