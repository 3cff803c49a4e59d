DEFAULT_ENCODING: str = "utf8"


def asBytes(
	value: str | bytes | bytearray | None, encoding: str = DEFAULT_ENCODING
) -> bytes:
	if isinstance(value, bytes):
		return value
	elif isinstance(value, bytearray):
		return bytes(value)
	elif isinstance(value, str):
		return value.encode(encoding)
	elif value is None:
		return b""
	else:
		raise ValueError(f"Expected bytes or str, got: {value}")


# EOF
