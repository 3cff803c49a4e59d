def unquote(text: str) -> str:
	"""Strips surrounding whitespace and a pair of matching quotes, resolving
	backslash escapes within a double-quoted string."""
	text = text.strip() if text else text
	if len(text) < 2:
		return text
	if text[0] == text[-1] == '"':
		res: list[str] = []
		escaped: bool = False
		for c in text[1:-1]:
			if escaped or c != "\\":
				res.append(c)
				escaped = False
			else:
				escaped = True
		return "".join(res)
	elif text[0] == text[-1] == "'":
		return text[1:-1]
	else:
		return text


# EOF
