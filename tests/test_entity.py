import asyncio
import gzip
from datetime import datetime, timezone

import pytest

from envelope.http.body import ByteSource
from envelope.http.entity import (
	BytesEntity,
	DecodedEntity,
	TextEntity,
	defaultEtag,
	entityHeaders,
	formatETag,
	parseETag,
)
from envelope.http.errors import CharsetError, EncodingError, OverLimit

MODIFIED = datetime.fromtimestamp(0x53319EE8, timezone.utc).replace(microsecond=103000)


async def drain(source: ByteSource) -> bytes:
	res = bytearray()
	while (chunk := await source.read()) is not None:
		res += chunk
		# Lets the other readers interleave
		await asyncio.sleep(0)
	source.close()
	return bytes(res)


def test_sharable_bodies_are_independent():
	data = bytes(range(256)) * 1000
	entity = BytesEntity(data, "application/octet-stream")
	assert entity.sharable

	async def main() -> list[bytes]:
		sources = [entity.body() for _ in range(8)]
		assert len({id(_) for _ in sources}) == 8
		return await asyncio.gather(*(drain(_) for _ in sources))

	results = asyncio.run(main())
	assert len(results) == 8
	assert all(_ == data for _ in results)
	# And it can still be read afterwards
	assert asyncio.run(entity.bodyBytes()) == data


def test_empty_entity_has_empty_body():
	entity = BytesEntity(b"")
	source = entity.body()
	assert source is not None
	assert asyncio.run(source.read()) is None
	assert entity.contentLength() == 0


def test_default_etag():
	assert defaultEtag(MODIFIED, None) == "t-53319ee8-623a7c0"
	assert defaultEtag(MODIFIED, "gzip") == "t-53319ee8-623a7c0.gzip"
	assert defaultEtag(None, "gzip") is None
	entity = BytesEntity(b"data", lastModified=MODIFIED, contentEncoding="gzip")
	assert entity.etag() == "t-53319ee8-623a7c0.gzip"
	assert BytesEntity(b"data", lastModified=MODIFIED).etag() == "t-53319ee8-623a7c0"
	assert BytesEntity(b"data", contentEncoding="gzip").etag() is None
	assert not entity.etagIsWeak()


def test_default_etag_is_deterministic():
	a = BytesEntity(b"a", lastModified=MODIFIED)
	b = BytesEntity(b"b", lastModified=MODIFIED.replace(tzinfo=None))
	assert a.etag() == b.etag()
	assert a.etag() != BytesEntity(b"c", lastModified=MODIFIED.replace(microsecond=1)).etag()


def test_explicit_etag():
	entity = BytesEntity(b"data", lastModified=MODIFIED, etag="v1", etagIsWeak=True)
	assert entity.etag() == "v1"
	assert entity.etagIsWeak()
	with pytest.raises(ValueError):
		BytesEntity(b"data", etag='with"quote')


def test_etag_wire_form():
	assert formatETag("abc") == '"abc"'
	assert formatETag("abc", True) == 'W/"abc"'
	assert formatETag("") == '""'
	assert parseETag('"abc"') == ("abc", False)
	assert parseETag(' W/"abc" ') == ("abc", True)
	assert parseETag("abc") is None
	assert parseETag('"a"b"') is None
	assert parseETag(None) is None
	with pytest.raises(ValueError):
		formatETag('a"b')


def test_body_string_rejects_encoded_bodies():
	for body in (b"", b"hello", gzip.compress(b"hello")):
		entity = BytesEntity(body, "text/plain", contentEncoding="gzip")
		with pytest.raises(EncodingError):
			asyncio.run(entity.bodyString())


def test_body_string_charset():
	assert asyncio.run(TextEntity("héllo").bodyString()) == "héllo"
	latin = BytesEntity("é".encode("latin-1"), "text/plain; charset=ISO-8859-1")
	assert asyncio.run(latin.bodyString()) == "é"
	# UTF-8 is the default
	assert asyncio.run(BytesEntity("é".encode("utf8"), "text/plain").bodyString()) == "é"
	assert asyncio.run(BytesEntity("é".encode("utf8")).bodyString()) == "é"
	with pytest.raises(CharsetError):
		asyncio.run(BytesEntity(b"x", "text/plain; charset=no-such-charset").bodyString())


def test_body_string_rejects_binary_codecs():
	# Known to `codecs`, but these don't decode bytes to text
	for charset in ("base64", "hex", "zlib", "rot13"):
		entity = BytesEntity(b"aGVsbG8=", f"text/plain; charset={charset}")
		with pytest.raises(CharsetError):
			asyncio.run(entity.bodyString())
	with pytest.raises(CharsetError):
		TextEntity("hello", "text/plain; charset=base64")


def test_body_limits():
	entity = BytesEntity(b"abcd")
	assert asyncio.run(entity.bodyBytes(4)) == b"abcd"
	with pytest.raises(OverLimit):
		asyncio.run(entity.bodyBytes(3))
	text = TextEntity("ééé")
	assert asyncio.run(text.bodyString(3)) == "ééé"
	with pytest.raises(OverLimit):
		asyncio.run(text.bodyString(2))


def test_entity_headers():
	modified = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
	entity = BytesEntity(
		b"abc",
		"text/html; charset=utf-8",
		lastModified=modified,
		etag="abc",
		etagIsWeak=True,
	)
	assert entityHeaders(entity) == {
		"Content-Type": "text/html; charset=utf-8",
		"Content-Length": "3",
		"Last-Modified": "Thu, 02 Jan 2020 03:04:05 GMT",
		"ETag": 'W/"abc"',
	}
	encoded = BytesEntity(b"", contentEncoding="gzip", expires=modified)
	headers = entityHeaders(encoded)
	assert headers["Content-Encoding"] == "gzip"
	assert headers["Expires"] == "Thu, 02 Jan 2020 03:04:05 GMT"
	assert "ETag" not in headers
	assert "Content-Type" not in headers


def test_decoded_entity():
	payload = "hello, world " * 100
	entity = BytesEntity(
		gzip.compress(payload.encode("utf8")),
		"text/plain",
		contentEncoding="gzip",
		lastModified=MODIFIED,
	)
	decoded = DecodedEntity(entity)
	assert decoded.sharable
	assert decoded.contentEncoding() is None
	assert decoded.contentLength() is None
	assert decoded.etag() == "t-53319ee8-623a7c0"
	assert asyncio.run(decoded.bodyString()) == payload
	# Entities without encoding pass through
	plain = DecodedEntity(TextEntity("plain"))
	assert plain.contentLength() == 5
	assert asyncio.run(plain.bodyString()) == "plain"
	with pytest.raises(EncodingError):
		DecodedEntity(BytesEntity(b"", contentEncoding="br"))
	# Content codings are case-insensitive
	upper = DecodedEntity(BytesEntity(gzip.compress(b"hi"), contentEncoding="GZIP"))
	assert asyncio.run(upper.bodyBytes()) == b"hi"
	assert asyncio.run(upper.bodyBytes()) == b"hi"


def test_decoded_entity_truncated():
	data = gzip.compress(b"hello" * 100)
	entity = DecodedEntity(BytesEntity(data[:-8], contentEncoding="gzip"))
	with pytest.raises(ValueError):
		asyncio.run(entity.bodyBytes())


# EOF
