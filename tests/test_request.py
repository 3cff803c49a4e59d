import asyncio
from ipaddress import ip_address

import pytest

from envelope.http.body import BytesSource
from envelope.http.errors import Frozen, ResponseStarted, ReuseViolation
from envelope.http.request import HTTPRequestState, RequestEntity
from envelope.http.state import BodyState, ContinueState

CLIENT = ip_address("10.0.0.1")


def request(
	method: str = "GET",
	uri: str = "/",
	headers: dict[str, str] | None = None,
	body: bytes | BytesSource | None = None,
	*,
	trust: int = 0,
	httpMinorVersion: int = 1,
) -> HTTPRequestState:
	return HTTPRequestState.Create(
		method,
		uri,
		headers,
		body,
		ip=CLIENT,
		trust=trust,
		httpMinorVersion=httpMinorVersion,
	)


def test_sealed_request_is_read_only():
	req = request(headers={"host": "example.com"})
	assert req.sealed
	assert req.headers.frozen
	assert req.header("Host") == "example.com"
	assert req.headers["HOST"] == "example.com"
	with pytest.raises(Frozen):
		req.headers["Host"] = "other"
	with pytest.raises(Frozen):
		req.ip = ip_address("1.2.3.4")
	with pytest.raises(Frozen):
		req.uri = "/other"
	with pytest.raises(Frozen):
		req.sealed = False
	# Bookkeeping remains writable
	req.respond()
	assert req.responded


def test_unsealed_request_is_mutable():
	req = HTTPRequestState("POST", "/upload", ip=CLIENT)
	assert not req.sealed
	req.headers["Content-Type"] = "text/plain"
	req.uri = "/other"
	req.seal()
	assert req.sealed
	assert req.uri == "/other"
	# Sealing twice is harmless
	assert req.seal() is req


def test_http_version():
	assert request().httpVersion == "HTTP/1.1"
	assert request(httpMinorVersion=0).httpVersion == "HTTP/1.0"
	assert request(httpMinorVersion=-1).httpVersion == "HTTP/1.1"


def test_uri_views():
	req = request(uri="/search%20me?q=hello+world&page=2")
	assert req.uriPath() == "/search me"
	assert req.uriParam("q") == "hello world"
	assert req.uriParam("page") == "2"
	assert req.uriParam("missing") is None
	assert req.uriFormData() is req.uriFormData()


def test_malformed_uri():
	req = request(uri="/a%zz?x=1")
	assert req.uriPath() == "/a%zz"
	assert req.uriParam("x") is None
	with pytest.raises(ValueError):
		req.uriFormData()


def test_cookies():
	req = request(headers={"Cookie": "session=abc; theme=dark"})
	assert req.cookie("session") == "abc"
	assert req.cookie("missing") is None
	assert req.cookies() is req.cookies()
	assert dict(request().cookies()) == {}


def test_forwarded_headers():
	headers = {
		"X-Forwarded-For": "9.9.9.9, 1.1.1.1, 2.2.2.2",
		"X-Forwarded-Proto": "https",
	}
	req = request(headers=headers, trust=2)
	assert req.ip == ip_address("1.1.1.1")
	assert req.isHttps
	req = request(headers=headers, trust=5)
	assert req.ip == ip_address("9.9.9.9")
	req = request(headers=headers, trust=0)
	assert req.ip == CLIENT
	assert not req.isHttps
	req = request(
		headers={"X-Forwarded-For": "not-an-ip", "X-Forwarded-Proto": "https"},
		trust=1,
	)
	assert req.ip == CLIENT
	assert not req.isHttps


def test_no_body():
	req = request()
	assert req.entity is None
	assert req.stateBody is BodyState.NoBody
	assert not req.stateBody.mustDrain


def test_empty_body_is_consumed():
	req = request("POST", headers={"Content-Length": "0"})
	assert req.entity is not None
	assert req.stateBody is BodyState.Consumed
	assert asyncio.run(req.entity.bodyBytes()) == b""
	assert req.stateBody is BodyState.Consumed


def test_request_entity_metadata():
	req = request(
		"POST",
		headers={
			"Content-Type": "application/json; charset=utf-8",
			"Content-Length": "2",
			"Content-Encoding": "gzip",
			"Last-Modified": "Thu, 02 Jan 2020 03:04:05 GMT",
		},
		body=b"{}",
	)
	entity = req.entity
	assert isinstance(entity, RequestEntity)
	assert not entity.sharable
	assert entity.contentType() is not None
	assert entity.contentType().mediaType == "application/json"
	assert entity.contentLength() == 2
	assert entity.contentEncoding() == "gzip"
	# Response-only metadata is not reflected
	assert entity.lastModified() is None
	assert entity.etag() is None
	assert request("POST", headers={"Content-Length": "x"}, body=b"").entity.contentLength() is None


def test_content_length_non_ascii_digits():
	# `²` is a digit for `str.isdigit`, but not a valid length
	req = request("POST", headers={"Content-Length": "²"}, body=b"ab")
	assert req.entity.contentLength() is None
	assert req.stateBody is BodyState.Unread
	assert asyncio.run(req.entity.bodyBytes()) == b"ab"


def test_content_length_matches_body():
	with pytest.raises(ValueError):
		request("POST", headers={"Content-Length": "5"})
	with pytest.raises(ValueError):
		request("POST", headers={"Content-Length": "5"}, body=b"abc")
	# A source is trusted to deliver the declared length
	req = request("POST", headers={"Content-Length": "3"}, body=BytesSource(b"abc"))
	assert req.entity.contentLength() == 3
	assert asyncio.run(req.entity.bodyBytes()) == b"abc"


def test_request_body_single_use():
	req = request("POST", headers={"Content-Length": "5"}, body=b"hello")
	entity = req.entity
	assert req.stateBody is BodyState.Unread
	assert asyncio.run(entity.bodyString()) == "hello"
	assert req.stateBody is BodyState.Consumed
	with pytest.raises(ReuseViolation):
		entity.body()
	# Even when the first source was closed without reading
	other = request("POST", headers={"Content-Length": "5"}, body=b"hello").entity
	other.body().close()
	with pytest.raises(ReuseViolation):
		other.body()
	with pytest.raises(ReuseViolation):
		other.body()


def test_request_body_state():
	req = request(
		"POST", headers={"Content-Length": "6"}, body=BytesSource(b"abcdef", size=2)
	)

	async def main() -> None:
		source = req.entity.body()
		assert req.stateBody is BodyState.Unread
		assert await source.read() == b"ab"
		assert req.stateBody is BodyState.Reading
		assert req.stateBody.mustDrain
		source.close()
		assert req.stateBody is BodyState.Consumed

	asyncio.run(main())


def test_request_body_after_response():
	req = request("POST", headers={"Content-Length": "5"}, body=b"hello")
	source = req.entity.body()
	req.respond()
	with pytest.raises(ResponseStarted):
		asyncio.run(source.read())


def test_continue_state():
	headers = {"Expect": "100-continue", "Content-Length": "3"}
	assert (
		request("POST", headers=headers, body=b"abc").stateContinue
		is ContinueState.Expected
	)
	assert (
		request("POST", headers=headers, body=b"abc", httpMinorVersion=0).stateContinue
		is ContinueState.NotExpected
	)
	assert request().stateContinue is ContinueState.NotExpected


# EOF
