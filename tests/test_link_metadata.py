import time

import httpx
import pytest

from later.services.link_metadata import MAX_BODY_BYTES, fetch_link_preview, is_safe_http_url


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "url",
    [
        "http://localhost/admin",
        "http://printer.local/",
        "http://127.0.0.1:8080/",
        "http://10.1.2.3/",
        "http://172.16.0.5/",
        "http://192.168.1.1/",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/",
        "ftp://example.com/file",
        "not a url",
    ],
)
def test_unsafe_urls_are_rejected(url):
    assert not is_safe_http_url(url)


def test_public_urls_are_allowed():
    assert is_safe_http_url("https://example.com/page")
    assert is_safe_http_url("http://93.184.216.34/")


def test_fetch_extracts_title():
    def handler(request):
        assert request.headers["user-agent"] == "LaterTest/1.0"
        return httpx.Response(200, text="<html><head><title>  Fish &amp; Chips </title></head></html>")

    client = httpx.Client(transport=httpx.MockTransport(handler), headers={"user-agent": "LaterTest/1.0"})
    preview = fetch_link_preview("https://food.example/recipe", client=client)
    assert preview.metadata_status == "ready"
    assert preview.preview_title == "Fish & Chips"
    assert preview.preview_icon_url == "https://www.google.com/s2/favicons?domain=food.example&sz=64"


def test_unsafe_url_is_never_requested():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(200, text="<title>internal</title>")

    preview = fetch_link_preview("http://127.0.0.1/secret", client=_client(handler))
    assert preview.metadata_status == "failed"
    assert preview.preview_title is None
    assert calls == []


def test_redirect_into_private_network_is_refused():
    calls = []

    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(302, headers={"location": "http://10.0.0.1/admin"})

    preview = fetch_link_preview("https://short.example/abc", client=_client(handler))
    assert preview.metadata_status == "failed"
    assert calls == ["https://short.example/abc"]


def test_safe_redirect_is_followed():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(301, headers={"location": "/new"})
        return httpx.Response(200, text="<title>Moved here</title>")

    preview = fetch_link_preview("https://site.example/old", client=_client(handler))
    assert preview.metadata_status == "ready"
    assert preview.preview_title == "Moved here"


def test_redirect_loop_gives_up():
    def handler(request):
        return httpx.Response(302, headers={"location": "https://loop.example/again"})

    preview = fetch_link_preview("https://loop.example/start", client=_client(handler))
    assert preview.metadata_status == "failed"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, text="<title>Not found</title>"),
        httpx.Response(200, text="<html><body>no title here</body></html>"),
    ],
)
def test_non_success_or_missing_title_fails(response):
    preview = fetch_link_preview("https://example.com/x", client=_client(lambda request: response))
    assert preview.metadata_status == "failed"
    assert preview.preview_icon_url == "https://www.google.com/s2/favicons?domain=example.com&sz=64"


def test_network_error_is_absorbed():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    preview = fetch_link_preview("https://down.example/", client=_client(handler))
    assert preview.metadata_status == "failed"
    assert preview.preview_title is None


def test_body_read_stops_at_byte_cap():
    sent = []

    def endless_page():
        yield b"<html><head><title>Huge page</title></head><body>"
        while True:
            chunk = b"x" * 65536
            sent.append(len(chunk))
            yield chunk

    def handler(request):
        return httpx.Response(200, headers={"content-type": "text/html"}, content=endless_page())

    preview = fetch_link_preview("https://big.example/", client=_client(handler))
    assert preview.metadata_status == "ready"
    assert preview.preview_title == "Huge page"
    assert sum(sent) <= MAX_BODY_BYTES


def test_slow_body_is_cut_off_by_overall_timeout():
    sent = []

    def trickle():
        while True:
            sent.append(1)
            time.sleep(0.05)
            yield b"x"

    def handler(request):
        return httpx.Response(200, content=trickle())

    started = time.monotonic()
    preview = fetch_link_preview("https://slow.example/", timeout=0.3, client=_client(handler))
    assert preview.metadata_status == "failed"
    assert time.monotonic() - started < 2.0
    assert len(sent) < 40
