import httpx
import pytest

from vtryon.errors import TransportError, UnsupportedFileTypeError
from vtryon.garments import FETCH_HEADERS, fetch_image, garment_from_upload


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_upload_gets_default_filename():
    source = garment_from_upload(b"abc", "image/png")
    assert source.filename == "garment.jpg"
    assert source.mime_type == "image/png"
    assert garment_from_upload(b"abc", "image/png", "dress.png").filename == "dress.png"


@pytest.mark.asyncio
async def test_fetch_follows_redirects_with_browser_headers():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/old.jpg":
            return httpx.Response(302, headers={"location": "https://cdn.test/new.jpg"})
        return httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg; charset=binary"})

    async with _client(handler) as client:
        source = await fetch_image("https://cdn.test/old.jpg", client=client)

    assert source.data == b"jpeg-bytes"
    assert source.mime_type == "image/jpeg"
    assert len(seen) == 2
    assert seen[0].headers["user-agent"] == FETCH_HEADERS["User-Agent"]


@pytest.mark.asyncio
async def test_non_image_is_rejected():
    handler = lambda request: httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
    async with _client(handler) as client:
        with pytest.raises(UnsupportedFileTypeError, match="direct image link"):
            await fetch_image("https://shop.test/product", client=client)


@pytest.mark.asyncio
async def test_error_status_carries_code():
    async with _client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(TransportError) as info:
            await fetch_image("https://cdn.test/missing.jpg", client=client)
    assert info.value.status_code == 404


@pytest.mark.asyncio
async def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    async with _client(handler) as client:
        with pytest.raises(TransportError) as info:
            await fetch_image("https://cdn.test/a.jpg", client=client)
    assert info.value.status_code is None
