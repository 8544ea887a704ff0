"""Tests for the SSRF-safe image fetcher."""

import httpx
import pytest

from label_checker.domain.errors import FetchError, UnsafeURLError
from label_checker.infrastructure.fetch.cached_fetcher import CachedImageFetcher
from label_checker.infrastructure.fetch.safe_fetcher import SafeImageFetcher

IMAGE_URL = "https://labels.example.org/sabina.png"


async def public_resolver(host, port):
    """Resolve every host to a public address."""
    return ["93.184.216.34"]


def make_fetcher(handler, resolver=public_resolver, max_bytes=1024):
    """Create a fetcher backed by a mock transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SafeImageFetcher(client=client, resolver=resolver, max_bytes=max_bytes)


@pytest.fixture
def requests_seen():
    """Record the URLs reaching the transport."""
    return []


@pytest.mark.asyncio
async def test_fetch_image(requests_seen):
    """Test a successful download with a parameterized content type."""

    def handler(request):
        requests_seen.append(str(request.url))
        return httpx.Response(200, content=b"png-bytes", headers={"content-type": "image/png; charset=binary"})

    fetcher = make_fetcher(handler)
    image = await fetcher.fetch(IMAGE_URL)
    await fetcher.shutdown()

    assert image.content == b"png-bytes"
    assert image.mime_type == "image/png"
    assert image.url == IMAGE_URL
    assert requests_seen == [IMAGE_URL]


@pytest.mark.asyncio
async def test_missing_content_type():
    """Test the MIME type defaults to JPEG."""
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"jpg"))

    image = await fetcher.fetch(IMAGE_URL)

    assert image.mime_type == "image/jpeg"


@pytest.mark.asyncio
async def test_redirect_is_refused():
    """Test redirects are not followed."""
    fetcher = make_fetcher(
        lambda request: httpx.Response(302, headers={"location": "http://169.254.169.254/latest"})
    )

    with pytest.raises(FetchError, match="Redirect"):
        await fetcher.fetch(IMAGE_URL)


@pytest.mark.asyncio
async def test_error_status():
    """Test non-2xx responses fail."""
    fetcher = make_fetcher(lambda request: httpx.Response(404))

    with pytest.raises(FetchError, match="404"):
        await fetcher.fetch(IMAGE_URL)


@pytest.mark.asyncio
async def test_size_cap():
    """Test bodies over the cap are rejected."""
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"x" * 11), max_bytes=10)

    with pytest.raises(FetchError, match="troppo grande"):
        await fetcher.fetch(IMAGE_URL)


@pytest.mark.asyncio
async def test_size_cap_is_inclusive():
    """Test a body of exactly the cap is accepted."""
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"x" * 10), max_bytes=10)

    image = await fetcher.fetch(IMAGE_URL)

    assert len(image.content) == 10


@pytest.mark.asyncio
async def test_transport_error():
    """Test connection failures become fetch errors."""

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError):
        await make_fetcher(handler).fetch(IMAGE_URL)


@pytest.mark.asyncio
async def test_unsafe_host_never_requested(requests_seen):
    """Test a host resolving to a private address is never contacted."""

    async def private_resolver(host, port):
        return ["93.184.216.34", "192.168.0.10"]

    def handler(request):
        requests_seen.append(str(request.url))
        return httpx.Response(200, content=b"secret")

    with pytest.raises(UnsafeURLError):
        await make_fetcher(handler, resolver=private_resolver).fetch(IMAGE_URL)
    assert requests_seen == []


@pytest.mark.asyncio
async def test_ip_literal_never_requested(requests_seen):
    """Test IP literal URLs are rejected before resolution."""

    def handler(request):
        requests_seen.append(str(request.url))
        return httpx.Response(200, content=b"secret")

    with pytest.raises(UnsafeURLError):
        await make_fetcher(handler).fetch("http://169.254.169.254/latest/meta-data")
    assert requests_seen == []


@pytest.mark.asyncio
async def test_cached_fetcher(requests_seen):
    """Test reference images are downloaded once per URL and failures are not cached."""
    statuses = {"https://labels.example.org/missing.png": [500, 200]}

    def handler(request):
        url = str(request.url)
        requests_seen.append(url)
        status = statuses[url].pop(0) if url in statuses else 200
        return httpx.Response(status, content=b"img", headers={"content-type": "image/png"})

    cached = CachedImageFetcher(make_fetcher(handler), ttl=60)

    first = await cached.fetch(IMAGE_URL)
    second = await cached.fetch(IMAGE_URL)
    assert first is second

    with pytest.raises(FetchError):
        await cached.fetch("https://labels.example.org/missing.png")
    await cached.fetch("https://labels.example.org/missing.png")

    cached.clear()
    await cached.fetch(IMAGE_URL)

    assert requests_seen == [
        IMAGE_URL,
        "https://labels.example.org/missing.png",
        "https://labels.example.org/missing.png",
        IMAGE_URL,
    ]
