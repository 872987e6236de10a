import base64
from io import BytesIO

import numpy as np
import pytest
import requests
from PIL import Image as PILImage

from pixelsimage.repositories import image_repository as image_repository_module
from pixelsimage.repositories.blob_repository import BlobStore
from pixelsimage.repositories.image_repository import ImageRepository
from pixelsimage.utils.mimetype import JPEG, PNG

from .conftest import encode_png, make_pixels


class FakeResponse:
    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Error")


@pytest.fixture
def repository():
    return ImageRepository(blob_store=BlobStore())


@pytest.mark.asyncio
async def test_decode_file_keeps_alpha(tmp_path, repository):
    pixels = make_pixels(5, 4, seed=21)
    path = tmp_path / "alpha.png"
    path.write_bytes(encode_png(pixels))

    image = await repository.decode(str(path), cross_origin=True)

    assert (image.width, image.height) == (5, 4)
    assert image.src == str(path)
    assert image.cross_origin == "anonymous"
    np.testing.assert_array_equal(image.pixels, pixels)


@pytest.mark.asyncio
async def test_decode_rgb_and_grey_gain_opaque_alpha(tmp_path, repository):
    rgb = make_pixels(3, 2, seed=5)[..., :3]
    PILImage.fromarray(rgb).save(tmp_path / "rgb.png")
    PILImage.fromarray(rgb[..., 0]).save(tmp_path / "grey.png")

    image = await repository.decode(str(tmp_path / "rgb.png"))
    np.testing.assert_array_equal(image.pixels[..., :3], rgb)
    assert (image.pixels[..., 3] == 255).all()
    assert image.cross_origin is None

    grey = await repository.decode(str(tmp_path / "grey.png"))
    np.testing.assert_array_equal(grey.pixels[..., 1], rgb[..., 0])


@pytest.mark.asyncio
async def test_decode_file_uri(png_file, repository):
    path, pixels = png_file
    image = await repository.decode(path.as_uri())
    np.testing.assert_array_equal(image.pixels, pixels)


@pytest.mark.asyncio
async def test_decode_data_uri(png_file, repository):
    path, pixels = png_file
    data_url = "data:image/png;base64," + base64.b64encode(path.read_bytes()).decode("ascii")
    image = await repository.decode(data_url)
    np.testing.assert_array_equal(image.pixels, pixels)


@pytest.mark.asyncio
async def test_decode_blob_url_until_revoked(png_file, repository):
    path, pixels = png_file
    url = repository.blob_store.create_object_url(path.read_bytes())
    assert url.startswith("blob:")

    image = await repository.decode(url)
    np.testing.assert_array_equal(image.pixels, pixels)

    repository.blob_store.revoke_object_url(url)
    assert await repository.decode(url) is None


@pytest.mark.asyncio
async def test_missing_file_and_garbage_return_none(tmp_path, repository):
    assert await repository.decode(str(tmp_path / "missing.png")) is None

    junk = tmp_path / "junk.png"
    junk.write_bytes(b"definitely not an image")
    assert await repository.decode(str(junk)) is None

    assert await repository.decode("data:image/png;base64") is None


@pytest.mark.asyncio
async def test_http_fetch(monkeypatch, png_file, repository):
    path, pixels = png_file
    seen = []

    def fake_get(url, *args, **kwargs):
        seen.append(url)
        return FakeResponse(path.read_bytes())

    monkeypatch.setattr(image_repository_module.requests, "get", fake_get)
    image = await repository.decode("https://example.com/cat.png?size=small")

    assert seen == ["https://example.com/cat.png?size=small"]
    np.testing.assert_array_equal(image.pixels, pixels)


@pytest.mark.asyncio
async def test_http_failures_return_none(monkeypatch, repository):
    monkeypatch.setattr(image_repository_module.requests, "get",
                        lambda url, *a, **kw: FakeResponse(b"", status=403))
    assert await repository.decode("https://example.com/private.png") is None

    def refuse(url, *args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(image_repository_module.requests, "get", refuse)
    assert await repository.decode("http://example.com/down.png") is None


def test_encode_png_is_lossless(repository):
    pixels = make_pixels(3, 3, seed=9)
    encoded = repository.encode(PILImage.fromarray(pixels), PNG)
    assert encoded.startswith(b"\x89PNG")
    np.testing.assert_array_equal(np.array(PILImage.open(BytesIO(encoded))), pixels)


def test_encode_jpeg_flattens_onto_black(repository):
    transparent = PILImage.new("RGBA", (8, 8), (255, 255, 255, 0))
    encoded = repository.encode(transparent, JPEG, quality=90)
    assert encoded.startswith(b"\xff\xd8")
    decoded = np.array(PILImage.open(BytesIO(encoded)).convert("RGB"))
    assert decoded.max() <= 8


def test_encode_rejects_unknown_mimetype(repository):
    with pytest.raises(ValueError):
        repository.encode(PILImage.new("RGBA", (1, 1)), "image/gif")


def test_to_data_url():
    assert ImageRepository.to_data_url(b"abc", PNG) == "data:image/png;base64,YWJj"


@pytest.mark.asyncio
async def test_http_fetch_passes_timeout(monkeypatch, png_file):
    path, _ = png_file
    timeouts = []

    def fake_get(url, *args, **kwargs):
        timeouts.append(kwargs.get("timeout"))
        return FakeResponse(path.read_bytes())

    monkeypatch.setattr(image_repository_module.requests, "get", fake_get)
    await ImageRepository(timeout=2.5).decode("https://example.com/cat.png")
    await ImageRepository().decode("https://example.com/cat.png")

    assert timeouts == [2.5, None]


@pytest.mark.asyncio
async def test_exif_orientation_is_applied(tmp_path, repository):
    # 32 wide, 16 tall: red left half, blue right half, tagged "rotate 90 clockwise".
    pixels = np.zeros((16, 32, 3), dtype=np.uint8)
    pixels[:, :16] = (255, 0, 0)
    pixels[:, 16:] = (0, 0, 255)
    exif = PILImage.Exif()
    exif[0x0112] = 6
    path = tmp_path / "phone.jpg"
    PILImage.fromarray(pixels).save(path, format="JPEG", quality=95, exif=exif)

    image = await repository.decode(str(path))

    assert (image.width, image.height) == (16, 32)
    top, bottom = image.pixels[4, 8], image.pixels[28, 8]
    assert top[0] > 200 and top[2] < 60
    assert bottom[2] > 200 and bottom[0] < 60


@pytest.mark.asyncio
async def test_untagged_jpeg_keeps_its_geometry(tmp_path, repository):
    path = tmp_path / "plain.jpg"
    PILImage.new("RGB", (32, 16), (0, 128, 0)).save(path, format="JPEG")
    image = await repository.decode(str(path))
    assert (image.width, image.height) == (32, 16)
