import pytest

from pixelsimage.repositories.blob_repository import BlobStore


def test_object_url_lifecycle():
    store = BlobStore()
    url = store.create_object_url(bytearray(b"\x89PNG"))

    assert url.startswith(BlobStore.PREFIX)
    assert url in store
    assert store.resolve(url) == b"\x89PNG"

    store.revoke_object_url(url)
    store.revoke_object_url(url)
    assert url not in store
    assert len(store) == 0
    with pytest.raises(KeyError):
        store.resolve(url)


def test_object_urls_are_unique():
    store = BlobStore()
    urls = {store.create_object_url(b"x") for _ in range(5)}
    assert len(urls) == 5
    assert len(store) == 5
