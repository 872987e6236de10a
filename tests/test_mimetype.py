import pytest

from pixelsimage.utils.mimetype import JPEG, PNG, infer_mimetype, validate_mimetype


@pytest.mark.parametrize("src, expected", [
    ("photo.jpg", JPEG),
    ("photo.JPEG", JPEG),
    ("/srv/images/photo.png", PNG),
    ("https://example.com/a/b.jpg?x=1#frag", JPEG),
    ("C:\\Users\\me\\photo.jpg", JPEG),
    ("photo.bmp", PNG),
    ("photo", PNG),
    ("data:image/jpeg;base64,AAAA", JPEG),
    ("data:image/gif;base64,AAAA", PNG),
    ("", PNG),
    (None, PNG),
])
def test_infer_mimetype(src, expected):
    assert infer_mimetype(src) == expected


def test_validate_mimetype():
    assert validate_mimetype(JPEG) == JPEG
    with pytest.raises(ValueError):
        validate_mimetype("image/webp")
