import base64

import pytest

from imagesearch_app.token_codec import TokenCodec


PAYLOAD = {
    "id": "pexels_1",
    "title": "Chat noir – café",
    "url": "/api/proxy-image?url=https%3A%2F%2Fimages.pexels.com%2F1.jpg",
    "downloadUrl": "https://images.pexels.com/1.jpg",
    "sourcePageUrl": "https://www.pexels.com/photo/1/",
    "source": "Pexels",
    "width": 4000,
    "height": 3000,
    "photographer": "Jane",
}


def test_round_trip():
    codec = TokenCodec("secret")
    token = codec.encode(PAYLOAD)
    assert codec.decode(token) == PAYLOAD


def test_token_is_url_safe_and_unpadded():
    token = TokenCodec("secret").encode(PAYLOAD)
    assert "=" not in token
    assert "+" not in token and "/" not in token


def test_fresh_iv_per_encode():
    codec = TokenCodec("secret")
    assert codec.encode(PAYLOAD) != codec.encode(PAYLOAD)


def test_wrong_secret_cannot_decode():
    token = TokenCodec("secret").encode(PAYLOAD)
    assert TokenCodec("other").decode(token) is None


@pytest.mark.parametrize("garbage", [
    "", None, "abc", "not-a-token-at-all", "!!!!", "Zm9vOmJhcg",
    base64.urlsafe_b64encode(b"00:11:22").decode(),
])
def test_garbage_decodes_to_none(garbage):
    assert TokenCodec("secret").decode(garbage) is None


def test_tampered_token_rejected():
    codec = TokenCodec("secret")
    token = codec.encode(PAYLOAD)
    raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode()
    iv_hex, ct_hex, mac = raw.split(":")
    flipped = ("0" if ct_hex[0] != "0" else "1") + ct_hex[1:]
    tampered = base64.urlsafe_b64encode(f"{iv_hex}:{flipped}:{mac}".encode()).decode().rstrip("=")
    assert codec.decode(tampered) is None


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        TokenCodec("")
