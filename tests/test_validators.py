import pytest

from imagesearch_app.routes.validators import guess_extension, sanitize_filename


@pytest.mark.parametrize("content_type, expected", [
    ("image/png", "png"),
    ("image/jpeg; charset=binary", "jpeg"),
    ("image/svg+xml", "svg"),
])
def test_guess_extension_from_content_type(content_type, expected):
    assert guess_extension(content_type, "https://img.example.com/a") == expected


def test_guess_extension_falls_back_to_url_then_jpg():
    assert guess_extension(None, "https://img.example.com/a.webp?w=200") == "webp"
    assert guess_extension("", "https://img.example.com/a") == "jpg"


def test_svg_download_filename_is_clean():
    extension = sanitize_filename(guess_extension("image/svg+xml", "https://img.example.com/logo"))
    assert f"wiki_1.{extension}" == "wiki_1.svg"
