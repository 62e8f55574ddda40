import pytest

from messaging.utils.attachments import (
    FILE_LABEL,
    IMAGE_LABEL,
    VIDEO_LABEL,
    attachment_label,
    guess_mime_type,
    sanitize_folder_name,
)


@pytest.mark.parametrize(
    "mime_type,label",
    [
        ("image/png", IMAGE_LABEL),
        ("IMAGE/JPEG", IMAGE_LABEL),
        ("video/mp4", VIDEO_LABEL),
        ("application/pdf", FILE_LABEL),
        (None, FILE_LABEL),
    ],
)
def test_attachment_label(mime_type, label):
    assert attachment_label(mime_type) == label


def test_guess_mime_type_from_extension_ignores_query_string():
    assert guess_mime_type("https://cdn.example.com/a/photo.JPG?v=3") == "image/jpeg"
    assert guess_mime_type("https://cdn.example.com/clip.mp4") == "video/mp4"


def test_guess_mime_type_from_storage_resource_folder():
    assert guess_mime_type("https://res.example.com/demo/video/upload/v1/abc") == "video/*"
    assert guess_mime_type("https://res.example.com/demo/image/upload/v1/abc") == "image/*"
    assert guess_mime_type("https://files.example.com/download/abc") is None


def test_sanitize_folder_name():
    assert sanitize_folder_name("  Zoë  van der Berg! ") == "Zo_van_der_Berg"
    assert sanitize_folder_name("***") == ""
    assert sanitize_folder_name(None) == ""
