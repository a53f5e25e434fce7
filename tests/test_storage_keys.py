from application.utils.storage import build_storage_key, file_extension


def test_key_uses_prefix_id_and_extension():
    assert build_storage_key("abc", "clip.MP4") == "videos/abc.mp4"


def test_key_defaults_extension_when_missing():
    assert build_storage_key("abc", "recording") == "videos/abc.webm"
    assert build_storage_key("abc", None) == "videos/abc.webm"


def test_key_without_prefix():
    assert build_storage_key("abc", "a.webm", prefix="") == "abc.webm"
    assert build_storage_key("abc", "a.webm", prefix="/media/") == "media/abc.webm"


def test_file_extension_ignores_directories():
    assert file_extension("dir.v1/file", default="bin") == "bin"
