from services.tutorials import thumbnail_url, youtube_video_id


def test_video_id_from_common_links() -> None:
    assert youtube_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert youtube_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert youtube_video_id("https://www.youtube.com/embed/dQw4w9WgXcQ?start=3") == "dQw4w9WgXcQ"


def test_video_id_rejects_bad_links() -> None:
    assert youtube_video_id("https://www.youtube.com/watch?v=short") is None
    assert youtube_video_id("https://example.com/page") is None
    assert youtube_video_id("") is None


def test_thumbnail_url() -> None:
    assert thumbnail_url("dQw4w9WgXcQ") == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
