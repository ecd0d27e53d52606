import re
from typing import Optional

CATEGORIES = ("review", "recommendation", "reading-tips", "author-interview", "other")

YOUTUBE_URL = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+")
_VIDEO_ID = re.compile(r"^.*((youtu\.be/)|(v/)|(/u/\w/)|(embed/)|(watch\?))\??v?=?([^#&?]*).*")


def youtube_video_id(url: str) -> Optional[str]:
    """Extract the 11 character video id from a YouTube link, or None."""
    match = _VIDEO_ID.match(url or "")
    if match and len(match.group(7)) == 11:
        return match.group(7)
    return None


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"
