from .user import User
from .post import Post, PostVersion
from .image import Image

__all__ = [
    "User",
    "Post",
    "PostVersion",
    "Image",
]
