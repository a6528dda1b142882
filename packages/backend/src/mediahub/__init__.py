"""MediaHub — media-sharing platform backend.

Account authentication, profile management and video publishing, with
binary assets (avatars, cover images, videos, thumbnails) kept in an
external object store.
"""

__version__ = "0.1.0"
