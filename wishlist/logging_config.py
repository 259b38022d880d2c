from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level of the `wishlist.*` logger hierarchy.

    Notes:
    - Uvicorn already configures handlers; this only sets levels for our package.
    - Set `WISHLIST_LOG_LEVEL=DEBUG` to see individual moderation denials.
    """

    normalized = level.upper()
    logging.getLogger("wishlist").setLevel(normalized)
    logging.getLogger("wishlist").propagate = True
