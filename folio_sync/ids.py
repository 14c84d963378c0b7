"""Client-side identifier allocation."""

import uuid


def allocate() -> str:
    """Return a new durable identifier.

    The id is sent in the create request body, so the local record never has
    to be renamed once the server confirms it.
    """
    return str(uuid.uuid4())
