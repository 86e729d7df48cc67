"""HTTP client components for the tracking backend (session, errors, client)."""

from .client import TrackerClient  # noqa: F401
from .response_handling import error_for_status, extract_error  # noqa: F401
from .session import create_default_session, get_default_session  # noqa: F401
