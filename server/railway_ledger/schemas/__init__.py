"""Pydantic schemas for ledger records, requests and outcomes."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .service import *  # noqa: F403
from .snapshot import *  # noqa: F403
from .user import *  # noqa: F403
from .waitlist import *  # noqa: F403
