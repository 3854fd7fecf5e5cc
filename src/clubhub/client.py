"""Backend gateway factory for clubhub.

The gateway is constructed explicitly and passed to every session, so its
lifecycle (created at startup, closed at exit) is obvious and tests can swap
in a fake.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from clubhub.adapters.baas_gateway import BaasGateway
from clubhub.adapters.postgrest import RestClient
from clubhub.adapters.realtime import RealtimeClient
from clubhub.core.config import HttpConfig, RealtimeConfig


@dataclass(frozen=True)
class Credentials:
    url: str
    anon_key: str
    access_token: Optional[str]
    user_id: Optional[str]


def load_credentials() -> Credentials:
    """Read backend credentials from the environment.

    We read CLUBHUB_URL/CLUBHUB_ANON_KEY via python-dotenv to keep secrets out
    of the repo. The access token and user id are optional; without them the
    session is read-only.
    """

    load_dotenv()

    url = os.getenv("CLUBHUB_URL")
    anon_key = os.getenv("CLUBHUB_ANON_KEY")

    # Fail fast on missing credentials to avoid confusing 401s later.
    if not url or not anon_key:
        raise RuntimeError("Missing CLUBHUB_URL or CLUBHUB_ANON_KEY in environment")

    return Credentials(
        url=url,
        anon_key=anon_key,
        access_token=os.getenv("CLUBHUB_ACCESS_TOKEN") or None,
        user_id=os.getenv("CLUBHUB_USER_ID") or None,
    )


def build_gateway(
    credentials: Credentials,
    http_config: HttpConfig = HttpConfig(),
    realtime_config: RealtimeConfig = RealtimeConfig(),
) -> BaasGateway:
    """Create the process-wide gateway from credentials and settings."""

    logging.getLogger(__name__).info("Initializing backend gateway")

    rest = RestClient(
        credentials.url,
        credentials.anon_key,
        access_token=credentials.access_token,
        timeout=http_config.timeout,
    )
    realtime = RealtimeClient(
        credentials.url,
        credentials.anon_key,
        access_token=credentials.access_token,
        config=realtime_config,
    )
    return BaasGateway(rest, realtime)
