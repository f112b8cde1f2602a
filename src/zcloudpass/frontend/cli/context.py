"""Small helper to build the zcloudpass client objects for the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from zcloudpass.config import ClientConfig
from zcloudpass.core.rotation import RotationOrchestrator
from zcloudpass.network.auth import AuthClient
from zcloudpass.network.http import ApiTransport
from zcloudpass.network.sync import SyncClient
from zcloudpass.security.session import SessionStore


@dataclass
class AppContext:
    """Container for runtime objects the commands need."""

    config: ClientConfig
    transport: ApiTransport
    auth: AuthClient
    sync: SyncClient
    rotation: RotationOrchestrator

    def close(self) -> None:
        self.transport.close()


def build_context(
    config: Optional[ClientConfig] = None,
    store: Optional[SessionStore] = None,
    client: Optional[httpx.Client] = None,
) -> AppContext:
    """
    Wire config, session store, transport and clients together.

    With no arguments the configuration comes from the ZCLOUDPASS_* environment
    variables and the session store from the configured backend.
    """
    config = config or ClientConfig.from_env()
    store = store or SessionStore.from_config(config)
    transport = ApiTransport(config, client=client)
    auth = AuthClient(transport, store)
    sync = SyncClient(auth)
    rotation = RotationOrchestrator(auth, sync)
    return AppContext(config=config, transport=transport, auth=auth, sync=sync, rotation=rotation)
