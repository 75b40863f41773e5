"""Per-request principal model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, SecretStr


class Principal(BaseModel):
    """Identity a single inbound call runs under.

    Built once per request from the service credential and the identity
    headers, then passed explicitly into every service call. Never persisted.
    """

    model_config = ConfigDict(frozen=True)

    service_credential: SecretStr
    caller_credential: SecretStr | None = None
    caller_identity: str | None = None
    current_role: str
    delegated_credential: SecretStr
    actor: str

    @property
    def is_delegated(self) -> bool:
        return self.caller_credential is not None
