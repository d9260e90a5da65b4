"""
Feature flags.

Flags are held by an explicit ``FeatureFlags`` object that is built once at
startup (``build_feature_flags``) and handed to the services that consult it.
An optional remote provider can answer first; local sources fill in the rest.

Resolution order for ``is_enabled``:
    1. local override (``set_override``)
    2. remote provider (if it returns an answer)
    3. environment variable ``PATCHGATE_FLAG_<NAME>``
    4. YAML flag file (``name: true|false``)
    5. declared default
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Protocol

import httpx
import yaml

from patchgate.core.config import Settings, get_settings
from patchgate.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FeatureFlag:
    name: str
    description: str
    default: bool
    tags: List[str] = field(default_factory=list)


FEATURE_FLAGS: List[FeatureFlag] = [
    FeatureFlag("invariant-validation", "Enable/disable all invariant validation", True, ["core", "validation"]),
    FeatureFlag("tension-monitoring", "Enable/disable tension monitoring", True, ["monitoring", "tension"]),
    FeatureFlag("slack-notifications", "Enable/disable Slack notifications", False, ["notifications", "slack"]),
    FeatureFlag("cosign-signing", "Enable/disable cosign signing requirements", True, ["security", "signing"]),
    FeatureFlag("canary-deployments", "Enable/disable canary deployment features", True, ["deployment", "canary"]),
    FeatureFlag("opentelemetry-metrics", "Enable/disable OpenTelemetry metrics", True, ["monitoring", "metrics"]),
    FeatureFlag("auto-patch-renewal", "Enable/disable automatic patch renewal", False, ["automation", "renewal"]),
    FeatureFlag("crypto-integrity", "Enable/disable cryptographic integrity checks", True, ["security", "crypto"]),
    FeatureFlag("layer-boundary", "Enable/disable dependency layer boundary checks", True, ["architecture", "dependencies"]),
    FeatureFlag("no-process-env", "Enable/disable process.env access restrictions", True, ["security", "environment"]),
]

_FLAGS_BY_NAME: Dict[str, FeatureFlag] = {f.name: f for f in FEATURE_FLAGS}


def env_var_for(flag_name: str) -> str:
    """``no-process-env`` -> ``PATCHGATE_FLAG_NO_PROCESS_ENV``."""
    return "PATCHGATE_FLAG_" + flag_name.upper().replace("-", "_")


class FlagProvider(Protocol):
    """Capability interface for an external flag source."""

    def get(self, flag_name: str, default: bool) -> Optional[bool]:
        """Return the flag value, or None when the provider has no answer."""
        ...

    def close(self) -> None:
        ...


class LocalFlagProvider:
    """Provider used when no remote flag service is configured."""

    def get(self, flag_name: str, default: bool) -> Optional[bool]:
        return None

    def close(self) -> None:
        pass


class RemoteFlagProvider:
    """
    HTTP-backed flag provider.

    Expects ``GET {base_url}/flags/{name}`` to answer ``{"value": bool}``.
    Any transport or decoding failure is logged and treated as "no answer".
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 2.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json", "User-Agent": "patchgate/2.0"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def get(self, flag_name: str, default: bool) -> Optional[bool]:
        try:
            response = self.client.get(f"/flags/{flag_name}", params={"default": default})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Remote flag lookup failed for %s: %s", flag_name, e)
            return None
        if not isinstance(payload, dict):
            logger.warning(
                "Remote flag lookup for %s returned %s, expected an object",
                flag_name,
                type(payload).__name__,
            )
            return None
        value = payload.get("value")
        return value if isinstance(value, bool) else None

    def close(self) -> None:
        self.client.close()


class FeatureFlags:
    """Feature flag configuration passed by reference to consumers."""

    def __init__(
        self,
        provider: Optional[FlagProvider] = None,
        file_values: Optional[Mapping[str, bool]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.provider = provider or LocalFlagProvider()
        self.file_values = dict(file_values or {})
        self.environ = os.environ if environ is None else environ
        self.overrides: Dict[str, bool] = {}

    def is_enabled(self, flag_name: str) -> bool:
        if flag_name in self.overrides:
            return self.overrides[flag_name]

        default = self.default_for(flag_name)
        remote = self.provider.get(flag_name, default)
        if remote is not None:
            return remote

        env_value = self.environ.get(env_var_for(flag_name))
        if env_value is not None:
            return env_value.strip().lower() == "true"

        if flag_name in self.file_values:
            return self.file_values[flag_name]

        return default

    @staticmethod
    def default_for(flag_name: str) -> bool:
        flag = _FLAGS_BY_NAME.get(flag_name)
        return flag.default if flag else False

    def all_flags(self) -> Dict[str, bool]:
        return {flag.name: self.is_enabled(flag.name) for flag in FEATURE_FLAGS}

    def set_override(self, flag_name: str, value: bool) -> None:
        """Override a flag locally (mostly for tests and one-off runs)."""
        self.overrides[flag_name] = value

    def clear_override(self, flag_name: str) -> None:
        self.overrides.pop(flag_name, None)

    def close(self) -> None:
        self.provider.close()


def load_flag_file(path: Optional[str]) -> Dict[str, bool]:
    """Read boolean flags from a YAML mapping; a missing file yields {}."""
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.warning("Ignoring unreadable flag file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring flag file %s: expected a mapping", path)
        return {}
    return {k: v for k, v in data.items() if isinstance(v, bool)}


def build_feature_flags(settings: Settings) -> FeatureFlags:
    """Construct the flag object for this process from settings."""
    provider: FlagProvider
    if settings.FLAG_PROVIDER_URL:
        provider = RemoteFlagProvider(
            settings.FLAG_PROVIDER_URL, token=settings.FLAG_PROVIDER_TOKEN
        )
        logger.info("Using remote feature flag provider at %s", settings.FLAG_PROVIDER_URL)
    else:
        provider = LocalFlagProvider()
        logger.debug("Remote flag provider not configured, using local feature flags")
    return FeatureFlags(provider=provider, file_values=load_flag_file(settings.FEATURE_FLAGS_PATH))


@lru_cache(maxsize=1)
def get_feature_flags() -> FeatureFlags:
    """Process-wide flags for the API, built from the cached settings."""
    return build_feature_flags(get_settings())
