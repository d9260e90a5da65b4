"""
Tests for feature flag resolution.
"""

import httpx
import pytest

from patchgate.core.config import Settings
from patchgate.core.flags import (
    FeatureFlags,
    RemoteFlagProvider,
    build_feature_flags,
    env_var_for,
    load_flag_file,
)


class StubProvider:
    def __init__(self, answers):
        self.answers = answers

    def get(self, flag_name, default):
        return self.answers.get(flag_name)


class TestFeatureFlags:
    def test_declared_defaults(self, flags):
        assert flags.is_enabled("invariant-validation") is True
        assert flags.is_enabled("slack-notifications") is False
        assert flags.is_enabled("auto-patch-renewal") is False

    def test_unknown_flag_is_off(self, flags):
        assert flags.is_enabled("does-not-exist") is False

    def test_env_var_name(self):
        assert env_var_for("no-process-env") == "PATCHGATE_FLAG_NO_PROCESS_ENV"

    def test_resolution_order(self):
        flags = FeatureFlags(
            provider=StubProvider({"cosign-signing": True}),
            file_values={"cosign-signing": False, "tension-monitoring": False},
            environ={"PATCHGATE_FLAG_TENSION_MONITORING": "true"},
        )
        # remote beats file
        assert flags.is_enabled("cosign-signing") is True
        # env beats file
        assert flags.is_enabled("tension-monitoring") is True
        # override beats everything
        flags.set_override("cosign-signing", False)
        assert flags.is_enabled("cosign-signing") is False
        flags.clear_override("cosign-signing")
        assert flags.is_enabled("cosign-signing") is True

    def test_file_values(self):
        flags = FeatureFlags(file_values={"canary-deployments": False}, environ={})
        assert flags.is_enabled("canary-deployments") is False

    def test_all_flags_lists_every_declared_flag(self, flags):
        values = flags.all_flags()
        assert len(values) == 10
        assert values["layer-boundary"] is True


class TestFlagFile:
    def test_missing_file(self, tmp_path):
        assert load_flag_file(str(tmp_path / "nope.yml")) == {}

    def test_non_boolean_values_are_dropped(self, tmp_path):
        path = tmp_path / "flags.yml"
        path.write_text("cosign-signing: false\ncanary-deployments: maybe\n")
        assert load_flag_file(str(path)) == {"cosign-signing": False}

    def test_build_from_settings(self, tmp_path):
        path = tmp_path / "flags.yml"
        path.write_text("slack-notifications: true\n")
        flags = build_feature_flags(Settings(FEATURE_FLAGS_PATH=str(path)))
        flags.environ = {}
        assert flags.is_enabled("slack-notifications") is True


class TestRemoteFlagProvider:
    def test_reads_value(self):
        def handler(request):
            assert request.url.path == "/flags/cosign-signing"
            assert request.headers["Authorization"] == "Bearer secret"
            return httpx.Response(200, json={"value": False})

        provider = RemoteFlagProvider(
            "http://flags.test", token="secret", transport=httpx.MockTransport(handler)
        )
        assert provider.get("cosign-signing", True) is False

    def test_failure_means_no_answer(self):
        provider = RemoteFlagProvider(
            "http://flags.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        assert provider.get("cosign-signing", True) is None
        flags = FeatureFlags(provider=provider, environ={})
        assert flags.is_enabled("cosign-signing") is True

    @pytest.mark.parametrize("body", [[True], "on", 1, None])
    def test_non_object_body_means_no_answer(self, body):
        provider = RemoteFlagProvider(
            "http://flags.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
        )
        assert provider.get("cosign-signing", True) is None
        flags = FeatureFlags(provider=provider, environ={})
        assert flags.is_enabled("slack-notifications") is False
