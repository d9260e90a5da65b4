"""
Tests for the canary matrix store and canary control operations.
"""

import random

import pytest
import yaml

from patchgate.core.errors import (
    CanaryStateError,
    ConcurrentModificationError,
    ResourceNotFoundError,
)
from patchgate.models.canary import Stage
from patchgate.services.canary.control import CanaryController, should_enable
from patchgate.services.canary.store import CanaryMatrixStore


@pytest.fixture
def matrix_path(tmp_path):
    return tmp_path / "config" / "canary-matrix.yml"


@pytest.fixture
def store(matrix_path):
    return CanaryMatrixStore(str(matrix_path))


@pytest.fixture
def controller(store):
    return CanaryController(store, rng=random.Random(42))


class TestStore:
    def test_missing_file_is_empty(self, store):
        matrix = store.load()
        assert matrix.patches == {}
        assert matrix.version == 0
        assert matrix.global_defaults.default_rollout_percentage == 5

    def test_save_bumps_version_and_uses_camel_case(self, store, matrix_path, controller):
        controller.add("lodash", 10)
        document = yaml.safe_load(matrix_path.read_text())
        assert document["version"] == 1
        assert document["patches"]["lodash"]["rolloutPercentage"] == 10
        assert document["patches"]["lodash"]["stage"] == "canary"
        assert "global" in document

    def test_legacy_rollout_key(self, store, matrix_path):
        matrix_path.parent.mkdir(parents=True)
        matrix_path.write_text("patches:\n  axios:\n    stage: canary\n    rollout: 25\n")
        assert store.load().patches["axios"].rollout_percentage == 25

    def test_globals_are_preserved(self, store, matrix_path, controller):
        matrix_path.parent.mkdir(parents=True)
        matrix_path.write_text(
            "version: 3\n"
            "patches: {}\n"
            "global:\n"
            "  default_rollout_percentage: 20\n"
            "  slack_notifications_enabled: true\n"
        )
        state = controller.add("lodash")
        assert state.rollout_percentage == 20

        document = yaml.safe_load(matrix_path.read_text())
        assert document["version"] == 4
        assert document["global"]["default_rollout_percentage"] == 20
        assert document["global"]["slack_notifications_enabled"] is True

    def test_compare_and_swap(self, store, controller):
        controller.add("lodash")
        stale = store.load()
        controller.promote("lodash")

        stale.patches["lodash"].rollout_percentage = 50
        with pytest.raises(ConcurrentModificationError):
            store.save(stale, expected_version=stale.version)

        assert store.load().patches["lodash"].rollout_percentage == 100

    def test_failed_mutation_writes_nothing(self, store, matrix_path, controller):
        controller.add("lodash")
        before = matrix_path.read_text()

        def mutate(matrix):
            matrix.patches.clear()
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError):
            store.update(mutate)
        assert matrix_path.read_text() == before


class TestController:
    def test_add_defaults(self, controller):
        state = controller.add("lodash")
        assert state.stage == Stage.CANARY
        assert state.rollout_percentage == 5
        assert state.rollback_on_errors is True

    def test_duplicate_add_does_not_mutate(self, store, controller):
        controller.add("lodash", 10)
        with pytest.raises(CanaryStateError):
            controller.add("lodash", 50)
        matrix = store.load()
        assert matrix.patches["lodash"].rollout_percentage == 10
        assert matrix.version == 1

    @pytest.mark.parametrize("percentage", [-1, 101, 150])
    def test_add_rejects_out_of_range(self, store, controller, percentage):
        with pytest.raises(CanaryStateError):
            controller.add("lodash", percentage)
        assert store.load().patches == {}

    def test_add_at_100_is_stable(self, controller):
        assert controller.add("lodash", 100).stage == Stage.STABLE

    def test_demote_to_100_fails(self, controller):
        controller.add("lodash")
        with pytest.raises(CanaryStateError):
            controller.demote("lodash", 100)

    def test_rollout_to_100_is_stable(self, controller):
        controller.add("lodash")
        state = controller.rollout("lodash", 100)
        assert state.stage == Stage.STABLE

    def test_rollout_below_100_is_canary(self, controller):
        controller.add("lodash")
        controller.promote("lodash")
        state = controller.rollout("lodash", 99)
        assert state.stage == Stage.CANARY
        assert state.rollout_percentage == 99

    def test_promote(self, controller):
        controller.add("lodash")
        state = controller.promote("lodash")
        assert state.stage == Stage.STABLE
        assert state.rollout_percentage == 100

    def test_demote_creates_entry(self, controller):
        state = controller.demote("axios")
        assert state.stage == Stage.CANARY
        assert state.rollout_percentage == 5
        assert "axios" in controller.list()

    def test_demote_existing(self, controller):
        controller.add("lodash")
        controller.promote("lodash")
        state = controller.demote("lodash", 15)
        assert state.stage == Stage.CANARY
        assert state.rollout_percentage == 15

    @pytest.mark.parametrize("operation", ["remove", "promote"])
    def test_untracked_package_fails(self, store, controller, operation):
        with pytest.raises(CanaryStateError):
            getattr(controller, operation)("ghost")
        assert store.load().version == 0

    def test_rollout_untracked_fails(self, controller):
        with pytest.raises(CanaryStateError):
            controller.rollout("ghost", 50)

    def test_remove(self, controller):
        controller.add("lodash")
        controller.remove("lodash")
        assert controller.list() == {}

    def test_check_untracked(self, controller):
        with pytest.raises(ResourceNotFoundError):
            controller.check("ghost")

    def test_check_extremes(self, controller):
        controller.add("off", 0)
        controller.add("on", 100)
        assert not any(controller.check("off") for _ in range(200))
        assert all(controller.check("on") for _ in range(200))


class TestShouldEnable:
    def test_rate_matches_percentage(self):
        rng = random.Random(1234)
        hits = sum(should_enable(10, rng) for _ in range(10000))
        assert 800 <= hits <= 1200

    def test_bounds(self):
        rng = random.Random(0)
        assert should_enable(100, rng) is True
        assert should_enable(0, rng) is False
