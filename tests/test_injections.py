"""Tests for the injection registry, flows and built-in injections."""

import logging

import pytest

from repokeeper.core.action import Action, ActionKind
from repokeeper.core.errors import InvalidInjection, RepositoryError
from repokeeper.injections import (
    ActionLogger,
    AfterFlow,
    BeforeFlow,
    InjectionRegistry,
    Phase,
    ResetFlow,
    phases_for,
)

from conftest import (
    RecordingAfter,
    RecordingBefore,
    RecordingEverywhere,
    RecordingReset,
)


class NoCapability:
    def priority(self):
        return 1

    def handle(self, flow):
        pass


@pytest.fixture
def registry():
    return InjectionRegistry()


@pytest.fixture
def calls():
    return []


# =============================================================================
# Capability detection
# =============================================================================


class TestPhasesFor:
    def test_single_capability(self, calls):
        assert phases_for(RecordingReset(calls, "r")) == [Phase.RESET]
        assert phases_for(RecordingBefore(calls, "b")) == [Phase.BEFORE]
        assert phases_for(RecordingAfter(calls, "a")) == [Phase.AFTER]

    def test_multiple_capabilities_in_phase_order(self, calls):
        assert phases_for(RecordingEverywhere(calls, "e")) == [
            Phase.RESET,
            Phase.BEFORE,
            Phase.AFTER,
        ]

    def test_no_capability(self):
        assert phases_for(NoCapability()) == []


# =============================================================================
# InjectionRegistry
# =============================================================================


class TestInjectionRegistry:
    @pytest.mark.parametrize(
        "injection_class,phase",
        [
            (RecordingReset, Phase.RESET),
            (RecordingBefore, Phase.BEFORE),
            (RecordingAfter, Phase.AFTER),
        ],
    )
    def test_lower_priority_first(self, registry, calls, injection_class, phase):
        late = injection_class(calls, "late", priority=20)
        early = injection_class(calls, "early", priority=5)
        middle = injection_class(calls, "middle", priority=10)

        for injection in (late, early, middle):
            registry.inject(injection)

        assert registry.get(phase) == [early, middle, late]

    def test_equal_priority_keeps_registration_order(self, registry, calls):
        first = RecordingBefore(calls, "first", priority=10)
        second = RecordingBefore(calls, "second", priority=10)
        third = RecordingBefore(calls, "third", priority=10)
        earliest = RecordingBefore(calls, "earliest", priority=1)

        for injection in (first, second, third, earliest):
            registry.inject(injection)

        assert registry.get(Phase.BEFORE) == [earliest, first, second, third]

    def test_only_matching_bucket_is_filled(self, registry, calls):
        before = RecordingBefore(calls, "b")
        registry.inject(before)

        assert registry.all() == {"reset": [], "before": [before], "after": []}

    def test_multi_capability_lands_in_every_bucket(self, registry, calls):
        everywhere = RecordingEverywhere(calls, "e")
        phases = registry.inject(everywhere)

        assert phases == [Phase.RESET, Phase.BEFORE, Phase.AFTER]
        for phase in Phase:
            assert registry.get(phase) == [everywhere]

    def test_invalid_injection_raises(self, registry):
        with pytest.raises(InvalidInjection):
            registry.inject(NoCapability())

    def test_invalid_injection_leaves_registry_unchanged(self, registry, calls):
        before = RecordingBefore(calls, "b")
        registry.inject(before)

        with pytest.raises(InvalidInjection):
            registry.inject(NoCapability())

        assert registry.all() == {"reset": [], "before": [before], "after": []}

    def test_get_accepts_phase_name(self, registry, calls):
        after = RecordingAfter(calls, "a")
        registry.inject(after)
        assert registry.get("after") == [after]

    def test_get_returns_copy(self, registry, calls):
        registry.inject(RecordingAfter(calls, "a"))
        registry.get(Phase.AFTER).clear()
        assert len(registry.get(Phase.AFTER)) == 1

    def test_clear(self, registry, calls):
        registry.inject(RecordingEverywhere(calls, "e"))
        registry.clear()
        assert registry.all() == {"reset": [], "before": [], "after": []}


# =============================================================================
# Flows
# =============================================================================


class TestBeforeFlow:
    def test_no_return_by_default(self):
        flow = BeforeFlow(object(), Action("all"))
        assert flow.has_return() is False

    def test_get_return_without_override_raises(self):
        flow = BeforeFlow(object(), Action("all"))
        with pytest.raises(RepositoryError):
            flow.get_return()

    def test_set_return(self):
        flow = BeforeFlow(object(), Action("all"))
        flow.set_return("cached")
        assert flow.has_return() is True
        assert flow.get_return() == "cached"

    def test_none_is_a_valid_override(self):
        flow = BeforeFlow(object(), Action("all"))
        flow.set_return(None)
        assert flow.has_return() is True
        assert flow.get_return() is None


class TestAfterFlow:
    def test_return_starts_as_result(self):
        flow = AfterFlow(object(), Action("all"), [1, 2])
        assert flow.get_return() == [1, 2]
        assert flow.result == [1, 2]

    def test_set_return_keeps_raw_result(self):
        flow = AfterFlow(object(), Action("all"), "raw")
        flow.set_return("changed")
        assert flow.get_return() == "changed"
        assert flow.result == "raw"

    def test_replacements_are_sequential(self):
        flow = AfterFlow(object(), Action("all"), "1")
        flow.set_return(flow.get_return() + "2")
        flow.set_return(flow.get_return() + "3")
        assert flow.get_return() == "123"


class TestResetFlow:
    def test_exposes_repository_and_action(self):
        repository = object()
        action = Action("find", (1, None), ActionKind.READ)
        flow = ResetFlow(repository, action)

        assert flow.repository is repository
        assert flow.action is action
        assert not hasattr(flow, "set_return")


# =============================================================================
# ActionLogger
# =============================================================================


class TestActionLogger:
    def test_registers_before_and_after(self, registry):
        logger = ActionLogger()
        registry.inject(logger)

        assert registry.get(Phase.BEFORE) == [logger]
        assert registry.get(Phase.AFTER) == [logger]
        assert registry.get(Phase.RESET) == []

    def test_default_priority(self):
        assert ActionLogger().priority() == 100
        assert ActionLogger(priority=5).priority() == 5

    def test_logs_calls_and_results(self, repository, seeded, caplog):
        caplog.set_level(logging.DEBUG, logger="repokeeper.actions")
        repository.inject(ActionLogger())

        repository.find_by_field("name", "Aaron")

        assert "UserRepository.find_by_field (read) called with ('name', 'Aaron', None)" in caplog.text
        assert "UserRepository.find_by_field returned list" in caplog.text

    def test_writes_logged_at_info(self, repository, caplog):
        caplog.set_level(logging.DEBUG, logger="repokeeper.actions")
        repository.inject(ActionLogger())

        repository.create({"name": "Dana"})
        repository.all()

        called = [record for record in caplog.records if "called with" in record.getMessage()]
        assert [(record.getMessage().split(" ")[0], record.levelno) for record in called] == [
            ("UserRepository.create", logging.INFO),
            ("UserRepository.all", logging.DEBUG),
        ]

    def test_reads_hidden_at_info_level(self, repository, seeded, caplog):
        caplog.set_level(logging.INFO, logger="repokeeper.actions")
        repository.inject(ActionLogger())

        repository.all()
        assert [record for record in caplog.records if record.name == "repokeeper.actions"] == []


# =============================================================================
# Action
# =============================================================================


class TestAction:
    @pytest.mark.parametrize(
        "kind, is_write",
        [
            (ActionKind.READ, False),
            (ActionKind.CREATE, True),
            (ActionKind.UPDATE, True),
            (ActionKind.DELETE, True),
            (ActionKind.UNKNOWN, False),
        ],
    )
    def test_is_write(self, kind, is_write):
        assert Action("call", (), kind).is_write is is_write

    def test_defaults(self):
        action = Action("reset")
        assert action.arguments == ()
        assert action.kind is ActionKind.UNKNOWN
