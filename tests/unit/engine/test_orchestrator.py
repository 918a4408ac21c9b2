"""
Tests for ResolutionOrchestrator - the resolve loop end to end on a fake page.
"""

import pytest
from unittest.mock import MagicMock

from fakes import FakeDriver, FakeNode

from web_healer.config import HealingSettings
from web_healer.engine import (
    ElementMetadata,
    ElementReference,
    FailureKind,
    ResolutionOrchestrator,
    ResolutionState,
    ResolveOptions,
    SelectorMemory,
    SelectorOrigin,
)
from web_healer.engine.events import HealedEvent, OverlaysDismissedEvent, ResolutionFailedEvent
from web_healer.exceptions import ElementNotFoundError, InteractabilityTimeoutError
from web_healer.interfaces.knowledge import IKnowledgeBase


class TestExampleScenarios:
    """The four reference scenarios."""

    @pytest.mark.asyncio
    async def test_renamed_id_heals_through_visible_text(self, driver, orchestrator):
        driver.nodes['//*[contains(text(),"Submit")]'] = FakeNode("submit-button")
        ref = ElementReference("#submit-btn", ElementMetadata(visible_text="Submit"))

        result = await orchestrator.resolve(ref)

        assert result.succeeded
        assert result.healed is True
        assert result.used_selector.expression == '//*[contains(text(),"Submit")]'
        assert result.used_selector.origin == SelectorOrigin.DERIVED
        assert result.attempt_index == 0
        assert result.handle is driver.nodes['//*[contains(text(),"Submit")]']

    @pytest.mark.asyncio
    async def test_cookie_banner_dismissed_without_second_candidate(self, driver, orchestrator):
        target = FakeNode("accept", covered_by="div.cookie-banner")
        driver.nodes["#accept"] = target
        driver.dismissible.append("div.cookie-banner")
        dismissed = []
        orchestrator.events.on(OverlaysDismissedEvent.name, dismissed.append)

        result = await orchestrator.resolve(ElementReference("#accept", ElementMetadata(visible_text="Accept")))

        assert result.succeeded
        assert result.healed is False
        assert driver.located() == ["#accept"]
        assert driver.scripts == ["interactability", "dismiss_overlays", "interactability"]
        assert [e.count for e in dismissed] == [1]

    @pytest.mark.asyncio
    async def test_missing_element_exhausts_attempts(self, driver):
        orchestrator = ResolutionOrchestrator(
            driver,
            settings=HealingSettings(overlay_settle_ms=0, scroll_settle_ms=0),
            memory=SelectorMemory(),
        )
        ref = ElementReference("#submti", ElementMetadata(visible_text="Sbumit"))

        result = await orchestrator.resolve(ref)

        assert not result.succeeded
        failure = result.failure
        assert failure.kind == FailureKind.NOT_FOUND
        assert failure.attempts_made == 3
        assert len(failure.trail) == 3 * len(failure.candidates)
        for attempt_index in range(3):
            tried = [t.candidate for t in failure.trail if t.attempt_index == attempt_index]
            assert tried == failure.candidates
        assert all(not t.located and t.report is None for t in failure.trail)
        assert orchestrator.state == ResolutionState.EXHAUSTED

        with pytest.raises(ElementNotFoundError) as exc_info:
            result.raise_for_failure()
        assert exc_info.value.failure is failure

    @pytest.mark.asyncio
    async def test_learned_mapping_tried_second(self, driver, orchestrator):
        orchestrator.memory.record("app.example.com", "#old-id", "[data-testid='new-id']")
        driver.nodes["[data-testid='new-id']"] = FakeNode("new")

        result = await orchestrator.resolve(ElementReference("#old-id"))

        assert result.succeeded
        assert result.attempt_index == 0
        assert result.used_selector.origin == SelectorOrigin.LEARNED
        assert driver.located() == ["#old-id", "[data-testid='new-id']"]


class TestHealingAndMemory:
    """Test the healed flag and what gets remembered."""

    @pytest.mark.asyncio
    async def test_original_match_is_not_healed(self, driver, orchestrator):
        driver.nodes["#login"] = FakeNode()
        healed = []
        orchestrator.events.on(HealedEvent.name, healed.append)

        result = await orchestrator.resolve("#login")

        assert result.succeeded
        assert result.healed is False
        assert len(orchestrator.memory) == 0
        assert healed == []

    @pytest.mark.asyncio
    async def test_absolute_xpath_located_as_xpath(self, driver, orchestrator):
        driver.nodes["/html/body/form/button"] = FakeNode("submit")

        result = await orchestrator.resolve("/html/body/form/button")

        assert result.succeeded
        assert result.healed is False
        assert driver.locate_calls[0][:2] == ("xpath", "/html/body/form/button")

    @pytest.mark.asyncio
    async def test_repeated_heal_is_idempotent(self, driver, orchestrator):
        driver.nodes['[id*="old"]'] = FakeNode()
        ref = ElementReference("#old")

        first = await orchestrator.resolve(ref)
        driver.locate_calls.clear()
        second = await orchestrator.resolve(ref)

        assert first.healed and second.healed
        assert second.used_selector.origin == SelectorOrigin.LEARNED
        assert driver.located() == ["#old", '[id*="old"]']
        entries = orchestrator.memory.entries()
        assert len(entries) == 1
        assert entries[0].hits == 2

    @pytest.mark.asyncio
    async def test_healed_event_emitted(self, driver, orchestrator):
        driver.nodes['[id="old"]'] = FakeNode()
        events = []
        orchestrator.events.on(HealedEvent.name, events.append)

        await orchestrator.resolve("#old")

        assert len(events) == 1
        assert events[0].original_selector == "#old"
        assert events[0].used_selector.expression == '[id="old"]'
        assert events[0].attempt_index == 0

    @pytest.mark.asyncio
    async def test_knowledge_base_records_heal(self, driver, healing_settings):
        kb = MagicMock(spec=IKnowledgeBase)
        kb.get_best_selectors.return_value = []
        driver.nodes['[id="old"]'] = FakeNode()
        orchestrator = ResolutionOrchestrator(driver, settings=healing_settings, knowledge_base=kb)

        await orchestrator.resolve("#old")

        kb.record_success.assert_called_once_with("app.example.com", "#old", '[id="old"]')

    @pytest.mark.asyncio
    async def test_knowledge_base_write_error_does_not_fail_resolution(self, driver, healing_settings):
        kb = MagicMock(spec=IKnowledgeBase)
        kb.get_best_selectors.return_value = []
        kb.record_success.side_effect = OSError("disk full")
        driver.nodes['[id="old"]'] = FakeNode()
        orchestrator = ResolutionOrchestrator(driver, settings=healing_settings, knowledge_base=kb)

        result = await orchestrator.resolve("#old")

        assert result.succeeded

    @pytest.mark.asyncio
    async def test_domain_scope_override(self, driver, orchestrator):
        driver.nodes['[id="old"]'] = FakeNode()

        await orchestrator.resolve("#old", ResolveOptions(domain_scope="staging"))

        assert orchestrator.memory.entries()[0].domain_scope == "staging"

    @pytest.mark.asyncio
    async def test_domain_read_through_async_url(self, healing_settings):
        class RemoteUrlDriver(FakeDriver):
            @property
            def url(self) -> str:
                raise AssertionError("blocking url lookup")

            async def current_url(self) -> str:
                return "https://shop.example.org/cart"

        driver = RemoteUrlDriver({'[id="old"]': FakeNode()})
        orchestrator = ResolutionOrchestrator(driver, settings=healing_settings, memory=SelectorMemory())

        await orchestrator.resolve("#old")

        assert orchestrator.memory.entries()[0].domain_scope == "shop.example.org"

    @pytest.mark.asyncio
    async def test_memory_cleanup_runs_on_interval(self, driver, healing_settings):
        memory = SelectorMemory(capacity=2)
        for i in range(3):
            memory.record("app.example.com", f"#a{i}", f"#b{i}")
        driver.nodes["#here"] = FakeNode()
        orchestrator = ResolutionOrchestrator(
            driver, settings=healing_settings, memory=memory, cleanup_interval=2,
        )

        await orchestrator.resolve("#here")
        assert len(memory) == 3
        await orchestrator.resolve("#here")
        assert len(memory) == 1


class TestRemediation:
    """Test verification and remediation inside the loop."""

    @pytest.mark.asyncio
    async def test_offscreen_element_scrolled_into_view(self, driver, orchestrator):
        driver.nodes["#footer-link"] = FakeNode(in_viewport=False)

        result = await orchestrator.resolve("#footer-link")

        assert result.succeeded
        assert "scroll_into_view" in driver.scripts
        assert "dismiss_overlays" not in driver.scripts
        assert orchestrator.stats.remediations == 1

    @pytest.mark.asyncio
    async def test_permanent_occlusion_is_never_clicked(self, driver, orchestrator):
        driver.nodes["#buy"] = FakeNode(covered_by="div.modal")

        result = await orchestrator.resolve("#buy", ResolveOptions(max_attempts=1))

        assert not result.succeeded
        assert driver.clicked == []
        assert result.failure.kind == FailureKind.NOT_INTERACTABLE
        report = result.failure.last_reports()["#buy"]
        assert report.not_covered is False
        assert report.occluding_descriptor == "div.modal"
        with pytest.raises(InteractabilityTimeoutError):
            result.raise_for_failure()

    @pytest.mark.asyncio
    async def test_disabled_element_moves_to_next_candidate(self, driver, orchestrator):
        driver.nodes["#save"] = FakeNode("disabled", disabled=True)
        driver.nodes['[id="save"]'] = FakeNode("enabled")

        result = await orchestrator.resolve("#save")

        assert result.succeeded
        assert result.handle.label == "enabled"
        assert result.healed is True

    @pytest.mark.asyncio
    async def test_stale_check_skips_remediation(self, driver, orchestrator):
        driver.nodes["#gone"] = FakeNode(stale=True)

        result = await orchestrator.resolve("#gone", ResolveOptions(max_attempts=1))

        assert not result.succeeded
        assert "dismiss_overlays" not in driver.scripts
        report = result.failure.last_reports()["#gone"]
        assert report.is_stale is True

    @pytest.mark.asyncio
    async def test_locate_error_skips_to_next_candidate(self, driver, orchestrator):
        driver.locate_errors["#x"] = RuntimeError("invalid selector")
        driver.nodes['[id="x"]'] = FakeNode()

        result = await orchestrator.resolve("#x")

        assert result.succeeded
        assert result.used_selector.expression == '[id="x"]'

    @pytest.mark.asyncio
    async def test_element_appearing_after_resync(self, driver, orchestrator):
        driver.on_dom_stable = lambda: driver.nodes.setdefault("#late", FakeNode())

        result = await orchestrator.resolve("#late")

        assert result.succeeded
        assert result.attempt_index == 1
        assert result.healed is False

    @pytest.mark.asyncio
    async def test_network_idle_only_when_enabled(self, driver):
        orchestrator = ResolutionOrchestrator(
            driver,
            settings=HealingSettings(overlay_settle_ms=0, network_idle_on_retry=True),
        )
        await orchestrator.resolve("#nothing", ResolveOptions(max_attempts=2))
        assert "network_idle" in driver.scripts

        other = FakeDriver()
        orchestrator = ResolutionOrchestrator(other, settings=HealingSettings(overlay_settle_ms=0))
        await orchestrator.resolve("#nothing", ResolveOptions(max_attempts=2))
        assert "dom_stable" in other.scripts
        assert "network_idle" not in other.scripts


class TestTiming:
    """Test attempt budgets and the outer deadline."""

    def test_plan_attempt_floor(self, driver):
        orchestrator = ResolutionOrchestrator(driver)
        plan = orchestrator.plan_attempt(0, candidate_count=8, base_timeout_ms=5000, adaptive=True)
        assert plan.attempt_timeout_ms == 5000
        assert plan.per_candidate_timeout_ms == 1500

    def test_plan_attempt_adaptive_growth(self, driver):
        orchestrator = ResolutionOrchestrator(driver)
        plan = orchestrator.plan_attempt(2, candidate_count=8, base_timeout_ms=5000, adaptive=True)
        assert plan.attempt_timeout_ms == pytest.approx(8000)
        assert plan.per_candidate_timeout_ms == pytest.approx(1600)

    def test_plan_attempt_few_candidates(self, driver):
        orchestrator = ResolutionOrchestrator(driver)
        plan = orchestrator.plan_attempt(0, candidate_count=2, base_timeout_ms=5000, adaptive=True)
        assert plan.per_candidate_timeout_ms == 2500

    def test_plan_attempt_fixed(self, driver):
        orchestrator = ResolutionOrchestrator(driver)
        plan = orchestrator.plan_attempt(2, candidate_count=1, base_timeout_ms=5000, adaptive=False)
        assert plan.attempt_timeout_ms == 5000
        assert plan.per_candidate_timeout_ms == 5000

    @pytest.mark.asyncio
    async def test_locate_receives_per_candidate_timeout(self, driver, orchestrator):
        driver.nodes["#a"] = FakeNode()
        await orchestrator.resolve("#a")
        assert driver.locate_calls == [("css", "#a", 1500)]

    @pytest.mark.asyncio
    async def test_deadline_returns_timeout_with_partial_trail(self, driver, orchestrator):
        driver.locate_delay = 0.5
        failed = []
        orchestrator.events.on(ResolutionFailedEvent.name, failed.append)

        result = await orchestrator.resolve("#slow", ResolveOptions(deadline_ms=50))

        assert not result.succeeded
        assert result.failure.kind == FailureKind.TIMEOUT
        assert len(result.failure.trail) == 1
        assert len(failed) == 1


class TestStats:
    """Test orchestrator counters and state."""

    @pytest.mark.asyncio
    async def test_stats_counters(self, driver, orchestrator):
        driver.nodes['[id="old"]'] = FakeNode()

        await orchestrator.resolve("#old")
        await orchestrator.resolve("#missing", ResolveOptions(max_attempts=1))

        stats = orchestrator.stats.as_dict()
        assert stats["resolutions"] == 2
        assert stats["healed"] == 1
        assert stats["failures"] == 1
        assert stats["candidates_tried"] > 2

    @pytest.mark.asyncio
    async def test_state_after_success(self, driver, orchestrator):
        driver.nodes["#a"] = FakeNode()
        assert orchestrator.state == ResolutionState.IDLE
        await orchestrator.resolve("#a")
        assert orchestrator.state == ResolutionState.SUCCEEDED

    def test_from_settings_builds_knowledge_base(self, driver, settings, tmp_path):
        from web_healer.engine import JsonKnowledgeBase

        settings = settings.merge_with({"memory": {"knowledge_base_path": str(tmp_path / "kb.json")}})
        orchestrator = ResolutionOrchestrator.from_settings(driver, settings)

        assert isinstance(orchestrator.knowledge_base, JsonKnowledgeBase)
        assert orchestrator.memory.capacity == settings.memory.capacity
